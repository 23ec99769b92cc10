"""
Environment-based configuration for the site capture engine.

This module exposes a small, typed configuration surface. All values are
sourced from environment variables with sensible defaults; the CLI loads a
local `.env` file (python-dotenv) before reading them.

Values here are raw process settings. The capture package turns them into an
immutable `CaptureConfig` for a single run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Optional

Environment = Literal["local", "dev", "staging", "prod"]

DEFAULT_VIEWPORTS = "desktop:1920x1080,tablet:768x1024,mobile:375x667"


def parse_viewport_spec(raw: str) -> tuple[tuple[str, int, int], ...]:
    """
    Parse a viewport list such as "desktop:1920x1080,mobile:375x667".

    Raises ValueError on malformed entries.
    """
    viewports: list[tuple[str, int, int]] = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, size = entry.partition(":")
        width, x, height = size.lower().partition("x")
        if not sep or not x or not name.strip():
            raise ValueError(f"Invalid viewport entry: {entry!r} (expected name:WIDTHxHEIGHT)")
        viewports.append((name.strip(), int(width), int(height)))
    return tuple(viewports)


def _split_list(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class AppConfig:
    """
    Top-level process configuration.

    Logging settings plus the defaults for a capture run. CLI flags override
    the capture defaults for a single invocation.
    """

    environment: Environment
    log_level: str

    # Optional file path for structured JSON logs; when set, logs are written
    # to file (and stdout if log_stdout).
    log_file: Optional[str]
    # When True, logs go to stdout. When False, only file (if LOG_FILE set). Default True.
    log_stdout: bool
    # "json" (default) or "console" for human-readable local output.
    log_format: str

    # Capture run defaults
    output_dir: str
    viewports: tuple[tuple[str, int, int], ...]
    max_depth: int
    wait_time_ms: int
    capture_video: bool
    video_duration_ms: int
    video_interactions: bool
    allowed_hosts: tuple[str, ...]
    include_subdomains: bool
    route_concurrency: int
    hide_selectors: tuple[str, ...]
    menu_selectors: tuple[str, ...]
    transcoder_path: str
    headless: bool

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Construct configuration from environment variables.

        All fields have defaults suitable for local use.
        """

        environment = os.getenv("APP_ENV", "local")

        if environment not in {"local", "dev", "staging", "prod"}:
            raise ValueError(f"Unsupported APP_ENV value: {environment!r}")

        log_format = os.getenv("LOG_FORMAT", "json").strip().lower()
        if log_format not in {"json", "console"}:
            raise ValueError(f"Unsupported LOG_FORMAT value: {log_format!r}")

        def _bool_env(name: str, default: bool) -> bool:
            raw = (os.getenv(name) or str(default)).strip().lower()
            return raw in ("true", "1", "yes")

        def _int_env(name: str, default: int) -> int:
            raw = (os.getenv(name) or "").strip()
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError:
                raise ValueError(f"{name} must be an integer, got {raw!r}") from None

        return cls(
            environment=environment,  # type: ignore[arg-type]
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            log_stdout=_bool_env("LOG_STDOUT", True),
            log_format=log_format,
            output_dir=os.getenv("CAPTURE_OUTPUT_DIR", "ui-captures"),
            viewports=parse_viewport_spec(os.getenv("CAPTURE_VIEWPORTS") or DEFAULT_VIEWPORTS),
            max_depth=_int_env("CAPTURE_MAX_DEPTH", 2),
            wait_time_ms=_int_env("CAPTURE_WAIT_MS", 2000),
            capture_video=_bool_env("CAPTURE_VIDEO", False),
            video_duration_ms=_int_env("CAPTURE_VIDEO_DURATION_MS", 10000),
            video_interactions=_bool_env("CAPTURE_VIDEO_INTERACTIONS", True),
            allowed_hosts=_split_list(os.getenv("CAPTURE_ALLOWED_HOSTS")),
            include_subdomains=_bool_env("CAPTURE_INCLUDE_SUBDOMAINS", False),
            route_concurrency=_int_env("CAPTURE_ROUTE_CONCURRENCY", 2),
            hide_selectors=_split_list(os.getenv("CAPTURE_HIDE_SELECTORS")),
            menu_selectors=_split_list(os.getenv("CAPTURE_MENU_SELECTORS")),
            transcoder_path=os.getenv("FFMPEG_PATH", "ffmpeg"),
            headless=_bool_env("CAPTURE_HEADLESS", True),
        )
