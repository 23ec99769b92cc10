"""
Artifact storage helpers for local disk storage.

Builds the per-route output layout, writes artifacts and reports, and wraps
every filesystem failure in FileSystemError with the path and operation.

Layout:
    {output_dir}/{route_slug}/screenshots/{png,webp,jpg}/{viewport}_{w}x{h}.{ext}
    {output_dir}/{route_slug}/screenshots/{png,webp,jpg}/history/{viewport}_{w}x{h}_{ts}.{ext}
    {output_dir}/{route_slug}/videos/{high,medium,low}-quality/{viewport}_{w}x{h}_{ts}.webm
"""

from __future__ import annotations

import json
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from capture.constants import HISTORY_DIR, SCREENSHOT_FORMATS, VIDEO_QUALITIES
from capture.errors import FileSystemError
from capture.models import ScreenshotPaths, ViewportConfig
from shared.logging import get_logger

logger = get_logger(__name__)


def capture_timestamp(now: datetime | None = None) -> str:
    """Filesystem-safe UTC timestamp, e.g. 2025-03-01T10-15-30-123Z."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents). Raises FileSystemError on failure."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(str(path), "mkdir", e) from e
    return path


def build_route_dir(output_dir: str | Path, slug: str) -> Path:
    return Path(output_dir).resolve() / slug


def screenshot_dir(route_dir: Path, fmt: str) -> Path:
    return route_dir / "screenshots" / fmt


def video_dir(route_dir: Path, quality_dir: str) -> Path:
    return route_dir / "videos" / quality_dir


def create_route_directories(route_dir: Path, capture_video: bool) -> None:
    """Create the screenshot (and, when enabled, video) tree for a route."""
    for fmt in SCREENSHOT_FORMATS:
        ensure_dir(screenshot_dir(route_dir, fmt) / HISTORY_DIR)
    if capture_video:
        for _, _, quality_dir in VIDEO_QUALITIES:
            ensure_dir(video_dir(route_dir, quality_dir))


def build_screenshot_paths(route_dir: Path, viewport: ViewportConfig) -> ScreenshotPaths:
    """Latest-artifact paths for a viewport; overwritten on each run."""
    return ScreenshotPaths(
        **{
            fmt: str(screenshot_dir(route_dir, fmt) / f"{viewport.label}.{fmt}")
            for fmt in SCREENSHOT_FORMATS
        }
    )


def build_history_path(latest: Path, timestamp: str) -> Path:
    return latest.parent / HISTORY_DIR / f"{latest.stem}_{timestamp}{latest.suffix}"


def build_video_path(route_dir: Path, quality_dir: str, viewport: ViewportConfig, timestamp: str) -> Path:
    return video_dir(route_dir, quality_dir) / f"{viewport.label}_{timestamp}.webm"


def write_artifact(path: Path, data: bytes) -> None:
    """Write artifact bytes to disk, creating parents. Raises FileSystemError on write failure."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise FileSystemError(str(path), "writeFile", e) from e


def copy_to_history(latest: Path, timestamp: str) -> Path | None:
    """
    Copy a latest artifact into its history folder.

    A failed copy is logged and returns None; the latest file stays valid.
    """
    target = build_history_path(latest, timestamp)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(latest, target)
    except OSError as e:
        logger.warning(
            "history_copy_failed",
            source=str(latest),
            target=str(target),
            error=str(e),
            error_type=type(e).__name__,
        )
        return None
    return target


def move_file(source: Path, target: Path) -> Path:
    """Rename source to target (same filesystem), falling back to a copy across devices."""
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        os.replace(source, target)
    except OSError as e:
        try:
            shutil.move(str(source), str(target))
        except OSError:
            raise FileSystemError(str(target), "rename", e) from e
    return target


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON data (UTF-8, pretty-printed). Raises FileSystemError."""
    json_bytes = json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
    write_artifact(path, json_bytes)


def write_text(path: Path, text: str) -> None:
    """Write text content (UTF-8). Raises FileSystemError."""
    write_artifact(path, text.encode("utf-8"))


def relative_link(path: str | Path, root: str | Path) -> str:
    """Forward-slash path of an artifact relative to the output root, for Markdown links."""
    try:
        relative = Path(path).resolve().relative_to(Path(root).resolve())
    except ValueError:
        return Path(os.path.relpath(path, root)).as_posix()
    return relative.as_posix()
