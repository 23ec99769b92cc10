"""
Data model for a capture run: configuration, queue items, per-route results, report.

Configuration classes validate on construction and are frozen; a run never
mutates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Optional, Union

from capture.constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_ROUTE_CONCURRENCY,
    DEFAULT_TRANSCODER_PATH,
    DEFAULT_VIDEO_DURATION_MS,
    DEFAULT_VIEWPORTS,
    DEFAULT_WAIT_TIME_MS,
    NAV_TIMEOUT_MS,
    VIEWPORT_SETTLE_MS,
)

if TYPE_CHECKING:
    from shared.config import AppConfig


@dataclass(frozen=True)
class ViewportConfig:
    """One responsive breakpoint."""

    name: str
    width: int
    height: int

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Viewport name must be non-empty")
        for label, value in (("width", self.width), ("height", self.height)):
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"Viewport {self.name!r} {label} must be a positive integer")

    @property
    def label(self) -> str:
        """File-name stem shared by all artifacts of this viewport: desktop_1920x1080."""
        return f"{self.name}_{self.width}x{self.height}"


@dataclass(frozen=True)
class VideoOptions:
    duration_ms: int = DEFAULT_VIDEO_DURATION_MS
    interactions: bool = True

    def __post_init__(self) -> None:
        if self.duration_ms <= 0:
            raise ValueError("Video duration must be positive")


def _default_viewports() -> tuple[ViewportConfig, ...]:
    return tuple(ViewportConfig(name, width, height) for name, width, height in DEFAULT_VIEWPORTS)


@dataclass(frozen=True)
class CaptureConfig:
    """
    Immutable configuration for one capture run.

    Construct once before calling the capture service; invalid values raise
    ValueError here rather than mid-crawl.
    """

    output_dir: str = DEFAULT_OUTPUT_DIR
    viewports: tuple[ViewportConfig, ...] = field(default_factory=_default_viewports)
    max_depth: int = DEFAULT_MAX_DEPTH
    wait_time_ms: int = DEFAULT_WAIT_TIME_MS
    capture_video: bool = False
    video_options: VideoOptions = field(default_factory=VideoOptions)
    allowed_hosts: tuple[str, ...] = ()
    include_subdomains: bool = False
    route_concurrency: int = DEFAULT_ROUTE_CONCURRENCY
    hide_selectors: tuple[str, ...] = ()
    menu_selectors: tuple[str, ...] = ()
    transcoder_path: str = DEFAULT_TRANSCODER_PATH
    headless: bool = True
    viewport_settle_ms: int = VIEWPORT_SETTLE_MS
    nav_timeout_ms: int = NAV_TIMEOUT_MS

    def __post_init__(self) -> None:
        # Accept lists from callers; store tuples so the config stays hashable and frozen.
        for name in ("viewports", "allowed_hosts", "hide_selectors", "menu_selectors"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

        if not self.output_dir:
            raise ValueError("output_dir must be non-empty")
        if not self.viewports:
            raise ValueError("At least one viewport is required")
        names = [v.name for v in self.viewports]
        if len(set(names)) != len(names):
            raise ValueError(f"Viewport names must be unique: {names}")
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.wait_time_ms < 0:
            raise ValueError("wait_time_ms must be >= 0")
        if self.route_concurrency <= 0:
            raise ValueError("route_concurrency must be > 0")
        if self.viewport_settle_ms < 0:
            raise ValueError("viewport_settle_ms must be >= 0")
        if self.nav_timeout_ms <= 0:
            raise ValueError("nav_timeout_ms must be > 0")

    @classmethod
    def from_app_config(cls, app_config: "AppConfig", **overrides: Any) -> "CaptureConfig":
        """Build a run config from process settings; keyword overrides win (e.g. CLI flags)."""
        base = cls(
            output_dir=app_config.output_dir,
            viewports=tuple(ViewportConfig(n, w, h) for n, w, h in app_config.viewports),
            max_depth=app_config.max_depth,
            wait_time_ms=app_config.wait_time_ms,
            capture_video=app_config.capture_video,
            video_options=VideoOptions(
                duration_ms=app_config.video_duration_ms,
                interactions=app_config.video_interactions,
            ),
            allowed_hosts=app_config.allowed_hosts,
            include_subdomains=app_config.include_subdomains,
            route_concurrency=app_config.route_concurrency,
            hide_selectors=app_config.hide_selectors,
            menu_selectors=app_config.menu_selectors,
            transcoder_path=app_config.transcoder_path,
            headless=app_config.headless,
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(base, **overrides) if overrides else base


@dataclass(frozen=True)
class RouteTask:
    url: str
    depth: int
    normalized_url: str
    route: str


@dataclass(frozen=True)
class ShutdownSignal:
    """Queue sentinel telling one worker to exit."""


SHUTDOWN = ShutdownSignal()

QueueItem = Union[RouteTask, ShutdownSignal]


@dataclass(frozen=True)
class ScreenshotPaths:
    png: str
    webp: str
    jpg: str

    def as_dict(self) -> dict[str, str]:
        return {"png": self.png, "webp": self.webp, "jpg": self.jpg}


@dataclass(frozen=True)
class VideoQualityPaths:
    """Master recording path plus whichever transcoded tiers succeeded."""

    high: str
    medium: Optional[str] = None
    low: Optional[str] = None

    def tiers(self) -> dict[str, str]:
        """Present tiers only, in high → low order."""
        present = {"high": self.high, "medium": self.medium, "low": self.low}
        return {tier: path for tier, path in present.items() if path}


@dataclass(frozen=True)
class CaptureResult:
    """Outcome for one normalized route; error is set when any step failed."""

    url: str
    route: str
    screenshots: dict[str, ScreenshotPaths] = field(default_factory=dict)
    videos: Optional[dict[str, VideoQualityPaths]] = None
    error: Optional[str] = None
    timestamp: int = 0

    @property
    def succeeded(self) -> bool:
        return not self.error


@dataclass(frozen=True)
class RouteSummary:
    url: str
    route: str
    screenshots: list[str]
    has_video: bool
    video_qualities: dict[str, list[str]]
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "url": self.url,
            "route": self.route,
            "screenshots": self.screenshots,
            "hasVideo": self.has_video,
            "videoQualities": self.video_qualities,
        }
        if self.error:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class CaptureReport:
    timestamp: str
    total_routes: int
    successful_captures: int
    failed_captures: int
    viewports: tuple[ViewportConfig, ...]
    results: tuple[RouteSummary, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "totalRoutes": self.total_routes,
            "successfulCaptures": self.successful_captures,
            "failedCaptures": self.failed_captures,
            "viewports": [
                {"name": v.name, "width": v.width, "height": v.height} for v in self.viewports
            ],
            "results": [summary.to_dict() for summary in self.results],
        }
