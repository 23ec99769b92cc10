"""
Report generator: capture-report.json (machine-readable) and REPORT.md (human-readable).

Runs after every worker has exited; the results map is only read here.
Routes are listed sorted by route name, then URL, so reports diff cleanly
between runs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional

from capture.constants import REPORT_JSON_NAME, REPORT_MARKDOWN_NAME
from capture.models import CaptureConfig, CaptureReport, CaptureResult, RouteSummary, ViewportConfig
from capture.storage import relative_link, write_json, write_text
from shared.logging import get_logger

logger = get_logger(__name__)

_SCREENSHOT_LABELS = (
    ("png", "PNG (lossless)"),
    ("webp", "WebP (optimized)"),
    ("jpg", "JPEG (compatible)"),
)
_VIDEO_LABELS = {
    "high": "High Quality (1:1 scale)",
    "medium": "Medium Quality (0.75x scale)",
    "low": "Low Quality (0.5x scale)",
}


def _sorted_results(results: Mapping[str, CaptureResult]) -> list[CaptureResult]:
    return sorted(results.values(), key=lambda r: (r.route, r.url))


def build_report(
    results: Mapping[str, CaptureResult],
    viewports: tuple[ViewportConfig, ...],
    now: Optional[datetime] = None,
) -> CaptureReport:
    """Aggregate per-route results into counts and summaries. Pure function for tests."""
    ordered = _sorted_results(results)
    successful = [r for r in ordered if r.succeeded]
    summaries = tuple(
        RouteSummary(
            url=r.url,
            route=r.route,
            screenshots=list(r.screenshots.keys()),
            has_video=bool(r.videos),
            video_qualities={name: list(v.tiers().keys()) for name, v in (r.videos or {}).items()},
            error=r.error,
        )
        for r in ordered
    )
    return CaptureReport(
        timestamp=(now or datetime.now(timezone.utc)).isoformat(),
        total_routes=len(ordered),
        successful_captures=len(successful),
        failed_captures=len(ordered) - len(successful),
        viewports=viewports,
        results=summaries,
    )


def render_markdown(
    results: Mapping[str, CaptureResult],
    report: CaptureReport,
    output_dir: str | Path,
) -> str:
    """Markdown report with links relative to output_dir."""
    ordered = _sorted_results(results)
    successful = [r for r in ordered if r.succeeded]
    failed = [r for r in ordered if not r.succeeded]

    lines = [
        "# UI Capture Report",
        "",
        f"Generated: {report.timestamp}",
        "",
        "## Summary",
        "",
        f"- Total Routes: {report.total_routes}",
        f"- Successful: {report.successful_captures}",
        f"- Failed: {report.failed_captures}",
        "",
        "## Captured Routes",
        "",
    ]

    for result in successful:
        lines += [f"### {result.route}", "", f"**URL:** {result.url}", ""]
        for viewport, paths in result.screenshots.items():
            lines += [f"#### {viewport.upper()} (Screenshots)", ""]
            formats = paths.as_dict()
            for fmt, label in _SCREENSHOT_LABELS:
                lines.append(f"- {label}: [View]({relative_link(formats[fmt], output_dir)})")
            lines.append("")

            videos = (result.videos or {}).get(viewport)
            if videos:
                lines += [f"**{viewport.upper()} Videos:**", ""]
                for tier, path in videos.tiers().items():
                    lines.append(f"- {_VIDEO_LABELS[tier]}: [Watch]({relative_link(path, output_dir)})")
                lines.append("")
        lines += ["---", ""]

    if failed:
        lines += ["## Failed Captures", ""]
        for result in failed:
            lines.append(f"- {result.url}: {result.error}")
        lines.append("")

    return "\n".join(lines)


def generate_reports(
    results: Mapping[str, CaptureResult],
    config: CaptureConfig,
) -> CaptureReport:
    """
    Write capture-report.json and REPORT.md under the output directory.

    Raises FileSystemError when either file cannot be written.
    """
    output_dir = Path(config.output_dir)
    report = build_report(results, config.viewports)

    write_json(output_dir / REPORT_JSON_NAME, report.to_dict())
    write_text(output_dir / REPORT_MARKDOWN_NAME, render_markdown(results, report, output_dir))

    logger.info(
        "reports_generated",
        total_routes=report.total_routes,
        successful=report.successful_captures,
        failed=report.failed_captures,
        output_dir=str(output_dir),
    )
    return report
