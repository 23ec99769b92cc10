"""
Unit tests for report generation: accounting, JSON shape, Markdown links.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from capture.models import CaptureConfig, CaptureResult, ScreenshotPaths, VideoQualityPaths, ViewportConfig
from capture.report_generator import build_report, generate_reports, render_markdown

DESKTOP = ViewportConfig("desktop", 1920, 1080)
MOBILE = ViewportConfig("mobile", 375, 667)


def _shots(out: Path, route: str, viewport: ViewportConfig) -> ScreenshotPaths:
    base = out / route / "screenshots"
    return ScreenshotPaths(
        png=str(base / "png" / f"{viewport.label}.png"),
        webp=str(base / "webp" / f"{viewport.label}.webp"),
        jpg=str(base / "jpg" / f"{viewport.label}.jpg"),
    )


def _results(out: Path) -> dict[str, CaptureResult]:
    about_video = out / "about" / "videos"
    return {
        "http://site.test": CaptureResult(
            url="http://site.test/",
            route="root",
            screenshots={"desktop": _shots(out, "root", DESKTOP), "mobile": _shots(out, "root", MOBILE)},
            timestamp=1,
        ),
        "http://site.test/about": CaptureResult(
            url="http://site.test/about",
            route="about",
            screenshots={"desktop": _shots(out, "about", DESKTOP)},
            videos={
                "desktop": VideoQualityPaths(
                    high=str(about_video / "high-quality" / "desktop_1920x1080_ts.webm"),
                    medium=str(about_video / "medium-quality" / "desktop_1920x1080_ts.webm"),
                )
            },
            timestamp=2,
        ),
        "http://site.test/contact": CaptureResult(
            url="http://site.test/contact",
            route="contact",
            error="Navigation timeout",
            timestamp=3,
        ),
    }


def test_build_report_accounting(tmp_path):
    results = _results(tmp_path)
    report = build_report(
        results, (DESKTOP, MOBILE), now=datetime(2025, 1, 1, tzinfo=timezone.utc)
    )

    assert report.total_routes == 3
    assert report.successful_captures == 2
    assert report.failed_captures == 1
    assert report.successful_captures + report.failed_captures == report.total_routes
    assert [s.route for s in report.results] == ["about", "contact", "root"]
    assert report.timestamp == "2025-01-01T00:00:00+00:00"


def test_report_json_shape(tmp_path):
    data = build_report(_results(tmp_path), (DESKTOP,)).to_dict()

    assert set(data) == {
        "timestamp",
        "totalRoutes",
        "successfulCaptures",
        "failedCaptures",
        "viewports",
        "results",
    }
    assert data["viewports"] == [{"name": "desktop", "width": 1920, "height": 1080}]
    about, contact, root = data["results"]
    assert about["hasVideo"] is True
    assert about["videoQualities"] == {"desktop": ["high", "medium"]}
    assert "error" not in about
    assert contact["error"] == "Navigation timeout"
    assert contact["screenshots"] == []
    assert root["screenshots"] == ["desktop", "mobile"]
    assert root["hasVideo"] is False


def test_render_markdown_links_are_relative(tmp_path):
    results = _results(tmp_path)
    report = build_report(results, (DESKTOP, MOBILE))

    md = render_markdown(results, report, tmp_path)

    assert md.startswith("# UI Capture Report")
    assert "- Total Routes: 3" in md
    assert "- Successful: 2" in md
    assert "- Failed: 1" in md
    assert "### root" in md
    assert "#### MOBILE (Screenshots)" in md
    assert "(root/screenshots/png/desktop_1920x1080.png)" in md
    assert "(about/videos/medium-quality/desktop_1920x1080_ts.webm)" in md
    assert "Low Quality" not in md
    assert str(tmp_path) not in md
    failed_section = md.split("## Failed Captures", 1)[1]
    assert "- http://site.test/contact: Navigation timeout" in failed_section
    assert "### contact" not in md


def test_render_markdown_without_failures_has_no_failure_section(tmp_path):
    results = {k: v for k, v in _results(tmp_path).items() if v.succeeded}

    md = render_markdown(results, build_report(results, (DESKTOP,)), tmp_path)

    assert "## Failed Captures" not in md


def test_generate_reports_writes_both_files(tmp_path):
    out = tmp_path / "out"
    config = CaptureConfig(output_dir=str(out), viewports=(DESKTOP,))

    report = generate_reports(_results(out), config)

    data = json.loads((out / "capture-report.json").read_text(encoding="utf-8"))
    assert data["totalRoutes"] == report.total_routes == 3
    assert data["failedCaptures"] == 1
    assert (out / "REPORT.md").read_text(encoding="utf-8").startswith("# UI Capture Report")
