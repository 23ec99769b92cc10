"""
Shared fixtures for capture tests. Fake Playwright objects live in fakes.py.
"""

from __future__ import annotations

import pytest

from capture.models import CaptureConfig, ViewportConfig


@pytest.fixture
def desktop() -> ViewportConfig:
    return ViewportConfig("desktop", 1280, 800)


@pytest.fixture
def fast_config(tmp_path, desktop) -> CaptureConfig:
    """One viewport, no waits, output under tmp_path."""
    return CaptureConfig(
        output_dir=str(tmp_path / "out"),
        viewports=(desktop,),
        max_depth=1,
        wait_time_ms=0,
        route_concurrency=2,
        viewport_settle_ms=0,
    )
