"""
Unit tests for artifact path building and filesystem helpers.

Layout: {output_dir}/{route}/screenshots/{fmt}/{viewport}_{w}x{h}.{fmt}
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from capture.errors import FileSystemError
from capture.models import ViewportConfig
from capture.storage import (
    build_history_path,
    build_route_dir,
    build_screenshot_paths,
    build_video_path,
    capture_timestamp,
    copy_to_history,
    create_route_directories,
    ensure_dir,
    move_file,
    relative_link,
    write_artifact,
)

TABLET = ViewportConfig("tablet", 768, 1024)


def test_capture_timestamp_is_filesystem_safe():
    ts = capture_timestamp(datetime(2025, 3, 1, 10, 15, 30, 123456, tzinfo=timezone.utc))
    assert ts == "2025-03-01T10-15-30-123Z"
    assert ":" not in capture_timestamp()


def test_build_screenshot_paths(tmp_path):
    route_dir = build_route_dir(tmp_path, "about")
    paths = build_screenshot_paths(route_dir, TABLET)

    assert Path(paths.png) == route_dir / "screenshots" / "png" / "tablet_768x1024.png"
    assert Path(paths.webp).name == "tablet_768x1024.webp"
    assert Path(paths.jpg).parent.name == "jpg"


def test_build_history_and_video_paths(tmp_path):
    latest = tmp_path / "screenshots" / "png" / "tablet_768x1024.png"
    assert build_history_path(latest, "TS") == latest.parent / "history" / "tablet_768x1024_TS.png"
    assert build_video_path(tmp_path, "low-quality", TABLET, "TS") == (
        tmp_path / "videos" / "low-quality" / "tablet_768x1024_TS.webm"
    )


def test_create_route_directories(tmp_path):
    create_route_directories(tmp_path / "root", capture_video=False)
    assert (tmp_path / "root" / "screenshots" / "webp" / "history").is_dir()
    assert not (tmp_path / "root" / "videos").exists()

    create_route_directories(tmp_path / "root", capture_video=True)
    for quality in ("high-quality", "medium-quality", "low-quality"):
        assert (tmp_path / "root" / "videos" / quality).is_dir()


def test_write_artifact_creates_parents(tmp_path):
    target = tmp_path / "a" / "b.bin"

    write_artifact(target, b"abc")

    assert target.read_bytes() == b"abc"


def test_write_artifact_wraps_os_errors(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(FileSystemError) as exc_info:
        write_artifact(blocker / "b.bin", b"abc")

    assert exc_info.value.operation == "writeFile"


def test_ensure_dir_wraps_os_errors(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(FileSystemError) as exc_info:
        ensure_dir(blocker / "sub")

    assert exc_info.value.operation == "mkdir"
    assert exc_info.value.path == str(blocker / "sub")


def test_copy_to_history_failure_returns_none(tmp_path):
    latest = tmp_path / "latest.png"
    latest.write_bytes(b"png")

    assert copy_to_history(latest, "TS") == tmp_path / "history" / "latest_TS.png"
    with patch("capture.storage.shutil.copyfile", side_effect=OSError("disk full")):
        assert copy_to_history(latest, "TS2") is None


def test_move_file(tmp_path):
    source = tmp_path / "tmp" / "raw.webm"
    source.parent.mkdir()
    source.write_bytes(b"WEBM")

    target = move_file(source, tmp_path / "videos" / "final.webm")

    assert target.read_bytes() == b"WEBM"
    assert not source.exists()


def test_relative_link_uses_forward_slashes(tmp_path):
    artifact = tmp_path / "root" / "screenshots" / "png" / "desktop_1920x1080.png"
    assert relative_link(artifact, tmp_path) == "root/screenshots/png/desktop_1920x1080.png"
