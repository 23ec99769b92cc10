"""
Screenshot capture for one viewport: PNG (lossless), WebP (q90), JPEG (q85).

PNG and JPEG come from the browser; WebP is encoded from the captured PNG
with Pillow so all three reflect the same rendered state. Each encoding gets
its own retry budget. When some encodings are unrecoverable the missing files
are re-encoded from one that succeeded, so a returned ScreenshotPaths is
always complete; only losing every encoding fails the viewport.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from io import BytesIO
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional, Sequence

from PIL import Image
from playwright.async_api import ElementHandle, Page

from capture.constants import (
    JPEG_QUALITY,
    JPG_FORMAT,
    PNG_FORMAT,
    SCREENSHOT_FORMATS,
    WEBP_FORMAT,
    WEBP_QUALITY,
)
from capture.crawl.retry import run_with_retries
from capture.errors import CaptureError
from capture.models import ScreenshotPaths, ViewportConfig
from capture.storage import build_screenshot_paths, copy_to_history, write_artifact
from shared.logging import get_logger

logger = get_logger(__name__)

# Pillow format name and save options per output encoding
_PIL_FORMATS = {
    PNG_FORMAT: ("PNG", {}),
    WEBP_FORMAT: ("WEBP", {"quality": WEBP_QUALITY}),
    JPG_FORMAT: ("JPEG", {"quality": JPEG_QUALITY}),
}


def build_hide_css(selectors: Sequence[str]) -> str:
    rules = ", ".join(s.strip() for s in selectors if s.strip())
    return f"{rules} {{ display: none !important; }}" if rules else ""


@asynccontextmanager
async def hidden_selectors(page: Page, selectors: Sequence[str]) -> AsyncIterator[Optional[ElementHandle]]:
    """
    Inject a temporary style rule hiding selectors; the tag is removed on exit.

    Injection failure is logged and capture proceeds unhidden.
    """
    handle: Optional[ElementHandle] = None
    css = build_hide_css(selectors)
    if css:
        try:
            handle = await page.add_style_tag(content=css)
        except Exception as e:
            logger.warning("hide_selectors_inject_failed", error=str(e), error_type=type(e).__name__)
    try:
        yield handle
    finally:
        if handle is not None:
            try:
                await handle.evaluate("(el) => el.remove()")
            except Exception as e:
                logger.warning(
                    "hide_selectors_remove_failed", error=str(e), error_type=type(e).__name__
                )


def reencode_image(image_bytes: bytes, fmt: str) -> bytes:
    """Re-encode image bytes into one of the screenshot formats (png, webp, jpg)."""
    pil_format, options = _PIL_FORMATS[fmt]
    with Image.open(BytesIO(image_bytes)) as image:
        if pil_format == "JPEG" and image.mode != "RGB":
            image = image.convert("RGB")
        out = BytesIO()
        image.save(out, format=pil_format, **options)
    return out.getvalue()


async def _capture_encoding(
    operation: Callable[[], Awaitable[bytes]],
    fmt: str,
    viewport: ViewportConfig,
) -> Optional[bytes]:
    """Run one encoding with its retry budget; None when it stays unrecoverable."""
    try:
        return await run_with_retries(
            operation,
            operation_name=f"screenshot_{fmt}",
            viewport=viewport.name,
        )
    except Exception:
        return None


async def capture_screenshots(
    page: Page,
    viewport: ViewportConfig,
    route_dir: Path,
    timestamp: str,
    *,
    url: str,
    hide_selectors: Sequence[str] = (),
    settle_ms: int = 0,
) -> ScreenshotPaths:
    """
    Resize to viewport, capture all three encodings, write latest files and history copies.

    Raises CaptureError when the viewport cannot be set or no encoding is
    recoverable; FileSystemError when a latest file cannot be written.
    """
    try:
        await run_with_retries(
            lambda: page.set_viewport_size({"width": viewport.width, "height": viewport.height}),
            operation_name="set_viewport",
            viewport=viewport.name,
        )
    except Exception as e:
        raise CaptureError(url, "Failed to set viewport", e) from e

    if settle_ms:
        await asyncio.sleep(settle_ms / 1000)

    async with hidden_selectors(page, hide_selectors):
        png_bytes = await _capture_encoding(
            lambda: page.screenshot(full_page=True, type="png"), PNG_FORMAT, viewport
        )
        jpg_bytes = await _capture_encoding(
            lambda: page.screenshot(full_page=True, type="jpeg", quality=JPEG_QUALITY),
            JPG_FORMAT,
            viewport,
        )

    source = png_bytes or jpg_bytes
    if source is None:
        raise CaptureError(url, f"Failed to capture screenshots for {viewport.name}")

    encoded: dict[str, Optional[bytes]] = {
        PNG_FORMAT: png_bytes,
        JPG_FORMAT: jpg_bytes,
        WEBP_FORMAT: await _capture_encoding(
            lambda: asyncio.to_thread(reencode_image, source, WEBP_FORMAT), WEBP_FORMAT, viewport
        ),
    }

    for fmt in SCREENSHOT_FORMATS:
        if encoded[fmt] is not None:
            continue
        logger.warning("screenshot_encoding_fallback", format=fmt, viewport=viewport.name)
        try:
            encoded[fmt] = await asyncio.to_thread(reencode_image, source, fmt)
        except Exception as e:
            raise CaptureError(url, f"Failed to encode {fmt} screenshot", e) from e

    paths = build_screenshot_paths(route_dir, viewport)
    for fmt, latest in paths.as_dict().items():
        latest_path = Path(latest)
        write_artifact(latest_path, encoded[fmt])
        copy_to_history(latest_path, timestamp)

    logger.info("screenshots_saved", viewport=viewport.name, label=viewport.label)
    return paths
