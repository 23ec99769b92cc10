#!/usr/bin/env python3
"""
CLI script for capturing a website.

Usage: python run_capture.py --url <site_url> [--max-depth 2] [--video] [--no-headless]
"""

import argparse
import asyncio
import json
import sys

from dotenv import load_dotenv

load_dotenv()

from capture.errors import BrowserError, FileSystemError
from capture.models import CaptureConfig, VideoOptions, ViewportConfig
from capture.service import CaptureService
from shared.config import AppConfig, parse_viewport_spec
from shared.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crawl a website and capture every route")
    parser.add_argument("--url", required=True, help="Seed URL (https:// is assumed when omitted)")
    parser.add_argument("--output-dir", help="Output directory (default: CAPTURE_OUTPUT_DIR or ui-captures)")
    parser.add_argument("--max-depth", type=int, help="Maximum link depth from the seed URL")
    parser.add_argument("--concurrency", type=int, help="Number of routes captured in parallel")
    parser.add_argument("--wait-ms", type=int, help="Extra wait after network idle before capture")
    parser.add_argument("--video", action="store_true", help="Record multi-quality video per viewport")
    parser.add_argument("--video-duration-ms", type=int, help="Length of each master recording")
    parser.add_argument(
        "--viewport",
        action="append",
        default=[],
        metavar="NAME:WxH",
        help="Viewport to capture; repeatable (default: desktop, tablet, mobile)",
    )
    parser.add_argument("--allow-host", action="append", default=[], help="Extra host to crawl; repeatable")
    parser.add_argument(
        "--include-subdomains",
        action="store_true",
        help="Also crawl subdomains of the seed and allowed hosts",
    )
    parser.add_argument(
        "--hide-selector",
        action="append",
        default=[],
        help="CSS selector hidden during screenshots; repeatable",
    )
    parser.add_argument(
        "--menu-selector",
        action="append",
        default=[],
        help="CSS selector clicked to expand menus before link discovery; repeatable",
    )
    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Show browser window (Chrome). Use for local debugging.",
    )
    return parser


def build_capture_config(args: argparse.Namespace, app_config: AppConfig) -> CaptureConfig:
    """CaptureConfig from environment defaults with CLI flags applied on top."""
    viewports = None
    if args.viewport:
        viewports = tuple(
            ViewportConfig(name, width, height)
            for name, width, height in parse_viewport_spec(",".join(args.viewport))
        )
    video_options = None
    if args.video_duration_ms is not None:
        video_options = VideoOptions(
            duration_ms=args.video_duration_ms,
            interactions=app_config.video_interactions,
        )
    return CaptureConfig.from_app_config(
        app_config,
        output_dir=args.output_dir,
        viewports=viewports,
        max_depth=args.max_depth,
        route_concurrency=args.concurrency,
        wait_time_ms=args.wait_ms,
        capture_video=True if args.video else None,
        video_options=video_options,
        allowed_hosts=tuple(args.allow_host) or None,
        include_subdomains=True if args.include_subdomains else None,
        hide_selectors=tuple(args.hide_selector) or None,
        menu_selectors=tuple(args.menu_selector) or None,
        headless=False if args.no_headless else None,
    )


async def main(argv=None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        app_config = AppConfig.from_env()
    except ValueError as e:
        print(f"Invalid environment: {e}", file=sys.stderr)
        return 1
    try:
        configure_logging(
            level=app_config.log_level,
            log_file=app_config.log_file,
            log_stdout=app_config.log_stdout,
            log_format=app_config.log_format,
        )
    except ValueError as e:
        print(f"Invalid logging configuration: {e}", file=sys.stderr)
        return 1

    try:
        config = build_capture_config(args, app_config)
        results = await CaptureService(config).capture_website(args.url)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1
    except (BrowserError, FileSystemError) as e:
        print(f"Capture failed: {e}", file=sys.stderr)
        return 1

    failed = [r for r in results.values() if not r.succeeded]

    print("\n" + "=" * 80)
    print("CAPTURE RESULTS")
    print("=" * 80)
    print(f"\nOutput: {config.output_dir}")
    print(f"Total Routes: {len(results)}")
    print(f"Successful: {len(results) - len(failed)}")
    print(f"Failed: {len(failed)}")

    if failed:
        print(f"\nErrors ({len(failed)}):")
        for result in sorted(failed, key=lambda r: r.url):
            print(f"  - {result.url}: {result.error}")

    print("\n" + "=" * 80)
    print("JSON OUTPUT")
    print("=" * 80)
    print(
        json.dumps(
            {
                "output_dir": config.output_dir,
                "routes": sorted(r.route for r in results.values()),
                "failed": {r.url: r.error for r in failed},
            },
            indent=2,
        )
    )

    return 1 if failed else 0


def cli() -> None:
    """Console-script entry point."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
