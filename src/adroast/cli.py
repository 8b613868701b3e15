"""Command-line interface for adroast.

Provides the main entry point for watching and roasting ads live,
running the rate-limiting proxy, or testing the frame source.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="adroast",
        description="Live snarky commentary on the ads in front of your camera",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/adroast.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    watch_parser = subparsers.add_parser("watch", help="Watch the feed and roast ads live")
    watch_parser.add_argument(
        "--duration", type=float, default=None,
        help="Stop after this many seconds (default: until Ctrl+C or the session limit)",
    )
    watch_parser.add_argument(
        "--segmentation", choices=["off", "signal", "brand_change"], default=None,
        help="Override the ad boundary policy",
    )

    subparsers.add_parser("proxy", help="Run the rate-limiting analyzer proxy")
    subparsers.add_parser("capture-test", help="Capture one frame and save it")

    return parser.parse_args(argv)


def build_source(settings):
    """Build the configured frame source."""
    if settings.capture.source == "folder":
        from adroast.capture.folder import ImageFolderSource

        if not settings.capture.folder:
            raise SystemExit("capture.folder must be set when capture.source is 'folder'")
        return ImageFolderSource(settings.capture.folder)

    from adroast.capture.webcam import WebcamCapture

    resolution = None
    if settings.capture.resolution_width and settings.capture.resolution_height:
        resolution = (settings.capture.resolution_width, settings.capture.resolution_height)
    return WebcamCapture(device_index=settings.capture.device_index, resolution=resolution)


def build_analyzer(settings):
    """Build the configured vision analyzer."""
    cfg = settings.analyzer
    if cfg.provider == "proxy":
        from adroast.analyzer.proxy import ProxyAnalyzer

        return ProxyAnalyzer(
            base_url=cfg.proxy_url,
            model=cfg.model,
            system_prompt=cfg.system_prompt_override,
            max_tokens=cfg.max_tokens,
            temperature=cfg.temperature,
            image_detail=cfg.image_detail,
            jpeg_quality=settings.capture.jpeg_quality,
        )

    if cfg.provider == "anthropic":
        from adroast.analyzer.anthropic import AnthropicAnalyzer

        return AnthropicAnalyzer(
            api_key=settings.anthropic_api_key.get_secret_value(),
            model=cfg.model,
            system_prompt=cfg.system_prompt_override,
            max_tokens=cfg.max_tokens,
            temperature=cfg.temperature,
            jpeg_quality=settings.capture.jpeg_quality,
        )

    from adroast.analyzer.openai import OpenAIAnalyzer

    api_key = settings.openai_api_key.get_secret_value()
    base_url = cfg.base_url
    # If OpenRouter key is set, use it
    or_key = settings.openrouter_api_key.get_secret_value()
    if or_key:
        api_key = or_key
        if not base_url:
            base_url = "https://openrouter.ai/api/v1"

    return OpenAIAnalyzer(
        api_key=api_key,
        model=cfg.model,
        base_url=base_url,
        system_prompt=cfg.system_prompt_override,
        max_tokens=cfg.max_tokens,
        temperature=cfg.temperature,
        image_detail=cfg.image_detail,
        jpeg_quality=settings.capture.jpeg_quality,
    )


def build_loop(settings, source, analyzer, segmentation_policy: str | None = None):
    """Wire a live loop and its collaborators from settings."""
    from adroast.domain.models import CommentaryBubble
    from adroast.live.loop import LiveAnalysisLoop
    from adroast.presentation.scheduler import CommentaryScheduler
    from adroast.session.governor import SessionTimeGovernor
    from adroast.session.ledger import SessionLedger
    from adroast.session.segmentation import SegmentationState, make_policy

    def show_bubble(bubble: CommentaryBubble) -> None:
        if bubble.lane.value == "left":
            print(f"  [{bubble.accent.value:>5}] {bubble.text}")
        else:
            print(f"{'':>40}{bubble.text} [{bubble.accent.value}]")

    def show_error(message: str) -> None:
        print(f"  !! {message}")

    pres = settings.presentation
    scheduler = CommentaryScheduler(
        release_interval=pres.release_interval,
        sweep_interval=pres.sweep_interval,
        bubble_ttl=pres.bubble_ttl,
        max_visible=pres.max_visible,
        on_release=show_bubble,
    )
    governor = SessionTimeGovernor(
        ceiling=settings.loop.session_limit_seconds,
        tick_duration=settings.loop.tick_interval,
    )
    segmentation = SegmentationState(
        ledger=SessionLedger(),
        policy=make_policy(segmentation_policy or settings.loop.segmentation),
    )
    return LiveAnalysisLoop(
        source=source,
        analyzer=analyzer,
        scheduler=scheduler,
        governor=governor,
        segmentation=segmentation,
        tick_interval=settings.loop.tick_interval,
        context_max_chars=settings.loop.context_max_chars,
        on_error=show_error,
    )


async def _watch(settings, args) -> None:
    """Open the frame source and run the live loop until stopped."""
    source = build_source(settings)
    analyzer = build_analyzer(settings)
    loop = build_loop(settings, source, analyzer, args.segmentation)

    try:
        async with source:
            if not loop.start():
                print(loop.last_error or "Could not start analysis.")
                return
            print("Watching. Press Ctrl+C to stop.\n")
            try:
                if args.duration:
                    await asyncio.wait_for(loop.wait_stopped(), timeout=args.duration)
                else:
                    await loop.wait_stopped()
            except asyncio.TimeoutError:
                pass
            finally:
                loop.stop()
                _print_reel(loop)
    finally:
        await analyzer.aclose()


def _print_reel(loop) -> None:
    """Print the one-liner for every ad seen this run."""
    if loop.limit_reached:
        print(f"\n{loop.last_error}")

    history = loop.segmentation.ledger.history
    print(f"\nRoast reel ({len(history)} ads):")
    for record in history:
        print(f"  {record.brand_guess}: {record.one_liner}")


async def _capture_test(settings) -> None:
    """Capture a single frame and save to file."""
    import cv2

    source = build_source(settings)
    async with source:
        frame = None
        for _ in range(10):
            frame = await source.capture()
            if frame is not None:
                break
            await asyncio.sleep(0.2)
    if frame is None:
        print("No frame available from the source.")
        return
    outfile = "capture_test.jpg"
    cv2.imwrite(outfile, frame.image)
    print(f"Saved frame to {outfile} ({frame.image.shape[1]}x{frame.image.shape[0]})")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the adroast CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from adroast.config.settings import load_settings
    from adroast.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "watch":
        logger.info("Starting live analysis (provider=%s)", settings.analyzer.provider)
        try:
            asyncio.run(_watch(settings, args))
        except KeyboardInterrupt:
            print("\nStopped.")

    elif args.command == "proxy":
        logger.info("Starting analyzer proxy on %s:%d", settings.proxy.host, settings.proxy.port)
        from adroast.proxy.server import run
        run(settings)

    elif args.command == "capture-test":
        logger.info("Running capture test")
        asyncio.run(_capture_test(settings))


if __name__ == "__main__":
    main()
