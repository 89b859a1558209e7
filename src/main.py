"""Command-line entry point for the preview service."""

import argparse
import asyncio
import json
import logging
import shutil
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from models.clip import ClipOptions
from services.preview_service import PreviewService, build_preview_service
from utils.config import load_config, setup_logging, validate_config
from utils.errors import PreviewError

logger = logging.getLogger(__name__)

console = Console()


class PreviewApp:
    """Runs one CLI command against a freshly built preview service."""

    def __init__(self, config: dict):
        self.config = config
        self.service: Optional[PreviewService] = None

    async def run(self, args: argparse.Namespace) -> int:
        self.service = build_preview_service(self.config)
        try:
            if args.command == "metadata":
                return await self._metadata(args)
            if args.command == "clip":
                return await self._clip(args)
            if args.command == "clear-cache":
                return self._clear_cache()
            if args.command == "stats":
                return self._stats()
            raise ValueError(f"Unknown command: {args.command}")
        finally:
            await self.service.aclose()

    async def _metadata(self, args: argparse.Namespace) -> int:
        metadata = await self.service.get_or_create_metadata(args.input, options_from_args(args))
        console.print_json(json.dumps(metadata.to_dict()))
        return 0

    async def _clip(self, args: argparse.Namespace) -> int:
        metadata, clip_path = await self.service.get_or_create_preview(
            args.input, options_from_args(args)
        )

        if args.output:
            output = Path(args.output)
            output.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(clip_path, output)
            clip_path = output

        console.print(
            f"[green]✓[/green] {metadata.artist} - {metadata.title} "
            f"({metadata.youtube_video_id} @ {metadata.clip_start_ms / 1000:.1f}s)"
        )
        console.print(f"Clip: {clip_path}")
        return 0

    def _clear_cache(self) -> int:
        removed = self.service.clear_cache()
        console.print(f"Cache cleared ({removed} files removed)")
        return 0

    def _stats(self) -> int:
        table = Table(title="Preview cache")
        table.add_column("Key")
        table.add_column("Value")
        for key, value in self.service.get_stats().items():
            table.add_row(key, str(value))
        console.print(table)
        return 0


def options_from_args(args: argparse.Namespace) -> ClipOptions:
    return ClipOptions.from_query(
        {
            "quality": getattr(args, "quality", None),
            "duration": getattr(args, "duration", None),
            "audio": not getattr(args, "no_audio", False),
            "width": getattr(args, "width", None),
            "height": getattr(args, "height", None),
        }
    )


def _add_option_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--quality", choices=["low", "medium", "max"], help="Encoding quality (default: medium)")
    parser.add_argument("--duration", type=int, help="Clip length in seconds, 3-10 (default: 7)")
    parser.add_argument("--no-audio", action="store_true", help="Render without an audio track")
    parser.add_argument("--width", type=int, help="Output width, 240-1920 (default: 640)")
    parser.add_argument("--height", type=int, help="Output height, 180-1080 (default: 360)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Track preview clip generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  preview metadata 3jEqW8QNyPB5MxWEGc8tJK
  preview clip https://youtu.be/FvLDcOIYo5o --quality max --duration 5
  preview clip 3jEqW8QNyPB5MxWEGc8tJK --output song.mp4
  preview clear-cache
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    metadata_parser = subparsers.add_parser("metadata", help="Resolve and print preview metadata")
    metadata_parser.add_argument("input", help="Spotify track id/URL or YouTube video id/URL")
    _add_option_arguments(metadata_parser)

    clip_parser = subparsers.add_parser("clip", help="Render (or fetch from cache) a preview clip")
    clip_parser.add_argument("input", help="Spotify track id/URL or YouTube video id/URL")
    _add_option_arguments(clip_parser)
    clip_parser.add_argument("-o", "--output", help="Copy the clip to this path")

    subparsers.add_parser("clear-cache", help="Remove all cached metadata and clips")
    subparsers.add_parser("stats", help="Show cache statistics")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = load_config()
    setup_logging(config.get("log_level", "INFO"))

    for problem in validate_config(config):
        logger.warning(problem)

    app = PreviewApp(config)
    try:
        return asyncio.run(app.run(args))
    except PreviewError as e:
        console.print(f"[red]✗[/red] {e.message} ({e.category})")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
