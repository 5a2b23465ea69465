"""Command-line entry point for image hunts."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, Sequence

from .config import DEFAULT_STRATEGY_ORDER, QUALITY_PRESETS, load_config
from .hunter import run_hunt
from .report import analyse_directory, compose_analysis

logger = logging.getLogger("image_hunt.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("hunt", *argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _add_hunt_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("search_term", help="What to search for")
    parser.add_argument(
        "-n",
        "--count",
        type=int,
        default=None,
        help="Number of images that must pass the quality standard (default: 50)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON settings file whose keys override the defaults",
    )
    parser.add_argument(
        "--quality",
        choices=sorted(QUALITY_PRESETS),
        default=None,
        help="Preset for source navigations, delay, and search size",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory where images and reports should be written",
    )
    parser.add_argument(
        "--delay",
        type=int,
        default=None,
        help="Milliseconds to wait before each download",
    )
    parser.add_argument("--min-width", type=int, default=None, help="Minimum image width")
    parser.add_argument("--min-height", type=int, default=None, help="Minimum image height")
    parser.add_argument(
        "--min-megapixels",
        type=float,
        default=None,
        help="Minimum image resolution in megapixels",
    )
    parser.add_argument(
        "--max-source-navigations",
        type=int,
        default=None,
        help="How many source pages may be opened to look for larger images",
    )
    parser.add_argument(
        "--fallback-to-thumbnails",
        action="store_true",
        default=None,
        help="Keep thumbnails when no full-size image can be found",
    )
    parser.add_argument(
        "--precheck-declared",
        action="store_true",
        default=None,
        help="Skip candidates whose declared size is already below the standard",
    )
    parser.add_argument(
        "--image-type",
        choices=["photo", "clipart", "lineart", "any"],
        default=None,
        help="Image type filter passed to the search",
    )
    parser.add_argument(
        "--size",
        choices=["medium", "large", "xlarge"],
        default=None,
        help="Size filter passed to the search",
    )
    parser.add_argument(
        "--safe-search",
        choices=["strict", "moderate", "off"],
        default=None,
        help="Safe search level",
    )
    parser.add_argument(
        "--strategy-order",
        nargs="+",
        choices=list(DEFAULT_STRATEGY_ORDER),
        default=None,
        help="Extraction strategies to run, highest priority first",
    )
    parser.add_argument(
        "--show-browser",
        action="store_true",
        help="Run the browser with a visible window",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_analyse_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        type=Path,
        nargs="?",
        default=Path("downloads"),
        help="Directory of previously downloaded images",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find full-resolution images for a search term and keep those that meet a quality standard.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    hunt_parser = subparsers.add_parser(
        "hunt", help="Search, resolve, and download images for a term"
    )
    _add_hunt_arguments(hunt_parser)

    analyse_parser = subparsers.add_parser(
        "analyse", help="Summarise dimensions and quality of downloaded images"
    )
    _add_analyse_arguments(analyse_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace):
    config = load_config(
        args.config,
        download_dir=args.output,
        delay_ms=args.delay,
        min_width=args.min_width,
        min_height=args.min_height,
        min_megapixels=args.min_megapixels,
        max_source_navigations=args.max_source_navigations,
        fallback_to_thumbnails=args.fallback_to_thumbnails,
        precheck_declared=args.precheck_declared,
        image_type=args.image_type,
        size=args.size,
        safe_search=args.safe_search,
        strategy_order=args.strategy_order,
        max_results=args.count,
        headless=False if args.show_browser else None,
    )
    if args.quality:
        config = config.with_preset(args.quality)
        # Explicit flags win over the preset.
        for name, value in (
            ("delay_ms", args.delay),
            ("max_source_navigations", args.max_source_navigations),
            ("size", args.size),
        ):
            if value is not None:
                setattr(config, name, value)
    config.download_dir = config.download_dir.resolve()
    return config


def _run_hunt(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    config = build_config(args)

    overall_start = time.perf_counter()
    outcome = asyncio.run(run_hunt(args.search_term, config))
    total_elapsed = time.perf_counter() - overall_start

    logger.info(
        "Finished in %.1fs (%d/%d kept, %d candidates processed of %d)",
        total_elapsed,
        outcome.kept,
        outcome.target,
        outcome.processed,
        outcome.candidate_count,
    )
    for idx, result in enumerate(outcome.best_captures(), start=1):
        meta = result.metadata
        logger.info(
            "  %d. %dx%d (%.1fMP) quality %d%% -> %s",
            idx,
            meta.width,
            meta.height,
            meta.megapixels,
            meta.quality_score,
            result.filepath,
        )
    return 0 if outcome.complete else 1


def _run_analyse(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    root = args.path.expanduser().resolve()
    if not root.is_dir():
        logger.error("Not a directory: %s", root)
        return 2
    sys.stdout.write(compose_analysis(root, analyse_directory(root)))
    sys.stdout.flush()
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "hunt":
        status = _run_hunt(args)
    else:
        status = _run_analyse(args)
    sys.exit(status)


if __name__ == "__main__":
    main()
