"""CLI entrypoint."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from moodmap import config
from moodmap.errors import LocationUnavailable, SearchFailure
from moodmap.geo import resolve_origin
from moodmap.moods import Mood
from moodmap.pipeline import run_search
from moodmap.refine import RefineOptions, SortOption
from moodmap.reporting import format_place_line


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Optionally load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find nearby places that match your mood")
    parser.add_argument(
        "--mood",
        required=True,
        choices=[m.value for m in Mood],
        help="What you are in the mood for",
    )
    parser.add_argument("--lat", type=float, default=None, help="Origin latitude")
    parser.add_argument("--lon", type=float, default=None, help="Origin longitude")
    parser.add_argument(
        "--provider",
        choices=list(config.PROVIDERS),
        default=None,
        help=f"Geodata provider (default: {config.DEFAULT_PROVIDER})",
    )
    parser.add_argument(
        "--sort",
        choices=[s.value for s in SortOption],
        default=SortOption.DISTANCE.value,
    )
    parser.add_argument("--open-only", action="store_true", help="Only show places open right now")
    parser.add_argument(
        "--min-rating",
        type=float,
        choices=list(config.MIN_RATING_OPTIONS),
        default=0.0,
        help="Minimum rating (0 = any)",
    )
    parser.add_argument("--out", type=str, default=config.OUTPUT_DIR)
    parser.add_argument("--no-write", action="store_true", help="Print results without writing files")
    parser.add_argument("--config", type=str, default=None, help="Path to search_config.json")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not config.load_search_config(args.config) and args.config:
        print(f"Config file not found: {args.config}", file=sys.stderr)
        return 1

    try:
        origin = resolve_origin(args.lat, args.lon)
    except LocationUnavailable as exc:
        print(f"Location unavailable: {exc}", file=sys.stderr)
        return 2

    options = RefineOptions(
        sort_by=SortOption(args.sort),
        open_only=args.open_only,
        min_rating=args.min_rating,
    )
    try:
        result = run_search(
            origin,
            args.mood,
            provider_name=args.provider,
            options=options,
            output_dir=args.out,
            write_outputs=not args.no_write,
        )
    except SearchFailure as exc:
        print(f"Search failed: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not result.places:
        print("No places found for your selected mood. Try a different option.")
        return 0
    if not result.displayed:
        print("No places match your filters. Try adjusting them.")
        return 0

    print(f"{len(result.displayed)} places found")
    for idx, place in enumerate(result.displayed, start=1):
        print(format_place_line(idx, place))
    if not args.no_write:
        print(f"Results written to {args.out}/results.json and {args.out}/markers.geojson")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
