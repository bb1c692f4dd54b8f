"""
Command line entry point.

Usage:
    ingredient-pipeline analyze photo.jpg
    ingredient-pipeline tags tomato onion "olive oil"
    ingredient-pipeline search "cheddar" --limit 5
    ingredient-pipeline health
"""
import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config_loader import load_pipeline_config
from .run import IngredientPipeline


def _dump(ingredients) -> str:
    return json.dumps([i.model_dump(mode="json") for i in ingredients], indent=2, ensure_ascii=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ingredient-pipeline",
        description="Resolve image recognition labels into canonical food ingredients",
    )
    parser.add_argument(
        "--config",
        dest="config_dir",
        type=Path,
        default=None,
        help="Config directory path (default: packaged configs)"
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help="Maximum ingredients returned (overrides VISION_MAX_RESULTS)"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Debug logging, including per-candidate scores"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    analyze = commands.add_parser("analyze", help="Recognize an image and match its tags")
    analyze.add_argument("image", type=Path, help="Path to image file")

    tags = commands.add_parser("tags", help="Match raw tags (skips recognition)")
    tags.add_argument("tags", nargs="+", help="Raw tags")

    search = commands.add_parser("search", help="Direct ingredient lookup")
    search.add_argument("query", help="Search text")
    search.add_argument("--limit", type=int, default=None, help="Maximum results (default: 20)")

    commands.add_parser("health", help="Check the recognition and search services")
    return parser


async def _run(args: argparse.Namespace, pipeline: IngredientPipeline) -> int:
    if args.command == "analyze":
        print(_dump(await pipeline.analyze_image(args.image)))
    elif args.command == "tags":
        print(_dump(await pipeline.analyze(args.tags)))
    elif args.command == "search":
        print(_dump(await pipeline.search_ingredients(args.query, limit=args.limit)))
    elif args.command == "health":
        status = await pipeline.health_check()
        print(json.dumps(status.model_dump(), indent=2))
        return 0 if status.overall else 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "analyze" and not args.image.exists():
        print(f"ERROR: Image not found: {args.image}", file=sys.stderr)
        return 1

    config = load_pipeline_config(args.config_dir)
    if args.max_results is not None:
        config = dataclasses.replace(config, max_results=args.max_results)

    return asyncio.run(_run(args, IngredientPipeline(config)))


if __name__ == "__main__":
    sys.exit(main())
