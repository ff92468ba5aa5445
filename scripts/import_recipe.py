#!/usr/bin/env python
"""
Run one recipe import and print the outcome as JSON.

Run manually:
    python scripts/import_recipe.py https://example.com/recipes/banana-bread
    python scripts/import_recipe.py saved_page.html --source-url https://example.com/recipes/banana-bread
"""
import argparse
import asyncio
import logging
import os
import sys

from mealforge_import.app.core.config import get_settings
from mealforge_import.app.services.extraction.models import SourceReference, VIDEO_EXTENSIONS
from mealforge_import.app.services.extraction.pipeline import RecipeImportPipeline

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("import_recipe")


def build_source(target: str, source_url: str = None) -> SourceReference:
    if target.startswith(("http://", "https://")):
        return SourceReference.from_url(target)
    ext = os.path.splitext(target)[1].lower()
    if ext in VIDEO_EXTENSIONS:
        with open(target, "rb") as fh:
            return SourceReference.from_video_file(os.path.basename(target), None, fh.read())
    with open(target, "r", encoding="utf-8", errors="replace") as fh:
        return SourceReference.from_html(fh.read(), source_url=source_url)


async def run_import(target: str, source_url: str = None) -> int:
    settings = get_settings()
    pipeline = RecipeImportPipeline(settings=settings)
    try:
        source = build_source(target, source_url)
    except (OSError, ValueError) as exc:
        logger.error("Cannot import %s: %s", target, exc)
        return 2
    outcome = await pipeline.run(source)
    print(outcome.model_dump_json(indent=2, exclude={"attempts"}))
    return 1 if outcome.needs_review else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a recipe from a URL, HTML file or video file.")
    parser.add_argument("target", help="recipe URL, saved HTML file, or video file")
    parser.add_argument("--source-url", help="original URL for a saved HTML file")
    args = parser.parse_args()
    sys.exit(asyncio.run(run_import(args.target, args.source_url)))


if __name__ == "__main__":
    main()
