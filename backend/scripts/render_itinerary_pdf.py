"""Render an itinerary JSON file to PDF.

Usage:
    PYTHONPATH=backend python -m scripts.render_itinerary_pdf trip.json --title "Coast Trip"

The input is the JSON array returned by the itinerary model (one object per
day). With --enrich, missing photos are looked up through the image-search
proxy before rendering; --interests narrows each day's activities.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from domain.models import INTEREST_CATEGORIES, parse_itinerary
from services.enrichment import EnrichmentError, enrich_itinerary
from services.interest_filter import filter_itinerary
from services.layout_engine import EmptyItineraryError
from services.render_pdf import render_itinerary_pdf

LOG = logging.getLogger("render_itinerary_pdf")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("input", type=Path, help="itinerary JSON file")
    parser.add_argument("--output-dir", type=Path, default=Path("."))
    parser.add_argument("--title", default="Travel Itinerary")
    parser.add_argument("--traveler", default="")
    parser.add_argument("--dates", default="", help="travel date range shown in the header")
    parser.add_argument(
        "--interests",
        nargs="*",
        default=list(INTEREST_CATEGORIES),
        help="activity categories to keep (default: all)",
    )
    parser.add_argument("--enrich", action="store_true", help="look up missing photos first")
    parser.add_argument("--no-images", action="store_true", help="do not embed photos")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        raw = json.loads(args.input.read_text(encoding="utf-8"))
        itinerary = parse_itinerary(raw)
    except (OSError, ValueError) as exc:
        LOG.error("Could not read itinerary from %s: %s", args.input, exc)
        return 2

    if args.enrich:
        try:
            itinerary = enrich_itinerary(itinerary)
        except EnrichmentError as exc:
            LOG.warning("Enriching with images failed, rendering without new photos: %s", exc)

    itinerary = filter_itinerary(itinerary, args.interests)

    try:
        out = render_itinerary_pdf(
            itinerary,
            output_dir=args.output_dir,
            title=args.title,
            traveler_name=args.traveler,
            date_range=args.dates,
            include_images=not args.no_images,
        )
    except EmptyItineraryError as exc:
        LOG.error("%s", exc)
        return 1

    print(out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
