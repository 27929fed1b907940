#!/usr/bin/env python
"""
Command-line interface for trailmerge

Usage:
    python cli.py preprocess --input elements.json --output features.geojson
    python cli.py lines --input elements.json --cache-dir ./cache
    python cli.py add-point --lat 31.77 --lon 35.21 --type closed_gate --cache-dir ./cache
"""

import os
import sys
import json
import argparse

from loguru import logger
from pydantic import ValidationError

from trailmerge.config import get_config
from trailmerge.errors import TrailMergeError
from trailmerge.models import AddSimplePointRequest, SimplePointType
from trailmerge.osm import OsmApiClient, OSMResponseParser
from trailmerge.pipeline import TrailMergePipeline


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def load_elements(path: str):
    """Load OSM JSON (API or Overpass format) into complete elements"""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return OSMResponseParser.parse_elements(data)


def cmd_preprocess(args):
    """Merge same-name elements and write enriched features"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    elements = load_elements(args.input)
    logger.info(f"Loaded {len(elements)} elements from {args.input}")

    pipeline = TrailMergePipeline()
    features = pipeline.preprocess(elements)
    pipeline.save(features, args.output)

    logger.info(f"✓ Generated: {args.output}")
    logger.info(f"  Features: {len(features)}")
    return 0


def cmd_lines(args):
    """Build the line cache from the highways of an OSM JSON file"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    elements = load_elements(args.input)
    pipeline = TrailMergePipeline(cache_dir=args.cache_dir)
    count = pipeline.rebuild_line_cache(elements)
    logger.info(f"✓ Cached {count} line features in {args.cache_dir}")
    return 0


def cmd_add_point(args):
    """Add a simple point to OSM"""
    setup_logging(args.verbose)

    try:
        request = AddSimplePointRequest(lat_lng={"lat": args.lat, "lng": args.lon}, point_type=args.type)
    except ValidationError as e:
        logger.error(f"Invalid request: {e}")
        return 1

    config = get_config()
    if args.base_url:
        config.api.base_url = args.base_url

    pipeline = TrailMergePipeline(config=config, cache_dir=args.cache_dir)
    api = OsmApiClient(access_token=args.token, config=config.api)

    try:
        result = pipeline.add_point(api, request)
    except TrailMergeError as e:
        logger.error(f"Failed to add point: {e}")
        return 1

    logger.info(f"✓ Uploaded changeset {result.changeset_id} ({type(result.decision).__name__})")
    if not result.cache_refreshed:
        logger.warning("  Line cache could not be refreshed")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="trailmerge CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Preprocess an OSM JSON dump:
    python cli.py preprocess --input elements.json --output features.geojson

  Build the line cache:
    python cli.py lines --input elements.json --cache-dir ./cache

  Add a gate (token from OSM_ACCESS_TOKEN or .env):
    python cli.py add-point --lat 31.77 --lon 35.21 --type closed_gate --cache-dir ./cache
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    pre_parser = subparsers.add_parser("preprocess", help="Merge and enrich OSM elements")
    pre_parser.add_argument("--input", "-i", required=True, help="Input OSM JSON file")
    pre_parser.add_argument("--output", "-o", default="features.geojson", help="Output GeoJSON file")
    pre_parser.set_defaults(func=cmd_preprocess)

    lines_parser = subparsers.add_parser("lines", help="Build the line cache from highways")
    lines_parser.add_argument("--input", "-i", required=True, help="Input OSM JSON file")
    lines_parser.add_argument("--cache-dir", required=True, help="Line cache directory")
    lines_parser.set_defaults(func=cmd_lines)

    add_parser = subparsers.add_parser("add-point", help="Add a simple point to OSM")
    add_parser.add_argument("--lat", type=float, required=True, help="Latitude")
    add_parser.add_argument("--lon", type=float, required=True, help="Longitude")
    add_parser.add_argument("--type", required=True, choices=[t.value for t in SimplePointType], help="Point type")
    add_parser.add_argument("--cache-dir", help="Line cache directory")
    add_parser.add_argument("--token", help="OSM OAuth2 access token (default: OSM_ACCESS_TOKEN)")
    add_parser.add_argument("--base-url", help="OSM API base url")
    add_parser.set_defaults(func=cmd_add_point)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
