"""
Orbital Tracker command line.

Usage:
    orbital-tracker serve [--host HOST] [--port PORT]
    orbital-tracker positions CATEGORY [--limit N] [--timestamp ISO] [--offline]
    orbital-tracker weather [--history]

Add --verbose before the subcommand for debug logging.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from config import FALLBACK_ISS_TLE, ServiceConfig
from logging_config import configure_logging, get_logger
from orbital_tracker.catalog import Category
from orbital_tracker.exceptions import OrbitalTrackerError
from orbital_tracker.frames import parse_timestamp
from orbital_tracker.models import SatelliteRecord
from orbital_tracker.propagator import SatellitePropagator
from orbital_tracker.tle_parser import TLEParser

logger = get_logger(__name__)


def _fallback_records() -> List[SatelliteRecord]:
    text = "\n".join([FALLBACK_ISS_TLE["name"], FALLBACK_ISS_TLE["line1"], FALLBACK_ISS_TLE["line2"]])
    return TLEParser().parse_catalog(text, Category.ISS.value)


def cmd_serve(args, config: ServiceConfig) -> int:
    from orbital_tracker.app import create_app

    logger.info("Starting Orbital Tracker service")
    create_app(config).run(host=args.host or config.HOST, port=args.port or config.PORT, debug=False)
    return 0


def cmd_positions(args, config: ServiceConfig) -> int:
    timestamp = parse_timestamp(args.timestamp)

    if args.offline:
        records = _fallback_records()
    else:
        from orbital_tracker.celestrak import CelestrakClient

        client = CelestrakClient(config)
        try:
            records = client.fetch_satellites(Category.resolve(args.category, strict=True))
        finally:
            client.close()

    records = records[:args.limit] if args.limit else records
    batch = SatellitePropagator().propagate_batch(records, timestamp)

    print(f"{'NORAD':>6}  {'NAME':<24} {'LAT':>8} {'LON':>9} {'HEIGHT km':>10}")
    for i, record in enumerate(records):
        if not batch.valid[i]:
            print(f"{record.norad_id:>6}  {record.name[:24]:<24} {'no position':>29}")
            continue
        print(
            f"{record.norad_id:>6}  {record.name[:24]:<24} "
            f"{batch.lat[i]:8.3f} {batch.lng[i]:9.3f} {batch.height[i]:10.1f}"
        )
    logger.info(f"Propagated {len(records)} satellites, {batch.failed_count} failed",
                timestamp=timestamp.isoformat())
    return 0


def cmd_weather(args, config: ServiceConfig) -> int:
    from orbital_tracker.space_weather import SpaceWeatherClient

    client = SpaceWeatherClient(config)
    try:
        data = client.history() if args.history else client.current()["current"]
    finally:
        client.close()
    print(json.dumps(data, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orbital-tracker", description="Satellite tracking and space weather")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)
    serve.set_defaults(func=cmd_serve)

    positions = sub.add_parser("positions", help="Print current positions of a category")
    positions.add_argument("category", choices=[c.value for c in Category], type=str.upper)
    positions.add_argument("--limit", type=int, default=20)
    positions.add_argument("--timestamp", help="ISO-8601 time (default: now)")
    positions.add_argument("--offline", action="store_true",
                           help="Use the bundled ISS TLE instead of CelesTrak (ISS category only)")
    positions.set_defaults(func=cmd_positions)

    weather = sub.add_parser("weather", help="Print current space weather")
    weather.add_argument("--history", action="store_true", help="Print the history series instead")
    weather.set_defaults(func=cmd_weather)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "offline", False) and args.category != Category.ISS.value:
        parser.error(f"--offline only has an ISS element set, not {args.category}")

    if args.verbose:
        configure_logging(level=logging.DEBUG)

    try:
        return args.func(args, ServiceConfig())
    except OrbitalTrackerError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
