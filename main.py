"""
Flight Schedule Service - Entry Point

Collect schedules for an airport (runs in a background worker, waits for it):
    python main.py collect ICN 2025-08-01 2025-08-03

Query stored schedules:
    python main.py flights ICN-CEB 2025-08-01
    python main.py month ICN-CEB 2025 8
    python main.py routes

Inspect runs:
    python main.py status <run-id>
    python main.py requests --limit 20

Backfill a whole month day by day:
    python main.py backfill ICN 2025 8

Environment variables:
    AERODATABOX_API_KEY: RapidAPI key (required for collect/backfill)
    STORE_BACKEND: sqlite (default) or s3
    DB_PATH: SQLite database file (default: data/flight_schedules.db)
"""

import argparse
import json
import sys

from src.utils.logger import setup_logger, logger
from src.utils.exceptions import FlightServiceError
from src.ingestion.config import settings

from dotenv import load_dotenv
load_dotenv()


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _cmd_collect(service, args) -> int:
    run_id = service.request_collection(args.airport, args.start, args.end)
    logger.info(f"Run {run_id} accepted, waiting for it to finish...")
    try:
        service.close(wait=True)
    except KeyboardInterrupt:
        logger.warning("Interrupted, cancelling run")
        service.cancel_collection(run_id)
        service.close(wait=True)

    request = service.get_run_status(run_id)
    _print_json(request.to_dict())
    return 0 if request.status.value == "completed" else 1


def _cmd_backfill(service, args) -> int:
    written = service.pipeline.collect_month(args.airport.upper(), args.year, args.month)
    if written:
        service.cache.invalidate()
    logger.info(f"Backfill stored {written} new schedules")
    return 0


def _cmd_status(service, args) -> int:
    _print_json(service.get_run_status(args.run_id).to_dict())
    return 0


def _cmd_requests(service, args) -> int:
    _print_json([request.to_dict() for request in service.list_collection_requests(args.limit)])
    return 0


def _cmd_flights(service, args) -> int:
    _print_json([flight.to_document() for flight in service.get_flights(args.route, args.date)])
    return 0


def _cmd_month(service, args) -> int:
    flights = service.get_flights_for_month(args.route, args.year, args.month)
    _print_json([flight.to_document() for flight in flights])
    return 0


def _cmd_routes(service, args) -> int:
    _print_json(service.list_routes())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Flight Schedule Ingestion and Query Service"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: from settings)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    collect = sub.add_parser("collect", help="Collect schedules for an airport and date range")
    collect.add_argument("airport", help="Departure airport IATA code, e.g. ICN")
    collect.add_argument("start", help="Range start, YYYY-MM-DD[THH:MM]")
    collect.add_argument("end", help="Range end (exclusive), YYYY-MM-DD[THH:MM]")
    collect.set_defaults(func=_cmd_collect)

    backfill = sub.add_parser("backfill", help="Collect every day of a month in two slots per day")
    backfill.add_argument("airport")
    backfill.add_argument("year", type=int)
    backfill.add_argument("month", type=int)
    backfill.set_defaults(func=_cmd_backfill)

    status = sub.add_parser("status", help="Show a collection run")
    status.add_argument("run_id")
    status.set_defaults(func=_cmd_status)

    requests = sub.add_parser("requests", help="List recent collection runs")
    requests.add_argument("--limit", type=int, default=50)
    requests.set_defaults(func=_cmd_requests)

    flights = sub.add_parser("flights", help="Schedules of a route on a date")
    flights.add_argument("route", help="DEP-ARR, e.g. ICN-CEB")
    flights.add_argument("date", help="YYYY-MM-DD")
    flights.set_defaults(func=_cmd_flights)

    month = sub.add_parser("month", help="Schedules of a route for a month")
    month.add_argument("route")
    month.add_argument("year", type=int)
    month.add_argument("month", type=int)
    month.set_defaults(func=_cmd_month)

    routes = sub.add_parser("routes", help="List stored routes")
    routes.set_defaults(func=_cmd_routes)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the service."""
    args = build_parser().parse_args(argv)

    # Configure logging
    log_level = args.log_level or settings.logging.level
    setup_logger(
        log_level=log_level,
        log_dir=settings.logging.log_dir,
        log_file=settings.logging.log_file,
        rotation=settings.logging.rotation,
        retention=settings.logging.retention,
    )

    logger.info(f"Environment: {settings.environment} | store: {settings.store.backend}")

    from src.ingestion import create_service

    service = create_service()
    try:
        return args.func(service, args)
    except FlightServiceError as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        return 2
    finally:
        service.close(wait=False)


if __name__ == "__main__":
    sys.exit(main())
