"""Worker: print grouped activity history as JSON.

Usage:
    python -m worker.show_history
    python -m worker.show_history --entity-type invoice --from 2026-10-01 --tz Asia/Kolkata
    python -m worker.show_history --entry 42
"""

import argparse
import sys

import structlog

from db.connection import get_session
from activity.services._helpers import dump_json
from activity.services.errors import HistoryNotFoundError
from activity.services.history_service import HistoryService
from activity.services.query_engine import HistoryCriteria

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Show activity history grouped by day",
    )
    parser.add_argument("--search", "-q", default=None, help="Free-text search term")
    parser.add_argument("--entity-type", "-t", default=None, help="Entity type filter")
    parser.add_argument("--action", "-a", default=None, help="Action filter")
    parser.add_argument("--from", dest="date_from", default=None, help="First day (YYYY-MM-DD)")
    parser.add_argument("--to", dest="date_to", default=None, help="Last day (YYYY-MM-DD)")
    parser.add_argument("--tz", default=None, help="IANA time zone for day grouping")
    parser.add_argument("--entry", type=int, default=None, help="Show one entry with decoded changes")
    parser.add_argument("--filters", action="store_true", help="Show available filter values")
    args: argparse.Namespace = parser.parse_args(argv)
    # stdout carries the result; logs go to stderr.
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))

    with get_session() as session:
        service: HistoryService = HistoryService(session)
        if args.entry is not None:
            try:
                result: object = service.entry_detail(args.entry, timezone=args.tz)
            except HistoryNotFoundError:
                logger.error("History entry not found", entry_id=args.entry)
                return 1
        elif args.filters:
            result = service.filter_options()
        else:
            criteria: HistoryCriteria = HistoryCriteria(
                search=args.search,
                entity_type=args.entity_type,
                action=args.action,
                date_from=args.date_from,
                date_to=args.date_to,
                timezone=args.tz,
            )
            result = service.history_page(criteria)
            logger.info("History loaded", total=result["total"], groups=len(result["groups"]))

    print(dump_json(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
