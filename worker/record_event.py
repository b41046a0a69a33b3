"""Worker: record one history entry from a script or cron job.

Usage:
    python -m worker.record_event --entity-type invoice --entity-id 17 --action update \
        --name "INV-0017" --changes '[{"field": "status", "from": "draft", "to": "paid"}]'
"""

import argparse
import sys

import structlog

from db.connection import get_session
from activity.services.errors import HistoryError
from activity.services.history_service import HistoryService

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Record an activity history entry",
    )
    parser.add_argument("--entity-type", "-t", required=True, help="Entity type, e.g. invoice")
    parser.add_argument("--entity-id", "-i", required=True, help="Entity identifier")
    parser.add_argument("--action", "-a", required=True, help="create | update | delete | cancel | revision")
    parser.add_argument("--name", "-n", default=None, help="Entity display name")
    parser.add_argument("--changes", "-c", default=None, help="Serialized changes payload")
    parser.add_argument("--user-id", default=None, help="Acting user id")
    parser.add_argument("--user-name", default=None, help="Acting user name")
    args: argparse.Namespace = parser.parse_args(argv)
    # stdout carries the result; logs go to stderr.
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))

    try:
        with get_session() as session:
            entry_id: int = HistoryService(session).record(
                entity_type=args.entity_type,
                entity_id=args.entity_id,
                action=args.action,
                entity_name=args.name,
                changes=args.changes,
                user_id=args.user_id,
                user_name=args.user_name,
            )
    except HistoryError as e:
        logger.error("record_failed", detail=str(e))
        return 1

    print(entry_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
