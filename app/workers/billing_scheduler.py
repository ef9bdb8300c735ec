"""
Planificateur des changements de facturation.

Applique, tenant par tenant et par date d'effet croissante, tous les
BillingChange PENDING arrivés à échéance.

Usage:
    python -m app.workers.billing_scheduler --once
    python -m app.workers.billing_scheduler --date 2025-03-01 --once
"""
import argparse
import logging
import sys
import time
from datetime import date
from typing import Optional

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.database.session import check_database_connection, db_session
from app.services.billing.engine import BillingChangeService, DueChangesReport

logger = logging.getLogger(__name__)


def run_once(today: Optional[date] = None) -> DueChangesReport:
    """Un passage du planificateur dans sa propre session."""
    with db_session() as db:
        return BillingChangeService(db).apply_due_changes(today=today)


def main():
    parser = argparse.ArgumentParser(description="Applique les changements de facturation échus")
    parser.add_argument("--once", action="store_true", help="Un seul passage puis arrêt")
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="Date de référence (AAAA-MM-JJ)")
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.SCHEDULER_INTERVAL_SECONDS,
        help="Secondes entre deux passages",
    )
    args = parser.parse_args()

    configure_logging()
    if not check_database_connection():
        sys.exit(1)

    logger.info("🕐 Planificateur de facturation démarré")
    while True:
        report = run_once(args.date)
        if args.once:
            sys.exit(1 if report.failed else 0)
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
