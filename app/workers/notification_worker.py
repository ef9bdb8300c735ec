"""
Livraison des notifications de l'outbox.

Usage:
    python -m app.workers.notification_worker --once
"""
import argparse
import logging
import sys
import time

from app.core.logging_config import configure_logging
from app.database.session import check_database_connection, db_session
from app.services.notifications.outbox import DeliveryReport, NotificationDispatcher
from app.services.notifications.senders import get_notification_sender

logger = logging.getLogger(__name__)


def run_once(sender=None, batch_size: int = None) -> DeliveryReport:
    with db_session() as db:
        dispatcher = NotificationDispatcher(db, sender or get_notification_sender())
        return dispatcher.deliver_pending(batch_size=batch_size)


def main():
    parser = argparse.ArgumentParser(description="Livre les notifications en attente")
    parser.add_argument("--once", action="store_true", help="Un seul lot puis arrêt")
    parser.add_argument("--batch-size", type=int, default=None)
    parser.add_argument("--interval", type=int, default=30, help="Secondes entre deux lots vides")
    args = parser.parse_args()

    configure_logging()
    if not check_database_connection():
        sys.exit(1)

    sender = get_notification_sender()
    logger.info(f"📬 Worker de notifications démarré ({type(sender).__name__})")
    while True:
        report = run_once(sender, args.batch_size)
        if args.once:
            break
        if report.sent + report.retried + report.failed == 0:
            time.sleep(args.interval)


if __name__ == "__main__":
    main()
