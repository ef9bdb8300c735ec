"""
Reprise des opérations métier sur conflit de concurrence.

Une opération est toujours rejouée depuis le début (jamais l'incrément
de séquence seul) : la transaction est annulée puis la méthode relancée.
"""
import functools
import logging
import time

from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.core.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)


def retry_on_conflict(method):
    """
    Décorateur de méthode de service (l'instance expose `self.db`).

    OperationalError couvre lock_timeout, deadlock et échec de sérialisation
    (psycopg2 TransactionRollbackError). Au-delà de CONCURRENCY_MAX_RETRIES
    reprises, lève ConcurrencyConflictError (retryable côté appelant).
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        max_attempts = settings.CONCURRENCY_MAX_RETRIES + 1
        for attempt in range(1, max_attempts + 1):
            try:
                return method(self, *args, **kwargs)
            except OperationalError as e:
                self.db.rollback()
                if attempt >= max_attempts:
                    logger.error(
                        f"❌ {method.__qualname__} : conflit persistant après {attempt} tentative(s) : {e.orig}"
                    )
                    raise ConcurrencyConflictError(
                        "Conflit de concurrence persistant, réessayez l'opération"
                    ) from e
                logger.warning(
                    f"⚠️ {method.__qualname__} : conflit de concurrence (tentative {attempt}/{max_attempts}), reprise"
                )
                time.sleep(settings.CONCURRENCY_RETRY_BACKOFF_SECONDS * attempt)

    return wrapper
