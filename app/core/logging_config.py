"""Configuration du logging applicatif (API et workers)."""
import logging

from app.core.config import settings


def configure_logging(level: str | None = None) -> None:
    """Applique LOG_LEVEL au logger racine."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
