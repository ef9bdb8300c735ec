"""
Alembic Environment Configuration - CivicLink Billing

Ce fichier configure Alembic pour :
1. Charger l'URL de la base depuis app/core/config.py (qui lit le .env)
2. Importer tous les modèles SQLAlchemy pour la détection automatique
3. Supporter les migrations online (base connectée) et offline (génération SQL)
"""

from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy import create_engine

from alembic import context

# === Import de la configuration CivicLink ===
from app.core.config import settings

# === Import de la Base et des modèles ===
# Cet import charge tous les modèles pour que Alembic
# puisse détecter les tables à créer/modifier
from app.models.base import Base

# Configuration Alembic depuis alembic.ini
config = context.config

# Configuration du logging depuis alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Métadonnées des modèles pour autogenerate
target_metadata = Base.metadata


# === Helpers ===

def get_url() -> str:
    """
    Retourne l'URL de la base de données depuis les settings.

    L'URL est chargée depuis le .env via Pydantic Settings.
    """
    return settings.DATABASE_URL


def run_migrations_offline() -> None:
    """
    Exécute les migrations en mode 'offline'.

    En mode offline, Alembic génère le SQL sans se connecter à la base.

    Usage:
        alembic upgrade head --sql > migration.sql
    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Exécute les migrations en mode 'online'.

    Usage:
        alembic upgrade head
    """
    connectable = create_engine(
        get_url(),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()


# === Point d'entrée ===

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
