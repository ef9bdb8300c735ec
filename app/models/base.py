"""
Point d'entrée des métadonnées SQLAlchemy.

Importer Base depuis ce module garantit que toutes les tables sont
enregistrées (l'import du package app.models charge chaque modèle).

Usage dans Alembic (env.py):
    from app.models.base import Base
    target_metadata = Base.metadata

Usage pour créer les tables (tests, init_db):
    from app.models.base import Base
    Base.metadata.create_all(bind=engine)
"""

from app.database.base_class import Base

import app.models  # noqa: F401

metadata = Base.metadata
