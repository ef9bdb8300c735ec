"""
Types SQLAlchemy personnalisés pour CivicLink.

Ce module définit des types compatibles SQLite (tests) et PostgreSQL (production).
"""

from sqlalchemy import JSON, Text
from sqlalchemy.dialects.postgresql import JSONB


# ============================================================================
# JSONBCompatible - Type JSON compatible multi-dialecte
# ============================================================================
#
# - Sur PostgreSQL : utilise JSONB (indexable, opérateurs @>, ?, etc.)
# - Sur SQLite/autres : utilise JSON standard
#
# Usage dans les modèles:
#     from app.models.types import JSONBCompatible
#
#     class MyModel(Base):
#         data: Mapped[dict] = mapped_column(JSONBCompatible, nullable=False, default=dict)
#
# ============================================================================

JSONBCompatible = JSON().with_variant(JSONB(astext_type=Text()), 'postgresql')


# ============================================================================
# Alias pour clarté sémantique
# ============================================================================

# Snapshot figé des options d'une commande (quantités et prix au moment T)
JSONSnapshot = JSONBCompatible

# Charge utile d'un événement (outbox, webhook, audit)
JSONPayload = JSONBCompatible
