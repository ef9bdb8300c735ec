# app/models/billing/document_sequence.py
"""
Compteurs et formats de numérotation des documents légaux.

DocumentSequence est la seule table qui exige un incrément mono-écrivain :
elle n'est modifiée que par l'upsert atomique de SequenceAllocator.
DocumentNumberFormat ne porte que la présentation (préfixe affiché,
séparateur, nombre de chiffres) et peut changer sans toucher au compteur.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.mixins import TimestampMixin, utc_now


class DocumentSequence(Base):
    """Dernier numéro attribué pour un couple (année, préfixe de famille)."""

    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint("year", "prefix", name="uq_document_sequence_year_prefix"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    prefix: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="Clé de famille (DV, BC, FA, AV)"
    )
    last_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<DocumentSequence({self.prefix}/{self.year}={self.last_number})>"


class DocumentNumberFormat(Base, TimestampMixin):
    """Format d'affichage d'une famille de documents."""

    __tablename__ = "document_number_formats"

    id: Mapped[int] = mapped_column(primary_key=True)
    family: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True,
        comment="Famille de document (DV, BC, FA, AV)"
    )
    prefix: Mapped[str] = mapped_column(String(20), nullable=False, comment="Préfixe affiché")
    separator: Mapped[str] = mapped_column(String(5), default="-", nullable=False)
    sequence_digits: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    include_month: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
