"""
Numérotation des documents légaux (devis, bons de commande, factures, avoirs).

Le compteur est indexé par (année, préfixe de famille) uniquement : le format
d'affichage (préfixe affiché, séparateur, nombre de chiffres, mois) est
configurable par famille sans jamais toucher au compteur.

L'incrément est un upsert atomique en un seul aller-retour :

    INSERT INTO document_sequences (year, prefix, last_number) VALUES (:y, :p, 1)
    ON CONFLICT (year, prefix) DO UPDATE SET last_number = last_number + 1
    RETURNING last_number

Un numéro consommé par une transaction annulée est perdu (trou toléré),
jamais réattribué.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.billing.document_sequence import DocumentNumberFormat, DocumentSequence
from app.models.enums import DocumentFamily
from app.models.mixins import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NumberFormat:
    """Présentation d'un numéro de document."""
    prefix: str
    separator: str
    sequence_digits: int
    include_month: bool = False


@dataclass(frozen=True)
class AllocatedNumber:
    """Numéro attribué : chaîne affichée + valeur brute du compteur (contrôle d'audit)."""
    formatted: str
    sequence: int
    family: DocumentFamily
    year: int


def format_document_number(
        prefix: str,
        separator: str,
        year: int,
        sequence_number: int,
        sequence_digits: int,
        month: Optional[int] = None,
) -> str:
    """
    Formate un numéro de document.

    Examples:
        >>> format_document_number("FA", "-", 2024, 7, 5)
        'FA-2024-00007'
        >>> format_document_number("FA", "-", 2024, 7, 5, month=3)
        'FA-2024-03-00007'
    """
    parts = [prefix, str(year)]
    if month is not None:
        parts.append(f"{month:02d}")
    parts.append(str(sequence_number).zfill(sequence_digits))
    return separator.join(parts)


class SequenceAllocator:
    """
    Attribue des numéros strictement croissants par (famille, année).

    Travaille dans la transaction de l'appelant et ne commite jamais :
    le document et son numéro sont persistés ensemble ou pas du tout.
    """

    def __init__(self, db: Session):
        self.db = db

    def next_number(self, family: DocumentFamily, year: int) -> int:
        """Incrémente et retourne le compteur (family, year)."""
        dialect_name = self.db.get_bind().dialect.name
        if dialect_name == "postgresql":
            insert = postgresql.insert
        elif dialect_name == "sqlite":
            insert = sqlite.insert
        else:
            raise NotImplementedError(f"Upsert atomique non supporté pour le dialecte {dialect_name}")

        now = utc_now()
        stmt = (
            insert(DocumentSequence)
            .values(year=year, prefix=family.value, last_number=1, updated_at=now)
            .on_conflict_do_update(
                index_elements=["year", "prefix"],
                set_={
                    "last_number": DocumentSequence.last_number + 1,
                    "updated_at": now,
                },
            )
            .returning(DocumentSequence.last_number)
        )
        number = self.db.execute(stmt).scalar_one()
        logger.debug(f"Séquence {family.value}/{year} → {number}")
        return number

    def get_format(self, family: DocumentFamily) -> NumberFormat:
        """
        Format d'affichage de la famille.

        Ordre : format actif par défaut, sinon premier format actif,
        sinon le préfixe de famille avec les valeurs de configuration.
        """
        configured = self.db.execute(
            select(DocumentNumberFormat)
            .where(
                DocumentNumberFormat.family == family.value,
                DocumentNumberFormat.is_active.is_(True),
            )
            .order_by(DocumentNumberFormat.is_default.desc(), DocumentNumberFormat.id)
            .limit(1)
        ).scalar_one_or_none()

        if configured is None:
            return NumberFormat(
                prefix=family.value,
                separator=settings.DEFAULT_NUMBER_SEPARATOR,
                sequence_digits=settings.DEFAULT_SEQUENCE_DIGITS,
            )

        return NumberFormat(
            prefix=configured.prefix,
            separator=configured.separator,
            sequence_digits=configured.sequence_digits,
            include_month=configured.include_month,
        )

    def allocate(self, family: DocumentFamily, on_date: Optional[date] = None) -> AllocatedNumber:
        """Attribue et formate le prochain numéro de la famille pour l'année de on_date."""
        on_date = on_date or utc_now().date()
        number_format = self.get_format(family)
        sequence = self.next_number(family, on_date.year)

        formatted = format_document_number(
            prefix=number_format.prefix,
            separator=number_format.separator,
            year=on_date.year,
            sequence_number=sequence,
            sequence_digits=number_format.sequence_digits,
            month=on_date.month if number_format.include_month else None,
        )
        logger.info(f"🔢 Numéro attribué : {formatted}")
        return AllocatedNumber(formatted=formatted, sequence=sequence, family=family, year=on_date.year)
