"""
Calcul du prorata lors d'un changement en cours de période.

Période de facturation : mois civil (MONTHLY) ou année civile (YEARLY)
contenant la date d'effet. Le ratio restant est calculé en jours, en
fraction exacte ; seuls les montants finaux sont arrondis au centime.

    debit  = round(nouveau_coût × ratio)
    credit = debit + round((ancien_coût - nouveau_coût) × ratio)

d'où credit - debit == round((ancien - nouveau) × ratio), au centime près.
"""
import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Tuple

from app.models.enums import BillingInterval


@dataclass(frozen=True)
class Proration:
    credit_cents: int
    debit_cents: int

    @property
    def net_cents(self) -> int:
        """Positif : dû au tenant. Négatif : dû par le tenant."""
        return self.credit_cents - self.debit_cents


def add_months(day: date, months: int) -> date:
    """Premier jour du mois situé `months` mois après celui de `day`."""
    month_index = day.month - 1 + months
    return date(day.year + month_index // 12, month_index % 12 + 1, 1)


def first_day_of_next_month(day: date) -> date:
    return add_months(day, 1)


def billing_period_bounds(day: date, interval: BillingInterval) -> Tuple[date, date]:
    """Bornes [début, fin) de la période de facturation contenant `day`."""
    if interval == BillingInterval.YEARLY:
        return date(day.year, 1, 1), date(day.year + 1, 1, 1)
    start = date(day.year, day.month, 1)
    return start, first_day_of_next_month(day)


def remaining_ratio(effective_date: date, interval: BillingInterval) -> Fraction:
    """Part de la période restant à courir à partir de la date d'effet (incluse)."""
    start, end = billing_period_bounds(effective_date, interval)
    return Fraction((end - effective_date).days, (end - start).days)


def round_cents(amount) -> int:
    """Arrondi commercial au centime (demi supérieur)."""
    if isinstance(amount, Fraction):
        amount = Decimal(amount.numerator) / Decimal(amount.denominator)
    return int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_proration(
        old_cost_cents: int,
        new_cost_cents: int,
        effective_date: date,
        interval: BillingInterval,
) -> Proration:
    """
    Crédit (part non consommée de l'ancien coût) et débit (coût du nouvel
    état jusqu'à la fin de période) d'un changement.

    Le crédit est dérivé du débit et du delta arrondi pour que
    credit - debit soit exactement le delta proratisé attendu.
    """
    ratio = remaining_ratio(effective_date, interval)
    debit = round_cents(new_cost_cents * ratio)
    credit = debit + round_cents((old_cost_cents - new_cost_cents) * ratio)
    return Proration(credit_cents=credit, debit_cents=debit)


def shift_months(day: date, months: int) -> date:
    """Même jour `months` mois plus tard, ramené au dernier jour du mois si besoin."""
    month_index = day.month - 1 + months
    year, month = day.year + month_index // 12, month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))
