"""Aggregate calculators - cumulative totals, encours and utilization"""

import math
from decimal import Decimal
from typing import Any, Iterable, Sequence

from escompte_gateway.domain import money
from escompte_gateway.domain.models import AmountStatistics, DashboardKPI, Escompte, Refinancement

PERCENT_DECIMALS = 2


def _field_value(record: Any, amount_field: str) -> Any:
    if isinstance(record, dict):
        return record.get(amount_field)
    return getattr(record, amount_field, None)


def sum_amounts(records: Iterable[Any], amount_field: str = "amount") -> float:
    """Sum an amount field over records (dataclasses or dicts) in whole cents"""
    total_cents = sum(money.to_minor_units(_field_value(r, amount_field)) for r in records)
    return money.from_minor_units(total_cents)


def remaining(ceiling: float, cumulative: float) -> float:
    """Headroom left under the ceiling; negative when over"""
    return money.subtract(ceiling, cumulative)


def _is_usable(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def utilization_percent(cumulative: float, ceiling: float) -> float:
    """
    Share of the ceiling consumed, as a percentage rounded half-up to 2 decimals.

    Returns 0 for a zero or negative ceiling and for missing/NaN inputs.
    """
    if not _is_usable(cumulative) or not _is_usable(ceiling):
        return 0.0
    ceiling_cents = money.to_minor_units(ceiling)
    if ceiling_cents <= 0:
        return 0.0

    ratio = Decimal(money.to_minor_units(cumulative)) / Decimal(ceiling_cents)
    scaled = ratio * 100 * (10 ** PERCENT_DECIMALS)
    return money.round_half_up(scaled) / (10 ** PERCENT_DECIMALS)


def global_cumulative(cumul_escomptes: float, cumul_refinancements: float) -> float:
    return money.add(cumul_escomptes, cumul_refinancements)


def compute_aggregate(
    escomptes: Sequence[Escompte],
    refinancements: Sequence[Refinancement],
    ceiling: float,
) -> DashboardKPI:
    """
    Build the dashboard KPI from a snapshot of both collections and the ceiling.

    The escompte-only figures (encours, utilization) are kept alongside the
    global ones that also count refinancements.
    """
    cumul_escomptes = sum_amounts(escomptes)
    cumul_refinancements = sum_amounts(refinancements)
    cumul = global_cumulative(cumul_escomptes, cumul_refinancements)

    return DashboardKPI(
        cumul_escomptes=cumul_escomptes,
        encours_restant=remaining(ceiling, cumul_escomptes),
        authorization=money.from_minor_units(money.to_minor_units(ceiling)),
        escompte_count=len(escomptes),
        utilization_percent=utilization_percent(cumul_escomptes, ceiling),
        cumul_refinancements=cumul_refinancements,
        refinancement_count=len(refinancements),
        cumul_global=cumul,
        encours_restant_global=remaining(ceiling, cumul),
        utilization_percent_global=utilization_percent(cumul, ceiling),
    )


def amount_statistics(records: Sequence[Any], amount_field: str = "amount") -> AmountStatistics:
    """Total, average, min and max of an amount field; all zeros when empty"""
    if not records:
        return AmountStatistics(total=0.0, average=0.0, minimum=0.0, maximum=0.0, count=0)

    cents = [money.to_minor_units(_field_value(r, amount_field)) for r in records]
    total_cents = sum(cents)
    average_cents = money.round_half_up(Decimal(total_cents) / len(cents))

    return AmountStatistics(
        total=money.from_minor_units(total_cents),
        average=money.from_minor_units(average_cents),
        minimum=money.from_minor_units(min(cents)),
        maximum=money.from_minor_units(max(cents)),
        count=len(cents),
    )


def total_interest(amount: float, rate_percent: float, duration_months: int) -> float:
    """
    Simple interest over the whole duration: amount x rate/100 x months/12.

    Example:
        60000 at 10% over 12 months -> 6000.0
    """
    if not _is_usable(rate_percent) or not _is_usable(duration_months):
        return 0.0
    coefficient = Decimal(str(rate_percent)) * Decimal(int(duration_months)) / Decimal(1200)
    return money.multiply(amount, coefficient)
