"""Impact calculator - projected aggregate for a proposed amount or ceiling"""

from escompte_gateway.domain import money
from escompte_gateway.domain.aggregates import remaining, utilization_percent
from escompte_gateway.domain.models import CeilingImpact, Impact


def compute_impact(proposed_amount: float, current_cumulative: float, ceiling: float) -> Impact:
    """
    Project the cumulative, remaining headroom and utilization after adding an amount.

    Landing exactly on the ceiling is allowed; only a strictly greater
    cumulative exceeds it. When editing a record, pass a cumulative that
    already excludes the record's current amount.

    Example:
        compute_impact(120000, 80000, 200000)
        -> new_cumulative=200000.0, exceeds_ceiling=False, utilization 100.0
    """
    new_cumulative = money.add(current_cumulative, proposed_amount)
    new_cumulative_cents = money.to_minor_units(new_cumulative)
    ceiling_cents = money.to_minor_units(ceiling)
    exceeds = new_cumulative_cents > ceiling_cents

    return Impact(
        new_cumulative=new_cumulative,
        new_remaining=remaining(ceiling, new_cumulative),
        new_utilization_percent=utilization_percent(new_cumulative, ceiling),
        exceeds_ceiling=exceeds,
        overage=money.from_minor_units(new_cumulative_cents - ceiling_cents) if exceeds else 0.0,
    )


def compute_ceiling_impact(
    current_ceiling: float,
    new_ceiling: float,
    current_cumulative: float,
) -> CeilingImpact:
    """Effect of replacing the ceiling while exposure stays unchanged"""
    current_cents = money.to_minor_units(current_ceiling)
    delta = money.subtract(new_ceiling, current_ceiling)
    # Relative change of the ceiling itself, not of the utilization
    change_percent = utilization_percent(abs(delta), current_ceiling) if current_cents > 0 else 0.0
    if delta < 0:
        change_percent = -change_percent

    return CeilingImpact(
        current_ceiling=money.from_minor_units(current_cents),
        new_ceiling=money.from_minor_units(money.to_minor_units(new_ceiling)),
        current_cumulative=money.from_minor_units(money.to_minor_units(current_cumulative)),
        new_remaining=remaining(new_ceiling, current_cumulative),
        change_percent=change_percent,
        new_utilization_percent=utilization_percent(current_cumulative, new_ceiling),
        below_exposure=money.to_minor_units(new_ceiling) < money.to_minor_units(current_cumulative),
    )
