"""Unit tests for integer-cent money arithmetic"""

import math
from decimal import Decimal

from hypothesis import given, strategies as st

from escompte_gateway.domain import money


def test_to_minor_units_uses_decimal_form():
    """0.1 is exactly 10 cents even though the float is not exactly 0.1"""
    assert money.to_minor_units(0.1) == 10
    assert money.to_minor_units(45000) == 4_500_000
    assert money.to_minor_units(1.005) == 101


def test_to_minor_units_degenerate_inputs_are_zero():
    assert money.to_minor_units(None) == 0
    assert money.to_minor_units(float("nan")) == 0
    assert money.to_minor_units(float("inf")) == 0
    assert money.from_minor_units(None) == 0.0
    assert money.from_minor_units(float("nan")) == 0.0


def test_round_half_up_matches_math_round():
    """Halves go towards +infinity, including for negatives"""
    assert money.round_half_up(Decimal("2.5")) == 3
    assert money.round_half_up(Decimal("-2.5")) == -2
    assert money.round_half_up(Decimal("-2.51")) == -3
    assert money.to_minor_units(-0.005) == 0


def test_add_is_exact():
    assert money.add(0.10, 0.20) == 0.30
    assert 0.1 + 0.2 != 0.3  # the float drift this module exists to avoid


def test_subtract_can_go_negative():
    assert money.subtract(100, 100.01) == -0.01


def test_multiply_rounds_cent_product():
    assert money.multiply(60000, Decimal("0.1")) == 6000.0
    assert money.multiply(10.01, Decimal("0.5")) == 5.01  # 500.5 cents -> 501
    assert money.multiply(100, None) == 0.0


@given(st.integers(min_value=-10**13, max_value=10**13))
def test_minor_units_round_trip(cents):
    assert money.to_minor_units(money.from_minor_units(cents)) == cents


@given(st.lists(st.integers(min_value=0, max_value=10**11), max_size=30), st.randoms())
def test_sum_is_order_independent(cents_values, rnd):
    amounts = [money.from_minor_units(c) for c in cents_values]
    shuffled = list(amounts)
    rnd.shuffle(shuffled)

    def total(values):
        result = 0.0
        for value in values:
            result = money.add(result, value)
        return result

    assert total(amounts) == total(shuffled)
    assert money.to_minor_units(total(amounts)) == sum(cents_values)


@given(st.floats(allow_nan=True, allow_infinity=True))
def test_to_minor_units_never_raises(value):
    result = money.to_minor_units(value)
    assert isinstance(result, int)
    if not math.isfinite(value):
        assert result == 0
