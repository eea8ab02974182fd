from decimal import Decimal

import pytest

from core.money import from_minor_units, quantize_money, to_minor_units


@pytest.mark.parametrize(
    "value,expected",
    [
        ("1.005", "1.01"),
        ("1.004", "1.00"),
        (2.675, "2.68"),
        (10, "10.00"),
    ],
)
def test_quantize_rounds_half_up(value, expected):
    assert quantize_money(value) == Decimal(expected)


def test_minor_unit_conversion():
    assert to_minor_units(Decimal("3087.30")) == 308730
    assert from_minor_units(308730) == Decimal("3087.30")
    assert to_minor_units("0.305") == 31
