from decimal import ROUND_HALF_UP, Decimal

import pytest

from commissions.services.calculator import calculate_commission

AMOUNTS = [
    Decimal("0.00"),
    Decimal("0.01"),
    Decimal("0.05"),
    Decimal("1.00"),
    Decimal("9.99"),
    Decimal("33.33"),
    Decimal("100.00"),
    Decimal("1234.56"),
    Decimal("3000.00"),
    Decimal("99999.99"),
]
PERCENTS = [Decimal("0"), Decimal("2.5"), Decimal("10"), Decimal("12.5"), Decimal("20"), Decimal("33.33"), Decimal("50"), Decimal("75"), Decimal("100")]


def _expected(amount, percent):
    return (amount * percent / Decimal("100")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def test_platform_amount_matches_half_up_rounding_for_grid():
    for amount in AMOUNTS:
        for percent in PERCENTS:
            split = calculate_commission(amount, percent)
            assert split.platform_amount == _expected(amount, percent)
            assert split.platform_amount + split.provider_amount == amount
            assert split.partner_amount is None


def test_partner_share_never_exceeds_platform_or_booking():
    for amount in AMOUNTS:
        for percent in PERCENTS:
            for partner_percent in PERCENTS:
                split = calculate_commission(
                    amount,
                    percent,
                    has_partner_referral=True,
                    partner_percent=partner_percent,
                )
                assert split.partner_amount is not None
                assert Decimal("0") <= split.partner_amount <= split.platform_amount
                assert split.platform_amount + split.partner_amount <= amount
                assert split.platform_net_amount >= 0


@pytest.mark.parametrize(
    "amount,percent,expected",
    [
        ("0.05", "50", "0.03"),  # 0.025 rounds half up
        ("0.15", "10", "0.02"),  # 0.015 rounds half up
        ("10.05", "10", "1.01"),  # 1.005 rounds half up
        ("1.00", "33.33", "0.33"),
    ],
)
def test_rounding_is_half_up(amount, percent, expected):
    split = calculate_commission(amount, percent)
    assert split.platform_amount == Decimal(expected)


def test_zero_percent_gives_zero_commission():
    split = calculate_commission(Decimal("2500.00"), 0)
    assert split.platform_amount == Decimal("0.00")
    assert split.provider_amount == Decimal("2500.00")


def test_referral_share_uses_configured_partner_rate():
    split = calculate_commission(
        Decimal("3000.00"),
        Decimal("20"),
        has_partner_referral=True,
        partner_percent=Decimal("10"),
    )
    assert split.platform_amount == Decimal("600.00")
    assert split.partner_amount == Decimal("300.00")
    assert split.platform_net_amount == Decimal("300.00")
    assert split.provider_amount == Decimal("2400.00")


def test_partner_share_is_capped_by_platform_commission():
    split = calculate_commission(
        Decimal("1000.00"),
        Decimal("5"),
        has_partner_referral=True,
        partner_percent=Decimal("10"),
    )
    assert split.platform_amount == Decimal("50.00")
    assert split.partner_amount == Decimal("50.00")


def test_results_are_deterministic():
    first = calculate_commission("1234.56", "17.5", True, "7.25")
    second = calculate_commission("1234.56", "17.5", True, "7.25")
    assert first == second


def test_float_inputs_do_not_leak_binary_noise():
    split = calculate_commission(100.1, 2.9)
    assert split.platform_amount == Decimal("2.90")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"booking_amount": Decimal("-1.00"), "commission_percent": 10},
        {"booking_amount": Decimal("10.00"), "commission_percent": -1},
        {"booking_amount": Decimal("10.00"), "commission_percent": 101},
        {"booking_amount": Decimal("10.00"), "commission_percent": 10, "has_partner_referral": True},
        {
            "booking_amount": Decimal("10.00"),
            "commission_percent": 10,
            "has_partner_referral": True,
            "partner_percent": 150,
        },
    ],
)
def test_invalid_inputs_are_rejected(kwargs):
    with pytest.raises(ValueError):
        calculate_commission(**kwargs)
