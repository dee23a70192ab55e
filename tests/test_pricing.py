from __future__ import annotations

from decimal import Decimal

import pytest

from bakery.domain.errors import ValidationError
from bakery.domain.pricing import MAX_QUANTITY, build_configuration, clamp_quantity, quote


@pytest.fixture()
def config():
    return build_configuration(
        Decimal("3.50"),
        [
            {"min_quantity": 12, "discount_fraction": "0.10"},
            {"min_quantity": 24, "discount_fraction": "0.20"},
            {"min_quantity": 50, "discount_fraction": "0.30"},
        ],
    )


def test_dozen_gets_first_tier(config):
    priced = quote(12, config)
    assert priced.unit_price == Decimal("3.15")
    assert priced.total == Decimal("37.80")
    assert priced.discount_fraction == Decimal("0.10")


def test_tier_boundaries(config):
    assert quote(24, config).unit_price == Decimal("2.80")
    assert quote(24, config).total == Decimal("67.20")
    assert quote(23, config).discount_fraction == Decimal("0.10")
    assert quote(11, config).discount_fraction == Decimal("0")
    assert quote(11, config).total == Decimal("38.50")
    assert quote(50, config).unit_price == Decimal("2.45")


def test_total_is_rounded_unit_price_times_quantity(config):
    for quantity in range(1, 120):
        priced = quote(quantity, config)
        assert priced.total == (priced.unit_price * quantity).quantize(Decimal("0.01"))


def test_unit_price_never_increases_with_quantity(config):
    prices = [quote(quantity, config).unit_price for quantity in range(1, 120)]
    assert all(later <= earlier for earlier, later in zip(prices, prices[1:]))


def test_unsorted_tiers_are_accepted_in_any_order():
    config = build_configuration(
        "2.00",
        [
            {"min_quantity": 24, "discount_fraction": "0.20"},
            {"min_quantity": 12, "discount_fraction": "0.10"},
        ],
    )
    assert [tier.min_quantity for tier in config.discount_tiers] == [12, 24]
    assert quote(30, config).unit_price == Decimal("1.60")


def test_non_positive_quantity_is_rejected(config):
    for bad in (0, -3, True, 2.5):
        with pytest.raises(ValidationError):
            quote(bad, config)


@pytest.mark.parametrize(
    "raw, expected",
    [(0, 1), (-5, 1), ("abc", 1), (None, 1), ("", 1), ("12", 12), (7.9, 7), ("3.7", 3), (30, 30)],
)
def test_clamp_quantity(raw, expected):
    assert clamp_quantity(raw) == expected


def test_invalid_configurations_are_rejected():
    with pytest.raises(ValidationError):
        build_configuration("-1", [])
    with pytest.raises(ValidationError):
        build_configuration("3.50", [{"min_quantity": 12, "discount_fraction": "1.5"}])
    with pytest.raises(ValidationError):
        build_configuration(
            "3.50",
            [
                {"min_quantity": 12, "discount_fraction": "0.10"},
                {"min_quantity": 12, "discount_fraction": "0.20"},
            ],
        )
    with pytest.raises(ValidationError):
        build_configuration(
            "3.50",
            [
                {"min_quantity": 12, "discount_fraction": "0.30"},
                {"min_quantity": 24, "discount_fraction": "0.10"},
            ],
        )


def test_quantity_above_maximum_is_rejected(config):
    assert quote(MAX_QUANTITY, config).quantity == MAX_QUANTITY
    with pytest.raises(ValidationError):
        quote(clamp_quantity("1e20"), config)


def test_base_price_must_be_whole_cents():
    assert build_configuration("3.5", []).base_price == Decimal("3.5")
    with pytest.raises(ValidationError):
        build_configuration("3.505", [])
