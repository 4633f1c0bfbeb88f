from decimal import Decimal

import pytest

from travelease.errors import InvalidCurrency
from travelease.payments.amounts import (
    ZERO_DECIMAL_CURRENCIES,
    minor_unit_multiplier,
    normalize_currency,
    quantize_amount,
    round_half_away,
    to_minor_units,
)


def test_two_decimal_currency_uses_cents():
    assert to_minor_units(Decimal("19.99"), "USD") == 1999
    assert to_minor_units(Decimal("100.00"), "EUR") == 10000


def test_zero_decimal_currency_is_unchanged():
    assert to_minor_units(Decimal("5000"), "JPY") == 5000


@pytest.mark.parametrize("code", sorted(ZERO_DECIMAL_CURRENCIES))
def test_every_zero_decimal_currency_has_multiplier_one(code):
    assert minor_unit_multiplier(code) == 1
    assert to_minor_units(Decimal("1200"), code) == 1200


def test_zero_decimal_set_is_complete():
    assert ZERO_DECIMAL_CURRENCIES == {
        "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
        "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
    }


def test_lowercase_code_is_accepted():
    assert to_minor_units(Decimal("19.99"), "usd") == 1999
    assert to_minor_units(Decimal("5000"), "jpy") == 5000
    assert normalize_currency(" eur ") == "EUR"


def test_float_input_does_not_drift():
    # 19.99 * 100 en binaire vaut 1998.999...
    assert to_minor_units(19.99, "USD") == 1999
    assert to_minor_units("0.29", "USD") == 29


def test_half_rounds_away_from_zero():
    assert to_minor_units(Decimal("10.005"), "USD") == 1001
    assert to_minor_units(Decimal("10.004"), "USD") == 1000
    assert to_minor_units(Decimal("1000.5"), "JPY") == 1001
    assert round_half_away(Decimal("-2.5")) == -3
    assert round_half_away(Decimal("2.5")) == 3


@pytest.mark.parametrize("code", ["", "US", "USDX", "12$", "€UR", None])
def test_malformed_code_raises_invalid_currency(code):
    with pytest.raises(InvalidCurrency):
        to_minor_units(Decimal("1.00"), code)


def test_quantize_amount_matches_minor_unit_rounding():
    assert quantize_amount(Decimal("10.005"), "USD") == Decimal("10.01")
    assert quantize_amount(Decimal("10.004"), "usd") == Decimal("10.00")
    assert quantize_amount(Decimal("5000.4"), "JPY") == Decimal("5000")
    assert quantize_amount(Decimal("5000.5"), "jpy") == Decimal("5001")
    # le montant arrondi redonne le même entier d'unités mineures
    for amount, code in [("10.005", "USD"), ("0.125", "EUR"), ("5000.4", "JPY")]:
        assert to_minor_units(quantize_amount(Decimal(amount), code), code) == to_minor_units(Decimal(amount), code)
