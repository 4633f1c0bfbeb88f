"""
Conversion montant décimal -> unités mineures Stripe (pur, pas de Stripe, pas de DB).
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from travelease.errors import InvalidCurrency

# module travelease.payments.amounts
# Devises sans décimales chez Stripe: le montant est déjà en unités mineures.
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF",
    "CLP",
    "DJF",
    "GNF",
    "JPY",
    "KMF",
    "KRW",
    "MGA",
    "PYG",
    "RWF",
    "UGX",
    "VND",
    "VUV",
    "XAF",
    "XOF",
    "XPF",
})


def normalize_currency(currency_code: str) -> str:
    """
    Valide et met en majuscules un code ISO 4217 (3 lettres).
    - Soulève InvalidCurrency si le code est vide ou malformé.
    """
    code = str(currency_code or "").strip().upper()
    if len(code) != 3 or not code.isascii() or not code.isalpha():
        raise InvalidCurrency()
    return code


def minor_unit_multiplier(currency_code: str) -> int:
    return 1 if normalize_currency(currency_code) in ZERO_DECIMAL_CURRENCIES else 100


def round_half_away(amount: Union[Decimal, int, float, str]) -> int:
    """Arrondi entier "half away from zero"; les floats passent par str() (19.99 reste 19.99)."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_minor_units(amount: Union[Decimal, int, float, str], currency_code: str) -> int:
    """
    Convertit un montant décimal en entier d'unités mineures.
    - multiplicateur 1 pour les devises zéro-décimale, 100 sinon
    - arrondi "half away from zero", identique à celui de Stripe
    """
    multiplier = minor_unit_multiplier(currency_code)
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return round_half_away(value * multiplier)


def quantize_amount(amount: Union[Decimal, int, float, str], currency_code: str) -> Decimal:
    """
    Montant décimal ramené à l'unité mineure de la devise, avec l'arrondi de to_minor_units.
    - 10.005 USD -> 10.01 ; 5000.4 JPY -> 5000
    Le prix stocké retombe ainsi exactement sur le montant vérifié chez Stripe.
    """
    multiplier = minor_unit_multiplier(currency_code)
    return Decimal(to_minor_units(amount, currency_code)) / multiplier
