"""
Module 'payments' (feature-first): point d'entrée public.
Réunit conversion des montants, vues Stripe en lecture seule et client Stripe.
La vérification (verifier) et les webhooks (webhooks) s'importent explicitement:
ils dépendent de la feature 'bookings'.
"""

from .amounts import ZERO_DECIMAL_CURRENCIES, normalize_currency, quantize_amount, round_half_away, to_minor_units
from .models import PAYMENT_SUCCEEDED, PaymentRecord, VerifiedPayment
from .stripe_client import require_stripe, retrieve_payment, construct_event, create_payment_intent

__all__ = [
    # amounts
    "ZERO_DECIMAL_CURRENCIES",
    "normalize_currency",
    "quantize_amount",
    "round_half_away",
    "to_minor_units",
    # models
    "PAYMENT_SUCCEEDED",
    "PaymentRecord",
    "VerifiedPayment",
    # stripe
    "require_stripe",
    "retrieve_payment",
    "construct_event",
    "create_payment_intent",
]
