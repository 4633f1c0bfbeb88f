"""
Cas d'usage 'payments': création du PaymentIntent utilisé au checkout.
Le PaymentIntent porte metadata.user_id, contrôlé plus tard par payments.verifier.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe

from travelease import config
from travelease.errors import AmountTooSmall, PaymentRequestRejected, ProcessorMisconfigured
from . import stripe_client
from .amounts import normalize_currency, round_half_away, to_minor_units

logger = logging.getLogger(__name__)


def create_intent(
    *,
    user_id: str,
    amount: Decimal,
    currency: Optional[str] = None,
    description: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
    amount_in_minor: bool = False,
) -> Dict[str, Any]:
    """
    Prépare un PaymentIntent Stripe pour l'utilisateur connecté.
    - amount converti en unités mineures (sauf amount_in_minor: simple arrondi)
    - user_id écrase toute valeur client dans metadata
    - erreurs Stripe -> PaymentRequestRejected avec un message lisible
    Retour: {clientSecret, paymentIntentId, currency, amount, publishableKey}
    """
    if not config.STRIPE_SECRET_KEY:
        raise ProcessorMisconfigured("Stripe is not configured. Please contact support.")

    ccy = normalize_currency(currency or config.DEFAULT_CURRENCY).lower()
    if amount_in_minor:
        amount_minor = round_half_away(amount)
    else:
        amount_minor = to_minor_units(amount, ccy)
    if amount_minor < 1:
        raise AmountTooSmall()

    meta = {str(k): str(v) for k, v in (metadata or {}).items()}
    meta["user_id"] = str(user_id)

    try:
        intent = stripe_client.create_payment_intent(
            amount=amount_minor,
            currency=ccy,
            description=description,
            metadata=meta,
        )
    except stripe.StripeError as e:
        logger.error(
            "payments.intent.create_failed user_id=%s currency=%s amount_minor=%s code=%s type=%s message=%s",
            user_id, ccy, amount_minor,
            getattr(e, "code", None), getattr(getattr(e, "error", None), "type", None), str(e),
        )
        raise PaymentRequestRejected(stripe_client.friendly_error_message(e)) from e

    logger.info("payments.intent.created user_id=%s intent=%s amount_minor=%s currency=%s",
                user_id, intent.get("id"), amount_minor, ccy)
    return {
        "clientSecret": intent.get("client_secret"),
        "paymentIntentId": intent.get("id"),
        "currency": intent.get("currency") or ccy,
        "amount": intent.get("amount") or amount_minor,
        "publishableKey": config.STRIPE_PUBLISHABLE_KEY,
    }
