"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
- retrieve_payment: lecture d'un PaymentIntent (un seul appel borné, pas de retry)
- construct_event: vérification de signature + parsing d'un webhook
- create_payment_intent: création d'un PaymentIntent pour le checkout
Les erreurs Stripe sont traduites dans la taxonomie de travelease.errors.
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe

from travelease import config
from travelease.errors import (
    InvalidPayload,
    InvalidSignature,
    PaymentRequestRejected,
    ProcessorUnavailable,
)
from .models import PaymentRecord

logger = logging.getLogger(__name__)

_http_client_ready = False

# Messages lisibles par code d'erreur Stripe, puis par type d'erreur
CARD_ERROR_MESSAGES = {
    "card_declined": "Your card was declined. Please try a different payment method or contact your bank.",
    "expired_card": "Your card has expired. Please use a different card.",
    "incorrect_cvc": "The security code (CVC) is incorrect. Please check and try again.",
    "processing_error": "An error occurred while processing your payment. Please try again.",
    "incorrect_number": "The card number is incorrect. Please check and try again.",
    "invalid_expiry_month": "The expiration month is invalid. Please check and try again.",
    "invalid_expiry_year": "The expiration year is invalid. Please check and try again.",
    "invalid_cvc": "The security code is invalid. Please check and try again.",
}
ERROR_TYPE_MESSAGES = {
    "card_error": "There was an issue with your card. Please check your details and try again.",
    "invalid_request_error": "Invalid payment request. Please contact support if this persists.",
    "api_connection_error": "Connection error. Please check your internet and try again.",
    "api_error": "Payment service temporarily unavailable. Please try again later.",
    "authentication_error": "Payment authentication failed. Please contact support.",
    "rate_limit_error": "Too many payment attempts. Please wait a moment and try again.",
}


# module travelease.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - Désactive les retries réseau du SDK et borne chaque appel (STRIPE_TIMEOUT_SECONDS).
    - En absence de clé, les appels Stripe échoueront côté SDK (AuthenticationError).
    """
    global _http_client_ready
    if config.STRIPE_SECRET_KEY:
        stripe.api_key = config.STRIPE_SECRET_KEY
    stripe.max_network_retries = 0
    if not _http_client_ready:
        stripe.default_http_client = stripe.RequestsClient(timeout=config.STRIPE_TIMEOUT_SECONDS)
        _http_client_ready = True
    return stripe


def _error_code(exc: Exception) -> Optional[str]:
    return getattr(exc, "code", None)


def _error_type(exc: Exception) -> Optional[str]:
    error = getattr(exc, "error", None)
    return getattr(error, "type", None) if error is not None else None


def friendly_error_message(exc: Exception) -> str:
    """
    Traduit une erreur Stripe en message utilisateur.
    - Priorité au code (card_declined, expired_card, ...), puis au type d'erreur.
    """
    code = _error_code(exc)
    if code in CARD_ERROR_MESSAGES:
        return CARD_ERROR_MESSAGES[code]
    return ERROR_TYPE_MESSAGES.get(_error_type(exc), PaymentRequestRejected.default_detail)


def _as_dict(obj: Any) -> Dict[str, Any]:
    # objets Stripe: dict-compatibles, to_dict() quand le SDK le fournit
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def retrieve_payment(reference: str) -> PaymentRecord:
    """
    Récupère un PaymentIntent par son identifiant (pi_...).
    - Toute erreur de transport, timeout ou lookup devient ProcessorUnavailable.
    Retour: PaymentRecord (status, amount, amount_received, currency, metadata).
    """
    require_stripe()
    try:
        intent = stripe.PaymentIntent.retrieve(reference)
    except stripe.StripeError as e:
        logger.warning(
            "payments.stripe.retrieve_failed reference=%s code=%s type=%s message=%s",
            reference, _error_code(e), _error_type(e), str(e),
        )
        raise ProcessorUnavailable() from e
    return PaymentRecord.from_intent(_as_dict(intent))


def construct_event(payload: bytes, sig_header: str, secret: str) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Valide la signature (t=..., v1=...) via WebhookSignature.verify_header, tolérance Stripe par défaut
    - ValueError (JSON/encodage) -> InvalidPayload
    - SignatureVerificationError -> InvalidSignature
    Retour: l’événement sous forme de dict si la signature est valide.
    """
    require_stripe()
    try:
        text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        stripe.WebhookSignature.verify_header(text, sig_header, secret, stripe.Webhook.DEFAULT_TOLERANCE)
        event = json.loads(text)
    except ValueError as e:
        raise InvalidPayload() from e
    except stripe.SignatureVerificationError as e:
        raise InvalidSignature() from e
    if not isinstance(event, dict):
        raise InvalidPayload()
    return event


def create_payment_intent(
    *,
    amount: int,
    currency: str,
    metadata: Dict[str, str],
    description: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent Stripe (moyens de paiement automatiques).
    - amount: en unités mineures
    - metadata: doit contenir user_id (contrôle de propriété à la réservation)
    Retour: dict PaymentIntent (id, client_secret, currency, amount, ...)
    """
    require_stripe()
    params: Dict[str, Any] = {
        "amount": amount,
        "currency": currency,
        "automatic_payment_methods": {"enabled": True},
        "metadata": metadata,
    }
    if description:
        params["description"] = description
    intent = stripe.PaymentIntent.create(**params)
    return _as_dict(intent)
