"""
Traitement des webhooks Stripe.

- Secret absent       -> ProcessorMisconfigured (500, opérationnel)
- En-tête absent      -> SignatureMissing (400)
- Payload/ signature  -> InvalidPayload / InvalidSignature (400), rien n'est traité
- Seuls les événements d'échec de paiement modifient une réservation; les autres
  types sont acquittés et ignorés (Stripe en envoie beaucoup).
- Réservation introuvable: loggé et acquitté, pour ne pas provoquer de renvoi infini.
La transition d'échec est idempotente: un même événement livré deux fois ou dans le
désordre par rapport à la confirmation synchrone converge vers le même état.
"""
import logging
from typing import Any, Callable, Dict, Optional

from travelease.bookings import repository as bookings_repository
from travelease.bookings import state_machine
from travelease.errors import (
    IllegalStateTransition,
    InvalidPayload,
    InvalidSignature,
    ProcessorMisconfigured,
    SignatureMissing,
)
from . import stripe_client

logger = logging.getLogger(__name__)

ACK = {"received": True}


def _intent_id(obj: Dict[str, Any]) -> Optional[str]:
    return obj.get("id")


def _charge_intent_id(obj: Dict[str, Any]) -> Optional[str]:
    intent = obj.get("payment_intent")
    if isinstance(intent, dict):
        return intent.get("id")
    return intent


# Types d'événements d'échec -> extraction de la référence de paiement
FAILURE_EVENTS: Dict[str, Callable[[Dict[str, Any]], Optional[str]]] = {
    "payment_intent.payment_failed": _intent_id,
    "charge.failed": _charge_intent_id,
}


# module travelease.payments.webhooks
def handle(raw_payload: bytes, signature_header: Optional[str], shared_secret: Optional[str]) -> Dict[str, Any]:
    """
    Authentifie puis traite un webhook Stripe.
    Retour: {"received": True} dès que l'événement est authentifié et traité.
    """
    if not shared_secret:
        logger.error("payments.webhook.secret_missing")
        raise ProcessorMisconfigured()

    if not signature_header:
        logger.warning("payments.webhook.signature_missing")
        raise SignatureMissing()

    try:
        event = stripe_client.construct_event(raw_payload, signature_header, shared_secret)
    except InvalidPayload:
        logger.warning("payments.webhook.invalid_payload")
        raise
    except InvalidSignature:
        logger.warning("payments.webhook.signature_invalid")
        raise

    event_type = event.get("type")
    logger.info("payments.webhook.received type=%s id=%s", event_type, event.get("id"))

    extract_reference = FAILURE_EVENTS.get(event_type)
    if extract_reference is None:
        return dict(ACK)

    # Événement authentifié mais de forme inattendue: acquitté, un renvoi donnerait le même résultat
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        logger.warning("payments.webhook.malformed_object type=%s id=%s", event_type, event.get("id"))
        return dict(ACK)

    reference = extract_reference(obj)
    if not reference:
        logger.warning("payments.webhook.reference_missing type=%s id=%s", event_type, event.get("id"))
        return dict(ACK)

    booking = bookings_repository.find_booking_by_payment_reference(reference)
    if not booking:
        logger.info("payments.webhook.booking_not_found type=%s reference=%s", event_type, reference)
        return dict(ACK)

    try:
        _, applied = state_machine.mark_payment_failed(booking)
    except IllegalStateTransition:
        # Déjà loggé en ERROR par la machine à états; Stripe ne peut rien y changer
        return dict(ACK)

    logger.info(
        "payments.webhook.payment_failed reference=%s booking_id=%s applied=%s",
        reference, booking.get("id"), applied,
    )
    return dict(ACK)
