"""
Vérification d'un paiement revendiqué à la création d'une réservation.

verify() est un contrôle pur: il lit le stockage (pré-contrôle d'unicité) et Stripe,
mais n'écrit rien. L'écriture atomique est faite ensuite par la machine à états,
ce qui garde la fenêtre transactionnelle minimale.
Ordre des contrôles (arrêt au premier échec):
1) référence pas encore utilisée     -> DuplicatePaymentReference
2) lecture du PaymentIntent          -> ProcessorUnavailable
3) propriétaire (metadata.user_id)   -> PaymentOwnershipMismatch
4) statut 'succeeded'                -> PaymentNotCompleted
5) montant en unités mineures        -> AmountMismatch
"""
import logging

from travelease.bookings import idempotency
from travelease.bookings.models import BookingDraft
from travelease.errors import AmountMismatch, PaymentNotCompleted, PaymentOwnershipMismatch
from . import stripe_client
from .amounts import to_minor_units
from .models import PAYMENT_SUCCEEDED, VerifiedPayment

logger = logging.getLogger(__name__)


def verify(draft: BookingDraft, claimed_reference: str, requesting_user_id: str) -> VerifiedPayment:
    idempotency.ensure_unclaimed(claimed_reference)

    record = stripe_client.retrieve_payment(claimed_reference)

    if record.owner_id is None or str(record.owner_id) != str(requesting_user_id):
        logger.warning(
            "payments.verify.ownership_mismatch reference=%s user_id=%s owner_id=%s",
            claimed_reference, requesting_user_id, record.owner_id,
        )
        raise PaymentOwnershipMismatch()

    if record.status != PAYMENT_SUCCEEDED:
        logger.info(
            "payments.verify.not_completed reference=%s user_id=%s status=%s",
            claimed_reference, requesting_user_id, record.status,
        )
        raise PaymentNotCompleted()

    expected = to_minor_units(draft.total_price, record.currency)
    if expected != record.captured_amount:
        logger.warning(
            "payments.verify.amount_mismatch reference=%s user_id=%s expected=%s captured=%s currency=%s",
            claimed_reference, requesting_user_id, expected, record.captured_amount, record.currency,
        )
        raise AmountMismatch()

    return VerifiedPayment(
        reference=record.reference or claimed_reference,
        currency=record.currency.lower(),
        status=record.status,
    )
