"""
Machine à états des réservations: (status, payment_status).

Transitions légales:
- (pending, unpaid)      -> (confirmed, succeeded)  confirmation à la création (insert atomique)
- (pending, unpaid)                                 création sans paiement (pay-later)
- (pending|confirmed, *) -> (pending, failed)       webhook d'échec de paiement
- (*, *)                 -> (cancelled, *)          annulation, état terminal
Un webhook d'échec sur une réservation annulée est un no-op, pas une erreur.
Toute autre demande lève IllegalStateTransition (loggée en ERROR).
Le chemin synchrone (création) et le webhook passent tous deux par ce module.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from travelease.errors import BookingAlreadyCancelled, IllegalStateTransition
from travelease.payments.models import VerifiedPayment
from . import idempotency, repository
from .models import (
    BookingDraft,
    CANCELLED,
    CONFIRMED,
    FAILED,
    PAYMENT_STATUSES,
    PENDING,
    STATUSES,
    SUCCEEDED,
    UNPAID,
)

logger = logging.getLogger(__name__)

State = Tuple[str, str]

CONFIRM = "confirm"
FAIL_PAYMENT = "fail_payment"
CANCEL = "cancel"

INITIAL_STATE: State = (PENDING, UNPAID)


def state_of(booking: Dict[str, Any]) -> State:
    return (str(booking.get("status") or ""), str(booking.get("payment_status") or ""))


def next_state(current: State, action: str) -> Optional[State]:
    """
    Calcule l'état cible d'une action.
    Retour: l'état cible, ou None si l'action est un no-op (échec après annulation).
    """
    status, payment_status = current
    if status not in STATUSES or payment_status not in PAYMENT_STATUSES:
        raise IllegalStateTransition(current, action)

    if action == CONFIRM:
        if current == INITIAL_STATE:
            return (CONFIRMED, SUCCEEDED)
    elif action == FAIL_PAYMENT:
        if status == CANCELLED:
            return None
        return (PENDING, FAILED)
    elif action == CANCEL:
        if status != CANCELLED:
            return (CANCELLED, payment_status)
    raise IllegalStateTransition(current, action)


def _checked(current: State, action: str, booking_id: Any = None) -> Optional[State]:
    try:
        return next_state(current, action)
    except IllegalStateTransition:
        logger.error(
            "bookings.state_machine.illegal_transition booking_id=%s state=%s action=%s",
            booking_id, current, action,
        )
        raise


def create_booking(draft: BookingDraft, verified: Optional[VerifiedPayment] = None) -> Dict[str, Any]:
    """
    Écrit une nouvelle réservation.
    - Sans paiement vérifié: (pending, unpaid), aucune référence.
    - Avec paiement vérifié: insert + confirmation en une seule écriture, la devise
      réglée chez Stripe remplace celle soumise par le client, prix arrondi dans cette devise.
    """
    row = draft.to_row(verified.currency if verified is not None else None)
    if verified is None:
        row.update({"status": PENDING, "payment_status": UNPAID, "payment_reference": None})
        return repository.insert_booking(row)

    status, payment_status = _checked(INITIAL_STATE, CONFIRM)
    row.update({
        "status": status,
        "payment_status": payment_status,
        "payment_reference": verified.reference,
    })
    return idempotency.claim(row)


def mark_payment_failed(booking: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """
    Applique l'échec de paiement: status forcé à pending, payment_status=failed.
    Idempotent: rejouer la même transition ne change pas l'état observable.
    Retour: (réservation, appliqué?), appliqué=False pour un no-op.
    """
    booking_id = booking.get("id")
    current = state_of(booking)
    target = _checked(current, FAIL_PAYMENT, booking_id)
    if target is None:
        logger.info("bookings.state_machine.fail_ignored_cancelled booking_id=%s", booking_id)
        return booking, False
    if current == target:
        return booking, False

    status, payment_status = target
    updated = repository.update_payment_status(booking_id, payment_status, status=status)
    if updated is None:
        # Annulée (ou supprimée) entre la lecture et l'écriture: l'annulation l'emporte
        logger.info("bookings.state_machine.fail_lost_race booking_id=%s", booking_id)
        return booking, False
    logger.info("bookings.state_machine.payment_failed booking_id=%s from=%s", booking_id, current)
    return updated, True


def cancel(booking: Dict[str, Any]) -> Dict[str, Any]:
    """Annulation utilisateur: transition terminale vers cancelled."""
    booking_id = booking.get("id")
    current = state_of(booking)
    if current[0] == CANCELLED:
        raise BookingAlreadyCancelled()
    _checked(current, CANCEL, booking_id)
    updated = repository.cancel_booking(booking_id)
    if updated is None:
        raise BookingAlreadyCancelled()
    logger.info("bookings.state_machine.cancelled booking_id=%s from=%s", booking_id, current)
    return updated
