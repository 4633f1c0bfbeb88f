"""
Cas d'usage 'bookings': orchestre vérification du paiement, garde d'idempotence
et machine à états.

Chemin synchrone de création:
  montant -> payments.verifier.verify (pur) -> state_machine.create_booking (écriture atomique)
Sans payment_reference, la réservation est créée (pending, unpaid) pour un paiement ultérieur.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from travelease import config
from travelease.errors import AmountTooSmall, BookingNotFound
from travelease.payments import verifier
from travelease.payments.amounts import normalize_currency, to_minor_units
from . import repository, state_machine
from .models import BookingDraft, serialize_booking

logger = logging.getLogger(__name__)


def create_booking(
    user_id: str,
    *,
    total_price: Decimal,
    currency: Optional[str] = None,
    payment_reference: Optional[str] = None,
    hotel_id: Optional[int] = None,
    room_id: Optional[int] = None,
    flight_id: Optional[int] = None,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    guests: int = 1,
) -> Dict[str, Any]:
    """
    Crée une réservation pour l'utilisateur connecté.
    - currency: devise soumise par le client, sinon devise par défaut (config)
    - payment_reference: PaymentIntent Stripe revendiqué; non fiable, donc vérifié
    Retour: la réservation sérialisée (avec status / payment_status résolus).
    """
    draft = BookingDraft(
        user_id=str(user_id),
        hotel_id=hotel_id,
        room_id=room_id,
        flight_id=flight_id,
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        total_price=total_price,
        currency=normalize_currency(currency or config.DEFAULT_CURRENCY).lower(),
    )
    # moins d'une unité mineure: rien à encaisser ni à stocker (total_price > 0 en base)
    if to_minor_units(draft.total_price, draft.currency) < 1:
        raise AmountTooSmall()

    if payment_reference:
        verified = verifier.verify(draft, payment_reference, str(user_id))
        booking = state_machine.create_booking(draft, verified)
    else:
        booking = state_machine.create_booking(draft)

    logger.info(
        "bookings.created user_id=%s booking_id=%s status=%s payment_status=%s reference=%s",
        user_id, booking.get("id"), booking.get("status"), booking.get("payment_status"),
        booking.get("payment_reference"),
    )
    return serialize_booking(booking)


def list_bookings(
    user_id: str,
    *,
    status: Optional[str] = None,
    booking_type: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    rows = repository.list_user_bookings(
        str(user_id), status=status, booking_type=booking_type, limit=limit, offset=offset
    )
    return [serialize_booking(r) for r in rows]


def get_booking(user_id: str, booking_id: int) -> Dict[str, Any]:
    booking = repository.get_booking(booking_id, user_id=str(user_id))
    if not booking:
        raise BookingNotFound()
    return serialize_booking(booking)


def cancel_booking(user_id: str, booking_id: int) -> Dict[str, Any]:
    """
    Annulation à l'initiative de l'utilisateur (propriétaire uniquement).
    Un webhook tardif ne rouvrira jamais une réservation annulée.
    """
    booking = repository.get_booking(booking_id, user_id=str(user_id))
    if not booking:
        raise BookingNotFound()
    cancelled = state_machine.cancel(booking)
    return serialize_booking(cancelled)
