"""
Modèle métier des réservations: états, brouillon de création, sérialisation.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel

from travelease.payments.amounts import quantize_amount

# status
PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
STATUSES = (PENDING, CONFIRMED, CANCELLED)

# payment_status
UNPAID = "unpaid"
SUCCEEDED = "succeeded"
FAILED = "failed"
PAYMENT_STATUSES = (UNPAID, SUCCEEDED, FAILED)


class BookingDraft(BaseModel):
    """Réservation validée mais pas encore écrite en base."""
    user_id: str
    hotel_id: Optional[int] = None
    room_id: Optional[int] = None
    flight_id: Optional[int] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: int = 1
    total_price: Decimal
    currency: str

    def to_row(self, currency: Optional[str] = None) -> Dict[str, Any]:
        """
        Ligne 'bookings' prête pour PostgREST (dates ISO, prix en chaîne 2 décimales).
        - currency: devise de la ligne si elle diffère du brouillon (devise réglée chez Stripe)
        - le prix est arrondi à l'unité mineure de cette devise, comme lors de la vérification
        """
        ccy = (currency or self.currency).lower()
        price = quantize_amount(self.total_price, ccy)
        return {
            "user_id": self.user_id,
            "hotel_id": self.hotel_id,
            "room_id": self.room_id,
            "flight_id": self.flight_id,
            "check_in": self.check_in.isoformat() if self.check_in else None,
            "check_out": self.check_out.isoformat() if self.check_out else None,
            "guests": self.guests,
            "total_price": f"{price:.2f}",
            "currency": ccy,
        }


def booking_type(booking: Dict[str, Any]) -> str:
    if booking.get("hotel_id") is not None:
        return "hotel"
    if booking.get("flight_id") is not None:
        return "flight"
    return "unknown"


def serialize_booking(booking: Dict[str, Any]) -> Dict[str, Any]:
    """Ajoute l'attribut calculé 'type' pour le front (filtrage hotel/flight)."""
    out = dict(booking)
    out["type"] = booking_type(booking)
    return out
