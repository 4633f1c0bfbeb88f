"""Endpoints de l’user story Réservations.
- POST /api/v1/bookings: crée une réservation, confirmée si un paiement Stripe vérifié est fourni.
- GET  /api/v1/bookings: liste paginée des réservations de l'utilisateur (filtres status/type).
- GET  /api/v1/bookings/{id}: détail (propriétaire uniquement).
- POST /api/v1/bookings/{id}/cancel: annulation (état terminal).
Sécurité:
- require_user: toutes les routes exigent un utilisateur connecté.
- optional_rate_limit: limite la fréquence de création (chaque création interroge Stripe).
Les erreurs métier (travelease.errors) sont rendues par le handler global.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator, model_validator

from travelease.errors import AppError
from travelease.utils.rate_limit import optional_rate_limit
from travelease.utils.security import require_user
from . import service as bookings_service
from .models import STATUSES

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bookings", tags=["Bookings API"])


class BookingCreateRequest(BaseModel):
    hotel_id: Optional[int] = None
    room_id: Optional[int] = None
    flight_id: Optional[int] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: int = Field(ge=1)
    total_price: Decimal = Field(gt=0, decimal_places=2)
    currency: Optional[str] = None
    payment_reference: Optional[str] = None

    @field_validator("payment_reference")
    @classmethod
    def blank_reference_is_absent(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        return v or None

    @model_validator(mode="after")
    def check_subject(self) -> "BookingCreateRequest":
        is_hotel = self.hotel_id is not None
        is_flight = self.flight_id is not None
        if not is_hotel and not is_flight:
            raise ValueError("Either hotel_id or flight_id must be provided")
        if is_hotel and is_flight:
            raise ValueError("Provide either hotel_id or flight_id, not both")
        if is_hotel:
            if self.room_id is None:
                raise ValueError("room_id is required for hotel bookings")
            if not self.check_in or not self.check_out:
                raise ValueError("check_in and check_out are required for hotel bookings")
        elif self.room_id is not None:
            raise ValueError("room_id is only valid for hotel bookings")
        if self.check_in and self.check_in <= date.today():
            raise ValueError("check_in must be after today")
        if self.check_in and self.check_out and self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


@router.post("", status_code=201, dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_booking(body: BookingCreateRequest, user: Dict[str, Any] = Depends(require_user)):
    """Crée une réservation.
    Étapes:
    - Valide le sujet (hôtel + chambre + dates, ou vol) via BookingCreateRequest.
    - Si payment_reference est fourni: vérifie le PaymentIntent (propriétaire, statut, montant)
      puis insère la réservation déjà confirmée en une seule écriture.
    - Sinon: réservation (pending, unpaid), paiement plus tard.
    - Erreurs: 409 référence déjà utilisée, 403 paiement d'un autre utilisateur,
      400 paiement non finalisé / montant différent / Stripe indisponible.
    """
    try:
        booking = bookings_service.create_booking(user.get("id"), **body.model_dump())
        return JSONResponse(
            status_code=201,
            content={"message": "Booking created successfully", "booking": booking},
        )
    except (AppError, HTTPException):
        raise
    except Exception:
        logger.exception("Erreur create_booking user_id=%s", user.get("id"))
        raise HTTPException(status_code=500, detail="Internal error.")


@router.get("")
def my_bookings(
    user: Dict[str, Any] = Depends(require_user),
    status: Optional[str] = None,
    type: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> Dict[str, Any]:
    """Réservations de l'utilisateur, plus récentes d'abord.
    - status: pending | confirmed | cancelled (valeur inconnue ignorée)
    - type: hotel | flight (valeur inconnue ignorée)
    """
    status_filter = status if status in STATUSES else None
    type_filter = type if type in ("hotel", "flight") else None
    bookings = bookings_service.list_bookings(
        user.get("id"), status=status_filter, booking_type=type_filter, limit=limit, offset=offset
    )
    return {"bookings": bookings, "limit": limit, "offset": offset}


@router.get("/{booking_id}")
def show_booking(booking_id: int, user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    return bookings_service.get_booking(user.get("id"), booking_id)


@router.post("/{booking_id}/cancel")
def cancel_booking(booking_id: int, user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """Annule une réservation de l'utilisateur.
    - 404 si introuvable ou appartenant à un autre utilisateur
    - 400 si déjà annulée
    """
    booking = bookings_service.cancel_booking(user.get("id"), booking_id)
    return {"message": "Booking cancelled successfully", "booking": booking}
