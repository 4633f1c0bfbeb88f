"""
Accès aux données pour la feature 'bookings' (table Supabase 'bookings').

Contrat côté stockage:
- payment_reference est UNIQUE quand il est renseigné (voir sql/bookings.sql)
- une violation d'unicité (Postgres 23505) remonte en UniqueViolation,
  toute autre erreur en BookingStorageError
- l'insertion d'une ligne déjà confirmée est l'unité atomique insert + confirm
- les mises à jour ne touchent jamais une ligne 'cancelled' (état terminal)
"""
import logging
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

import travelease.infra.supabase_client as supabase_client
from travelease.errors import BookingStorageError, UniqueViolation

logger = logging.getLogger(__name__)

TABLE = "bookings"
UNIQUE_VIOLATION = "23505"


def _api_error_code(e: APIError) -> Optional[str]:
    code = getattr(e, "code", None)
    if code is None and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return code


def _table():
    return supabase_client.get_service_supabase().table(TABLE)


def _first(res) -> Optional[Dict[str, Any]]:
    rows = res.data or []
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None


# module travelease.bookings.repository
def find_booking_by_payment_reference(reference: str) -> Optional[Dict[str, Any]]:
    """Retourne la réservation portant ce payment_reference, ou None."""
    try:
        res = _table().select("*").eq("payment_reference", reference).limit(1).execute()
        return _first(res)
    except Exception as e:
        logger.exception("bookings.repository.find_booking_by_payment_reference failed reference=%s", reference)
        raise BookingStorageError() from e


def _insert(row: Dict[str, Any]) -> Dict[str, Any]:
    try:
        res = _table().insert(row).execute()
    except APIError as e:
        if _api_error_code(e) == UNIQUE_VIOLATION:
            logger.info(
                "bookings.repository.insert unique_violation user_id=%s reference=%s",
                row.get("user_id"), row.get("payment_reference"),
            )
            raise UniqueViolation() from e
        logger.exception("bookings.repository.insert failed user_id=%s", row.get("user_id"))
        raise BookingStorageError() from e
    except Exception as e:
        logger.exception("bookings.repository.insert failed user_id=%s", row.get("user_id"))
        raise BookingStorageError() from e
    created = _first(res)
    if not created:
        raise BookingStorageError()
    return created


def insert_booking(row: Dict[str, Any]) -> Dict[str, Any]:
    """Insère une réservation sans référence de paiement (pending/unpaid)."""
    return _insert(row)


def insert_confirmed_booking(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insère en une seule écriture une réservation déjà confirmée:
    status=confirmed, payment_status=succeeded, payment_reference renseigné.
    Soulève UniqueViolation si la référence est déjà prise.
    """
    if not row.get("payment_reference"):
        raise ValueError("insert_confirmed_booking requires payment_reference")
    return _insert(row)


def update_payment_status(booking_id: Any, payment_status: str, status: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Met à jour payment_status (et status si fourni) d'une réservation non annulée.
    Retourne la ligne mise à jour, ou None si aucune ligne n'a été touchée
    (réservation inexistante ou annulée entre-temps).
    """
    values = {"payment_status": payment_status}
    if status:
        values["status"] = status
    try:
        res = _table().update(values).eq("id", booking_id).neq("status", "cancelled").execute()
        return _first(res)
    except Exception as e:
        logger.exception("bookings.repository.update_payment_status failed booking_id=%s", booking_id)
        raise BookingStorageError() from e


def cancel_booking(booking_id: Any) -> Optional[Dict[str, Any]]:
    """Passe la réservation à 'cancelled' si elle ne l'est pas déjà; None sinon."""
    try:
        res = _table().update({"status": "cancelled"}).eq("id", booking_id).neq("status", "cancelled").execute()
        return _first(res)
    except Exception as e:
        logger.exception("bookings.repository.cancel_booking failed booking_id=%s", booking_id)
        raise BookingStorageError() from e


def get_booking(booking_id: Any, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Lit une réservation par id, restreinte au propriétaire si user_id est fourni."""
    try:
        query = _table().select("*").eq("id", booking_id)
        if user_id is not None:
            query = query.eq("user_id", user_id)
        return _first(query.limit(1).execute())
    except Exception as e:
        logger.exception("bookings.repository.get_booking failed booking_id=%s", booking_id)
        raise BookingStorageError() from e


def list_user_bookings(
    user_id: str,
    *,
    status: Optional[str] = None,
    booking_type: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """
    Réservations d'un utilisateur, plus récentes d'abord.
    - status: pending | confirmed | cancelled
    - booking_type: hotel (hotel_id non nul) | flight (flight_id non nul)
    """
    try:
        query = _table().select("*").eq("user_id", user_id)
        if status:
            query = query.eq("status", status)
        if booking_type == "hotel":
            query = query.not_.is_("hotel_id", "null")
        elif booking_type == "flight":
            query = query.not_.is_("flight_id", "null")
        res = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        return res.data or []
    except Exception as e:
        logger.exception("bookings.repository.list_user_bookings failed user_id=%s", user_id)
        raise BookingStorageError() from e
