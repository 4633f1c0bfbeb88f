"""
Doublures partagées par les tests.
- InMemoryBookingStore: remplace travelease.bookings.repository (même contrat:
  unicité de payment_reference, lignes 'cancelled' jamais modifiées).
- FakeStripe: remplace stripe_client.retrieve_payment avec des PaymentIntent en mémoire.
- sign_payload: en-tête Stripe-Signature réel (HMAC-SHA256) pour les webhooks.
"""
import copy
import hashlib
import hmac
import itertools
import threading
import time
from typing import Any, Dict, List, Optional

from travelease.bookings import repository
from travelease.errors import ProcessorUnavailable, UniqueViolation
from travelease.payments import stripe_client
from travelease.payments.models import PaymentRecord

REPOSITORY_FUNCTIONS = (
    "find_booking_by_payment_reference",
    "insert_booking",
    "insert_confirmed_booking",
    "update_payment_status",
    "cancel_booking",
    "get_booking",
    "list_user_bookings",
)


class InMemoryBookingStore:
    def __init__(self):
        self.rows: Dict[int, Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def install(self, monkeypatch) -> "InMemoryBookingStore":
        for name in REPOSITORY_FUNCTIONS:
            monkeypatch.setattr(repository, name, getattr(self, name))
        return self

    def find_booking_by_payment_reference(self, reference: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for row in self.rows.values():
                if row.get("payment_reference") == reference:
                    return copy.deepcopy(row)
        return None

    def _insert(self, row: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            reference = row.get("payment_reference")
            if reference and any(r.get("payment_reference") == reference for r in self.rows.values()):
                raise UniqueViolation()
            booking_id = next(self._ids)
            created = dict(row)
            created["id"] = booking_id
            # ordre de création lisible par list_user_bookings
            created["created_at"] = f"2026-01-01T00:{booking_id // 60:02d}:{booking_id % 60:02d}+00:00"
            self.rows[booking_id] = created
            return copy.deepcopy(created)

    def insert_booking(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert(row)

    def insert_confirmed_booking(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if not row.get("payment_reference"):
            raise ValueError("insert_confirmed_booking requires payment_reference")
        return self._insert(row)

    def _update(self, booking_id: Any, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self.rows.get(booking_id)
            if row is None or row.get("status") == "cancelled":
                return None
            row.update(values)
            return copy.deepcopy(row)

    def update_payment_status(self, booking_id: Any, payment_status: str, status: Optional[str] = None):
        values = {"payment_status": payment_status}
        if status:
            values["status"] = status
        return self._update(booking_id, values)

    def cancel_booking(self, booking_id: Any):
        return self._update(booking_id, {"status": "cancelled"})

    def get_booking(self, booking_id: Any, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self.rows.get(booking_id)
            if row is None or (user_id is not None and row.get("user_id") != user_id):
                return None
            return copy.deepcopy(row)

    def list_user_bookings(
        self,
        user_id: str,
        *,
        status: Optional[str] = None,
        booking_type: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [copy.deepcopy(r) for r in self.rows.values() if r.get("user_id") == user_id]
        if status:
            rows = [r for r in rows if r.get("status") == status]
        if booking_type == "hotel":
            rows = [r for r in rows if r.get("hotel_id") is not None]
        elif booking_type == "flight":
            rows = [r for r in rows if r.get("flight_id") is not None]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows[offset:offset + limit]

    def seed(self, **row) -> Dict[str, Any]:
        """Insère une ligne arbitraire (état de départ d'un scénario)."""
        base = {
            "user_id": "test-user",
            "hotel_id": None,
            "room_id": None,
            "flight_id": 7,
            "check_in": None,
            "check_out": None,
            "guests": 1,
            "total_price": "100.00",
            "currency": "usd",
            "status": "pending",
            "payment_status": "unpaid",
            "payment_reference": None,
        }
        base.update(row)
        return self._insert(base)


class FakeStripe:
    def __init__(self):
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.retrieved: List[str] = []
        self.unavailable = False
        self.barrier: Optional[threading.Barrier] = None

    def install(self, monkeypatch) -> "FakeStripe":
        monkeypatch.setattr(stripe_client, "retrieve_payment", self.retrieve_payment)
        return self

    def add_intent(
        self,
        reference: str,
        *,
        amount: int,
        currency: str = "usd",
        status: str = "succeeded",
        user_id: Optional[str] = "test-user",
        amount_received: Optional[int] = None,
    ) -> Dict[str, Any]:
        if amount_received is None:
            amount_received = amount if status == "succeeded" else 0
        intent = {
            "id": reference,
            "object": "payment_intent",
            "status": status,
            "amount": amount,
            "amount_received": amount_received,
            "currency": currency,
            "metadata": {"user_id": user_id} if user_id is not None else {},
        }
        self.intents[reference] = intent
        return intent

    def retrieve_payment(self, reference: str) -> PaymentRecord:
        self.retrieved.append(reference)
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        if self.unavailable or reference not in self.intents:
            raise ProcessorUnavailable()
        return PaymentRecord.from_intent(self.intents[reference])


def sign_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"
