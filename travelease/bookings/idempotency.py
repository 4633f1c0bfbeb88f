"""
Garde d'idempotence: un payment_reference n'est rattaché qu'à une seule réservation.

- ensure_unclaimed: pré-contrôle avant l'appel Stripe (évite un aller-retour inutile)
- claim: écriture atomique; la contrainte UNIQUE du stockage est la seule garantie,
  deux requêtes concurrentes peuvent toutes deux passer le pré-contrôle
"""
import logging
from typing import Any, Dict

from travelease.errors import DuplicatePaymentReference, UniqueViolation
from . import repository

logger = logging.getLogger(__name__)


def ensure_unclaimed(reference: str) -> None:
    existing = repository.find_booking_by_payment_reference(reference)
    if existing:
        logger.info(
            "bookings.idempotency.already_claimed reference=%s booking_id=%s",
            reference, existing.get("id"),
        )
        raise DuplicatePaymentReference()


def claim(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insère la réservation confirmée qui revendique row['payment_reference'].
    Une violation d'unicité équivaut à DuplicatePaymentReference; rien n'est écrit.
    """
    try:
        return repository.insert_confirmed_booking(row)
    except UniqueViolation as e:
        logger.warning(
            "bookings.idempotency.claim_conflict reference=%s user_id=%s",
            row.get("payment_reference"), row.get("user_id"),
        )
        raise DuplicatePaymentReference() from e
