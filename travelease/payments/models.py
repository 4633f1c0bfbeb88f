"""
Vues en lecture seule des objets Stripe utilisés par la vérification.
Rien ici n'est persisté: la source de vérité reste Stripe.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

# Valeur terminale de succès d'un PaymentIntent Stripe
PAYMENT_SUCCEEDED = "succeeded"


class PaymentRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference: str
    status: str
    amount: int
    amount_received: Optional[int] = None
    currency: str
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def captured_amount(self) -> int:
        """Montant réellement encaissé si Stripe le distingue, sinon montant nominal."""
        if self.amount_received is not None:
            return self.amount_received
        return self.amount

    @property
    def owner_id(self) -> Optional[str]:
        return self.metadata.get("user_id")

    @classmethod
    def from_intent(cls, intent: Dict[str, Any]) -> "PaymentRecord":
        """Construit la vue à partir d'un PaymentIntent (objet Stripe dict-compatible)."""
        metadata = intent.get("metadata") or {}
        received = intent.get("amount_received")
        return cls(
            reference=str(intent.get("id") or ""),
            status=str(intent.get("status") or ""),
            amount=int(intent.get("amount") or 0),
            amount_received=int(received) if received is not None else None,
            currency=str(intent.get("currency") or ""),
            metadata={str(k): str(v) for k, v in dict(metadata).items()},
        )


class VerifiedPayment(BaseModel):
    """Résultat d'une vérification réussie, utilisé pour confirmer la réservation."""
    model_config = ConfigDict(frozen=True)

    reference: str
    currency: str
    status: str
