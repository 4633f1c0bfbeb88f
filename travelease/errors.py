"""
Taxonomie des erreurs du cœur réservation/paiement.

Chaque erreur porte:
- status_code: code HTTP renvoyé par le handler FastAPI (app_setup.exceptions)
- code: nom stable de l'erreur, exposé au client pour le front
- detail: message sûr pour l'utilisateur final (jamais de détail Stripe brut)
Le détail technique se logge côté serveur, là où l'erreur est levée.
"""
from typing import Optional


class AppError(Exception):
    status_code = 400
    default_detail = "Request failed."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def code(self) -> str:
        return type(self).__name__


# --- Montants / devises ---

class InvalidCurrency(AppError):
    status_code = 422
    default_detail = "Unsupported currency code."


class AmountTooSmall(AppError):
    status_code = 422
    default_detail = "Amount must be at least 1 unit in the selected currency."


# --- Vérification du paiement (création de réservation) ---

class DuplicatePaymentReference(AppError):
    status_code = 409
    default_detail = "This payment has already been used for another booking."


class ProcessorUnavailable(AppError):
    status_code = 400
    default_detail = "Unable to verify payment, please try again."


class PaymentOwnershipMismatch(AppError):
    status_code = 403
    default_detail = "This payment does not belong to your account."


class PaymentNotCompleted(AppError):
    status_code = 400
    default_detail = "Payment has not been completed yet."


class AmountMismatch(AppError):
    status_code = 400
    default_detail = "Payment amount does not match the booking total."


class PaymentRequestRejected(AppError):
    status_code = 400
    default_detail = "Unable to process payment. Please try again or contact support."


# --- Machine à états ---

class IllegalStateTransition(AppError):
    """Erreur de logique ou de données: jamais montrée telle quelle à l'utilisateur."""
    status_code = 500
    default_detail = "Internal error."

    def __init__(self, current, target: str):
        self.current = current
        self.target = target
        super().__init__()

    def __str__(self) -> str:
        return f"illegal transition {self.current} -> {self.target}"


# --- Webhook ---

class SignatureMissing(AppError):
    status_code = 400
    default_detail = "Missing Stripe signature header."


class InvalidSignature(AppError):
    status_code = 400
    default_detail = "Invalid signature."


class InvalidPayload(AppError):
    status_code = 400
    default_detail = "Invalid payload."


class ProcessorMisconfigured(AppError):
    status_code = 500
    default_detail = "Stripe webhook secret is not configured."


# --- Réservations ---

class BookingNotFound(AppError):
    status_code = 404
    default_detail = "Booking not found"


class BookingAlreadyCancelled(AppError):
    status_code = 400
    default_detail = "Booking is already cancelled"


class BookingStorageError(AppError):
    status_code = 500
    default_detail = "Internal error."


class UniqueViolation(BookingStorageError):
    """Violation de la contrainte d'unicité (Postgres 23505) remontée par le stockage."""
