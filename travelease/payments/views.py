import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from travelease import config
from travelease.errors import AppError
from travelease.utils.rate_limit import optional_rate_limit
from travelease.utils.security import require_user
from . import service as payments_service
from . import webhooks

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class PaymentIntentRequest(BaseModel):
    amount: Decimal = Field(ge=1)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    description: Optional[str] = Field(default=None, max_length=255)
    metadata: Optional[Dict[str, str]] = None
    amount_in_minor: bool = False


# module travelease.payments.views
@router.post("/intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_intent(body: PaymentIntentRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Crée un PaymentIntent Stripe pour le checkout de l’utilisateur authentifié.
    - Entrée JSON: { "amount": 120.5, "currency": "usd", "description": "...", "metadata": {...} }
    - metadata.user_id est toujours forcé à l'utilisateur courant
    - Réponse: { clientSecret, paymentIntentId, currency, amount, publishableKey }
    - Erreurs: 400 si Stripe refuse (message lisible), 422 si montant trop faible
    """
    try:
        return payments_service.create_intent(
            user_id=user.get("id"),
            amount=body.amount,
            currency=body.currency,
            description=body.description,
            metadata=body.metadata,
            amount_in_minor=body.amount_in_minor,
        )
    except (AppError, HTTPException):
        raise
    except Exception:
        logger.exception("Erreur create_payment_intent")
        raise HTTPException(status_code=500, detail="Internal error.")


@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: applique les échecs de paiement aux réservations.
    - Signature: Stripe-Signature + STRIPE_WEBHOOK_SECRET (payments.webhooks.handle)
    - Réponse: {"received": true} pour tout événement authentifié, réservation trouvée ou non
    - Erreurs: 400 signature absente/invalide ou payload invalide, 500 secret non configuré
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    try:
        result = await run_in_threadpool(webhooks.handle, payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
    except AppError:
        raise
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=500, detail="Internal error.")
    return JSONResponse(result)
