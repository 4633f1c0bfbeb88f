"""
État de santé du rapprochement réservations/paiements.
- Stripe: présence des secrets (jamais leur valeur), devise par défaut, timeout
- bookings: la colonne payment_reference (clé de rapprochement, index unique) est lisible
"""
import logging
from typing import Any, Dict

from travelease import config
import travelease.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

TABLE = "bookings"
# colonnes lues par la confirmation et par le webhook
RECONCILIATION_COLUMNS = "id,status,payment_status,payment_reference"


def stripe_config_info() -> Dict[str, Any]:
    info = {
        "secret_key": bool(config.STRIPE_SECRET_KEY),
        "webhook_secret": bool(config.STRIPE_WEBHOOK_SECRET),
        "publishable_key": bool(config.STRIPE_PUBLISHABLE_KEY),
        "default_currency": config.DEFAULT_CURRENCY,
        "timeout_seconds": config.STRIPE_TIMEOUT_SECONDS,
    }
    # sans ces deux secrets: aucune confirmation payée, webhooks refusés en 500
    info["ok"] = info["secret_key"] and info["webhook_secret"]
    if not info["ok"]:
        logger.error(
            "health.stripe.misconfigured secret_key=%s webhook_secret=%s",
            info["secret_key"], info["webhook_secret"],
        )
    return info


def bookings_table_info() -> Dict[str, Any]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .select(RECONCILIATION_COLUMNS)
            .not_.is_("payment_reference", "null")
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error("health.bookings.unreachable error=%s", e)
        return {"ok": False, "table": TABLE, "error": str(e)}
    return {"ok": True, "table": TABLE, "sample": len(res.data or [])}


def health_info() -> Dict[str, Any]:
    stripe_info = stripe_config_info()
    bookings_info = bookings_table_info()
    return {
        "ok": stripe_info["ok"] and bookings_info["ok"],
        "stripe": stripe_info,
        "bookings": bookings_info,
    }
