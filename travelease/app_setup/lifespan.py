"""
Lifespan FastAPI du service de réservations.
- Vérifie au démarrage la configuration Stripe: sans clé secrète ni secret webhook,
  les confirmations payées et les webhooks échouent, le service démarre quand même
  mais l'erreur est loggée (et visible sur /health).
- Limiteur de débit (création de réservation / PaymentIntent) sur Redis:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: pas de limiteur
  - USE_FAKE_REDIS_FOR_TESTS=1: fakeredis
  - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre mémoire si Redis est injoignable
"""
import os
import logging
from contextlib import asynccontextmanager
import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from travelease import config

try:
    from fakeredis.aioredis import FakeRedis  # tests only
except ImportError:
    FakeRedis = None

logger = logging.getLogger(__name__)


def check_payment_config() -> bool:
    missing = [
        name for name, value in (
            ("STRIPE_SECRET_KEY", config.STRIPE_SECRET_KEY),
            ("STRIPE_WEBHOOK_SECRET", config.STRIPE_WEBHOOK_SECRET),
        ) if not value
    ]
    if missing:
        logger.error("startup.stripe.misconfigured missing=%s", ",".join(missing))
        return False
    logger.info("startup.stripe.configured default_currency=%s", config.DEFAULT_CURRENCY)
    return True


def _limiter_backend():
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        if not FakeRedis:
            raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
        return FakeRedis(decode_responses=True)
    return aioredis.from_url(config.RATE_LIMIT_REDIS_URL, encoding="utf-8", decode_responses=True)


async def init_rate_limit(app: FastAPI) -> None:
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("startup.rate_limit.disabled reason=tests")
        return
    try:
        await FastAPILimiter.init(_limiter_backend())
        app.state.rate_limit_enabled = True
        logger.info("startup.rate_limit.enabled backend=redis")
    except Exception as e:
        # Redis absent: les réservations restent possibles, sans limite (sauf fallback local)
        app.state.rate_limit_enabled = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        logger.warning(
            "startup.rate_limit.init_failed local_fallback=%s error=%s",
            app.state.rate_limit_enabled, e,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.payment_config_ok = check_payment_config()
    await init_rate_limit(app)
    yield
