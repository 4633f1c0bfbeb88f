from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from travelease.health import service as health_service
from travelease.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

def _response(info):
    return JSONResponse(info, status_code=200 if info["ok"] else 503)

@router.get("")
def health_root():
    return _response(health_service.health_info())

@router.get("/stripe")
def health_stripe():
    return _response(health_service.stripe_config_info())

@router.get("/bookings")
def health_bookings():
    return _response(health_service.bookings_table_info())

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return rate_limit_health_info(request)
