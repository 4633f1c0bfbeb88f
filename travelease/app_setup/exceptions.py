"""
Gestionnaires d’exceptions utilisés par la factory.
- AppError (travelease.errors): code HTTP + message sûr + nom d'erreur stable pour le front.
- HTTPException: JSON FastAPI standard {"detail": ...}.
Le détail technique n'est jamais renvoyé: il est loggé là où l'erreur est levée.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from travelease.errors import AppError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers AppError et HTTPException.
    - 5xx métier (ex: ProcessorMisconfigured, IllegalStateTransition) loggés en ERROR
      pour alerter les opérateurs.
    """
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("app_error code=%s path=%s error=%s", exc.code, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
