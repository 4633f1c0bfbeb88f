"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `travelease.asgi:app`.
- Toute la configuration de FastAPI est centralisée dans travelease.app_setup.factory,
  ce fichier ne fait qu’exposer l’instance `app`.
"""

from travelease.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "travelease.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
