import sys
import types
from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient
from travelease import config
from travelease.utils.rate_limit import optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.post("/bookingsA", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def create_a():
        return {"ok": True}

    @app.post("/bookingsB", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def create_b():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=2, seconds=60))

    assert client.post("/bookingsA").status_code == 200
    assert client.post("/bookingsA").status_code == 200
    assert client.post("/bookingsA").status_code == 429


def test_rate_limit_is_per_path_and_token(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=1, seconds=60))
    alice = {"Authorization": "Bearer alice-token"}
    bob = {"Authorization": "Bearer bob-token"}

    assert client.post("/bookingsA", headers=alice).status_code == 200
    assert client.post("/bookingsA", headers=alice).status_code == 429
    # autre utilisateur, même chemin
    assert client.post("/bookingsA", headers=bob).status_code == 200
    # même utilisateur, autre chemin
    assert client.post("/bookingsB", headers=alice).status_code == 200


def test_rate_limit_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=1, seconds=60)
    app.state.rate_limit_enabled = False
    client = TestClient(app)

    for _ in range(3):
        assert client.post("/bookingsA").status_code == 200


def test_rate_limit_backend_error_does_not_block(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)

    class _BrokenLimiter:
        def __init__(self, **kwargs):
            pass

        async def __call__(self, request, response):
            raise ConnectionError("redis down")

    depends = types.ModuleType("fastapi_limiter.depends")
    depends.RateLimiter = _BrokenLimiter
    monkeypatch.setitem(sys.modules, "fastapi_limiter.depends", depends)

    app = _make_app(times=1, seconds=60)
    app.state.rate_limit_enabled = True
    client = TestClient(app)

    assert client.post("/bookingsA").status_code == 200
    assert client.post("/bookingsA").status_code == 200


def test_rate_limit_health_info(monkeypatch):
    app = _make_app()
    client = TestClient(app)
    app.state.rate_limit_enabled = True

    dummy = types.ModuleType("fastapi_limiter")

    class FastAPILimiter:
        redis = None

    dummy.FastAPILimiter = FastAPILimiter
    monkeypatch.setitem(sys.modules, "fastapi_limiter", dummy)

    info = client.get("/rl_info").json()
    assert info["enabled"] is True
    assert info["ready"] is False
    assert info["backend"] is None

    # Redis prêt -> détails de connexion
    FastAPILimiter.redis = object()
    monkeypatch.setattr(config, "RATE_LIMIT_REDIS_URL", "redis://localhost:6379/0")
    info2 = client.get("/rl_info").json()
    assert info2["ready"] is True
    assert info2["backend"] == "redis"
    assert info2["redis"] == {"scheme": "redis", "host": "localhost", "port": 6379}


def test_rate_limit_health_info_uses_configured_redis_url(monkeypatch):
    # URL issue de la configuration (valeur par défaut incluse), pas de l'environnement brut
    monkeypatch.delenv("RATE_LIMIT_REDIS_URL", raising=False)
    monkeypatch.setattr(config, "RATE_LIMIT_REDIS_URL", "redis://cache.internal:6380/1")
    app = _make_app()
    app.state.rate_limit_enabled = True

    dummy = types.ModuleType("fastapi_limiter")

    class FastAPILimiter:
        redis = object()

    dummy.FastAPILimiter = FastAPILimiter
    monkeypatch.setitem(sys.modules, "fastapi_limiter", dummy)

    info = TestClient(app).get("/rl_info").json()
    assert info["redis"] == {"scheme": "redis", "host": "cache.internal", "port": 6380}
