from fastapi import FastAPI
from fastapi.testclient import TestClient
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from shipment_service.infrastructure.rate_limit import build_limiter, rate_limit_exceeded_handler

def make_app(limiter):
    app = FastAPI()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.get("/ping")
    def ping():
        return {"ok": True}

    return app

def test_unreachable_redis_falls_back_to_memory():
    # nothing listens on port 1
    limiter = build_limiter("redis://127.0.0.1:1/0", "2/minute")
    client = TestClient(make_app(limiter))

    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 200
    resp = client.get("/ping")
    assert resp.status_code == 429
    assert resp.json()["success"] is False

def test_memory_storage_when_redis_not_configured():
    limiter = build_limiter(None, "1/minute")
    client = TestClient(make_app(limiter))

    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 429
