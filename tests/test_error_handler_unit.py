"""Focused unit tests for global exception handling behaviors.

These tests exercise the public contract via a FastAPI test app using the
installed exception handler and ExceptionNormalizationMiddleware.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from unittest.mock import patch

import pytest
from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from core.error_handler import (
    ExceptionNormalizationMiddleware,
    global_exception_handler,
)
from core.exceptions import (
    DomainError,
    InputValidationError,
    StaleDocumentError,
    StreamBusyError,
)
from core.middleware import CorrelationIdMiddleware
from services.inference.exceptions import InferenceError, InferenceHTTPError


class Item(BaseModel):
    url: str = Field(min_length=3)


def _build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(ExceptionNormalizationMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_exception_handler(HTTPException, global_exception_handler)
    app.add_exception_handler(RequestValidationError, global_exception_handler)
    app.add_exception_handler(DomainError, global_exception_handler)
    app.add_exception_handler(InferenceError, global_exception_handler)

    @app.post("/items")
    async def create_item(item: Item):  # pragma: no cover - executed via client
        return {"ok": True}

    @app.get("/bad-url")
    async def bad_url():
        raise InputValidationError("Only http and https URLs are supported")

    @app.get("/busy")
    async def busy():
        raise StreamBusyError("A response is still being generated")

    @app.get("/stale")
    async def stale():
        raise StaleDocumentError("A newer document replaced the load")

    @app.get("/model-down")
    async def model_down():
        raise InferenceHTTPError(503, "loading model")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("Exploded with secret=should_not_leak")

    @app.get("/not-found")
    async def not_found():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Nothing here")

    return app


@pytest.fixture
def build_test_app() -> Generator[Callable[[str], TestClient], None, None]:
    """Factory for a test client with ENVIRONMENT patched to ``env``."""
    with patch("core.error_handler.get_settings") as mocked:

        def build(env: str) -> TestClient:
            mocked.return_value.ENVIRONMENT = env
            return TestClient(_build_app())

        yield build


def test_validation_error_production(build_test_app):
    client = build_test_app("production")
    resp = client.post("/items", json={"url": "x"})
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"]["type"] == "validation_error"
    # production should not include validation_errors
    assert "validation_errors" not in data["error"]


def test_validation_error_development(build_test_app):
    client = build_test_app("development")
    resp = client.post("/items", json={"url": "x"})
    assert resp.status_code == 422
    assert "validation_errors" in resp.json()["error"]


def test_input_validation_maps_to_400(build_test_app):
    client = build_test_app("production")
    resp = client.get("/bad-url")
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["type"] == "domain_error"
    assert body["message"] == "Only http and https URLs are supported"
    assert "exception_type" not in body["error"]


@pytest.mark.parametrize("path", ["/busy", "/stale"])
def test_conflicts_map_to_409(build_test_app, path: str):
    client = build_test_app("development")
    resp = client.get(path)
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "domain_error"


def test_inference_error_maps_to_502(build_test_app):
    client = build_test_app("development")
    resp = client.get("/model-down")
    assert resp.status_code == 502
    body = resp.json()
    assert body["error"]["type"] == "inference_error"
    assert body["error"]["details"] == {"error_code": "http_error"}
    assert "HTTP 503" in body["message"]


def test_generic_exception_production(build_test_app):
    client = build_test_app("production")
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["type"] == "internal_server_error"
    assert "traceback" not in body["error"]
    assert "secret=should_not_leak" not in str(body)


def test_generic_exception_development(build_test_app):
    client = build_test_app("development")
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["type"] == "internal_server_error"
    assert "traceback" in body["error"]


def test_http_error_production_hides_detail(build_test_app):
    client = build_test_app("production")
    resp = client.get("/not-found")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"]["type"] == "http_error"
    assert "details" not in body["error"]


def test_correlation_id_is_echoed(build_test_app):
    client = build_test_app("production")
    resp = client.get("/bad-url", headers={"X-Correlation-ID": "req-123"})
    assert resp.headers["X-Correlation-ID"] == "req-123"
    assert resp.json()["error"]["correlation_id"] == "req-123"
