"""Tests for structured logging and correlation ID propagation."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from faceroster.core.config import Settings
from faceroster.core.correlation import (
    CORRELATION_HEADER,
    CorrelationMiddleware,
    get_correlation_id,
)
from faceroster.core.logging import configure_logging, get_logger, redact_inline_images


@pytest.fixture
def test_app() -> FastAPI:
    """Create a test FastAPI app with CorrelationMiddleware."""
    app = FastAPI()
    app.add_middleware(CorrelationMiddleware)

    @app.get("/test")
    async def test_endpoint() -> dict[str, str | None]:
        return {"correlation_id": get_correlation_id()}

    @app.get("/test-async")
    async def test_async_endpoint() -> dict[str, str | None]:
        await asyncio.sleep(0.01)
        return {"correlation_id": get_correlation_id()}

    return app


class TestCorrelationMiddleware:
    """Tests for CorrelationMiddleware."""

    def test_generates_correlation_id(self, test_app: FastAPI) -> None:
        """Should generate an ID when no header is supplied."""
        client = TestClient(test_app)

        response = client.get("/test")

        assert response.status_code == 200
        corr_id = response.headers[CORRELATION_HEADER]
        assert corr_id
        assert response.json()["correlation_id"] == corr_id

    def test_uses_supplied_correlation_id(self, test_app: FastAPI) -> None:
        client = TestClient(test_app)

        response = client.get("/test", headers={CORRELATION_HEADER: "merge-42"})

        assert response.headers[CORRELATION_HEADER] == "merge-42"
        assert response.json()["correlation_id"] == "merge-42"

    def test_survives_awaits(self, test_app: FastAPI) -> None:
        client = TestClient(test_app)

        response = client.get("/test-async", headers={CORRELATION_HEADER: "async-1"})

        assert response.json()["correlation_id"] == "async-1"

    def test_header_is_set_on_error_responses(self, test_app: FastAPI) -> None:
        client = TestClient(test_app)

        response = client.get("/missing", headers={CORRELATION_HEADER: "merge-404"})

        assert response.status_code == 404
        assert response.headers[CORRELATION_HEADER] == "merge-404"

    def test_context_is_cleared_after_request(self, test_app: FastAPI) -> None:
        client = TestClient(test_app)

        client.get("/test", headers={CORRELATION_HEADER: "leaky"})

        assert get_correlation_id() is None


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.mark.parametrize(
        ("debug", "renderer"),
        [
            (True, structlog.dev.ConsoleRenderer),
            (False, structlog.processors.JSONRenderer),
        ],
    )
    def test_selects_renderer_by_debug_flag(self, debug: bool, renderer: type) -> None:
        settings = MagicMock(spec=Settings)
        settings.debug = debug

        with patch("faceroster.core.logging.get_settings", return_value=settings):
            configure_logging()

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], renderer)
        assert structlog.contextvars.merge_contextvars in processors

    def test_get_logger_returns_bound_logger(self) -> None:
        logger = get_logger("faceroster.test")

        assert hasattr(logger, "info")
        assert hasattr(logger, "warning")


class TestRedactInlineImages:
    """Tests for the inline image redaction processor."""

    def test_replaces_data_uris_at_any_depth(self) -> None:
        event = {
            "event": "merge_suggestions_image_skipped",
            "face_image": "data:image/png;base64,aW1n",
            "people": [{"id": "a", "faceImage": "data:image/jpeg;base64,AAAA"}],
            "path": "faces/a.jpg",
        }

        redacted = redact_inline_images(None, "info", event)

        assert redacted["face_image"] == "<inline image redacted>"
        assert redacted["people"][0]["faceImage"] == "<inline image redacted>"
        assert redacted["people"][0]["id"] == "a"
        assert redacted["path"] == "faces/a.jpg"
