"""Shared test fixtures for all test modules."""

from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest

from scopedlog.adapters.frameworks.asgi import Receive, Scope, Send
from scopedlog.adapters.sinks.in_memory import InMemorySink
from scopedlog.config import LoggingConfig, configure, get_config
from scopedlog.core import logs
from scopedlog.core.levels import Severity
from scopedlog.core.logs import Logger, clear_logger_cache


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0.0, ms: float = 0.0) -> None:
        self.now += seconds + ms / 1000


@pytest.fixture(autouse=True)
def restore_global_config() -> Iterator[None]:
    """Every test starts and ends with the process-wide config it found."""
    saved = get_config()
    clear_logger_cache()
    logs._failed_sinks.clear()
    logs._pinned_failed_sinks.clear()
    yield
    configure(saved)
    clear_logger_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture
def logger(sink: InMemorySink) -> Logger:
    """Logger with every level enabled, writing to ``sink``."""
    config = LoggingConfig(minimum_level=Severity.TRACE, sinks=(sink,))
    return Logger("tests", config, clock=lambda: 1702300000.0)


@pytest.fixture
def log_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for SQLite sink tests."""
    return str(tmp_path / "logs.db")


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """ASGI app that returns 200 OK."""

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.fixture
def asgi_scope():
    """Factory fixture for ASGI http scope dicts."""

    def _scope(
        method: str = "GET",
        path: str = "/test",
        headers: list[tuple[bytes, bytes]] | None = None,
    ) -> Scope:
        return {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": b"",
            "headers": headers or [],
        }

    return _scope


@pytest.fixture
def asgi_send_capture():
    """Return a send callable and the list it records ASGI messages into."""
    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture creating an httpx.AsyncClient bound to an ASGI app.

    Usage:
        async def test_something(asgi_test_client):
            async with asgi_test_client(app) as client:
                response = await client.get("/endpoint")
    """

    def _get_client(app):
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
