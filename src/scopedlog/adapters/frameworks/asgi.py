"""ASGI adapters.

``ASGIScopeMiddleware`` opens a logging scope for every HTTP request and
logs one record when the request finishes. ``create_logs_app`` serves the
records held by an in-memory sink as NDJSON. Neither depends on a web
framework; both work under any ASGI server.
"""

import fnmatch
import json
import uuid
from collections.abc import Callable, Coroutine
from typing import Any, Protocol
from urllib.parse import parse_qs

from scopedlog.core.encoding.ndjson import encode_records
from scopedlog.core.levels import Severity
from scopedlog.core.logs import Logger, get_logger
from scopedlog.core.models import LogRecord
from scopedlog.core.scope import push
from scopedlog.core.timing import Stopwatch

Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]


def _extract_request_id(scope: Scope, header_name: str = "X-Request-ID") -> str:
    """Return the request ID header value (case-insensitive) or a new UUID."""
    wanted = header_name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for name, value in headers:
        if name.lower() == wanted:
            return value.decode("utf-8", errors="replace")
    return str(uuid.uuid4())


def level_for_status(status_code: int) -> Severity:
    """2xx and other codes log at INFORMATION, 4xx at WARNING, 5xx at ERROR."""
    if 400 <= status_code < 500:
        return Severity.WARNING
    if 500 <= status_code < 600:
        return Severity.ERROR
    return Severity.INFORMATION


class ASGIScopeMiddleware:
    """Wraps an ASGI app with a per-request logging scope.

    Everything the app logs while handling a request carries ``RequestId``,
    ``Method`` and ``Path``. After the response, one record is logged with
    status code and duration; its level follows ``level_for_status``, and an
    exception escaping the app is logged at ERROR and re-raised.

    Example:
        ```python
        app = ASGIScopeMiddleware(app, exclude_paths=["/health", "/internal/*"])
        ```
    """

    def __init__(
        self,
        app: ASGIApp,
        logger: Logger | None = None,
        exclude_paths: list[str] | None = None,
        request_id_header: str = "X-Request-ID",
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            logger: Logger for request records (default: "scopedlog.asgi").
            exclude_paths: Paths that get neither scope nor request record.
                Supports exact matches and wildcard patterns ("/internal/*").
            request_id_header: Header carrying the caller's request ID; a
                UUID is generated when it is absent.
        """
        self.app = app
        self.logger = logger or get_logger("scopedlog.asgi")
        self.exclude_paths = exclude_paths or []
        self.request_id_header = request_id_header

    def _path_excluded(self, path: str) -> bool:
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self._path_excluded(scope["path"]):
            await self.app(scope, receive, send)
            return

        request_id = _extract_request_id(scope, self.request_id_header)
        status: dict[str, int] = {}

        async def wrapped_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
            await send(message)

        context = {
            "RequestId": request_id,
            "Method": scope["method"],
            "Path": scope["path"],
        }
        with push(context), Stopwatch() as stopwatch:
            try:
                await self.app(scope, receive, wrapped_send)
            except Exception as exc:
                stopwatch.stop()
                self.logger.error(
                    "{Method} {Path} failed after {Duration}ms",
                    scope["method"],
                    scope["path"],
                    stopwatch.elapsed_ms,
                    exc=exc,
                )
                raise
            stopwatch.stop()
            code = status.get("code", 0)
            self.logger.log(
                level_for_status(code),
                "{Method} {Path} responded {StatusCode} in {Duration}ms",
                scope["method"],
                scope["path"],
                code,
                stopwatch.elapsed_ms,
            )


class ReadableSink(Protocol):
    def read(self, since: float = 0, level: Severity | None = None) -> list[LogRecord]: ...


def _query_params(scope: Scope) -> dict[str, list[str]]:
    return parse_qs(scope.get("query_string", b"").decode(errors="replace"))


def _since_param(params: dict[str, list[str]]) -> float:
    try:
        return float(params.get("since", ["0"])[0])
    except ValueError:
        return 0.0


def _level_param(params: dict[str, list[str]]) -> Severity | None:
    values = params.get("level")
    if not values:
        return None
    return Severity.parse(values[0])


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


def create_logs_app(sink: ReadableSink) -> ASGIApp:
    """Create an ASGI app serving ``GET /logs`` as NDJSON.

    Query parameters: ``since`` (epoch seconds, exclusive) and ``level``
    (minimum level name). An unknown level answers 400.
    """

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return
        if scope["path"] != "/logs":
            await _send_response(send, 404, "text/plain", "Not Found")
            return
        params = _query_params(scope)
        try:
            level = _level_param(params)
        except ValueError as exc:
            body = json.dumps({"error": str(exc)})
            await _send_response(send, 400, "application/json", body)
            return
        records = sink.read(since=_since_param(params), level=level)
        await _send_response(send, 200, "application/x-ndjson", encode_records(records))

    return app
