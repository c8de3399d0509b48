"""Plain ASGI app with per-request logging scopes.

Every request gets a RequestId/Method/Path scope. Records land in a ring
buffer that is served back as NDJSON under /logs.

Run with:
    uvicorn examples.asgi_app:app --reload

Then:
    curl -H "X-Request-ID: demo-1" http://localhost:8000/orders/42
    curl "http://localhost:8000/logs?level=Information"
"""

import json

from scopedlog import LoggingConfig, RingBufferSink, configure, get_logger
from scopedlog.adapters.frameworks import ASGIScopeMiddleware, create_logs_app
from scopedlog.adapters.frameworks.asgi import Receive, Scope, Send

sink = RingBufferSink(max_size=1000)
configure(LoggingConfig.from_env(sinks=(sink,)))

logger = get_logger("examples.orders")
logs_app = create_logs_app(sink)


async def orders(scope: Scope, receive: Receive, send: Send) -> None:
    path: str = scope["path"]
    if path.startswith("/logs"):
        await logs_app(scope, receive, send)
        return

    order_id = path.rsplit("/", 1)[-1]
    if not order_id.isdigit():
        logger.warning("Rejected order id {OrderId}", order_id)
        status, body = 404, {"error": "unknown order"}
    else:
        logger.info("Loaded order {OrderId}", int(order_id))
        status, body = 200, {"order_id": int(order_id), "state": "shipped"}

    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [(b"content-type", b"application/json")],
        }
    )
    await send({"type": "http.response.body", "body": json.dumps(body).encode()})


app = ASGIScopeMiddleware(orders, exclude_paths=["/logs"])
