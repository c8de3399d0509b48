"""Web framework adapters."""

from scopedlog.adapters.frameworks.asgi import (
    ASGIScopeMiddleware,
    create_logs_app,
    level_for_status,
)

__all__ = [
    "ASGIScopeMiddleware",
    "create_logs_app",
    "level_for_status",
]
