"""Adapters connecting the core to sinks, stdlib logging and ASGI servers."""
