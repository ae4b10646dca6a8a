"""Display bridge backend exposing the HTTP API, MQTT front-end and CLI."""

from .server import app  # noqa: F401
from .services.bridge_service import BridgeService  # noqa: F401

__all__ = ["BridgeService", "app"]
