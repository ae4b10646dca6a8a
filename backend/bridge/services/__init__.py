"""Service layer for the bridge backend."""

from .bridge_service import BridgeService, UnknownCommandError
from .config import BridgeConfig, MqttConfig, load_bridge_config
from .dependencies import build_service, get_service, shutdown_service, startup_service

__all__ = [
	"BridgeConfig",
	"BridgeService",
	"MqttConfig",
	"UnknownCommandError",
	"build_service",
	"get_service",
	"load_bridge_config",
	"shutdown_service",
	"startup_service",
]
