"""Configuration loading for the bridge service.

Values come from built-in defaults, then an optional JSON file with
``service`` and ``mqtt`` sections, then ``BRIDGE_*`` environment variables.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_CONFIG_ENV_VAR = "BRIDGE_CONFIG_PATH"
_DEFAULT_CONFIG_PATH = Path.home() / ".config" / "display-bridge" / "config.json"
_SERVICE_KEYS = {
    "port",
    "auto_connect",
    "device_factory",
    "connection_factory",
    "upload_dir",
    "public_dir",
}
_MQTT_KEYS = {
    "enabled",
    "host",
    "port",
    "username",
    "password",
    "topic",
    "client_id",
    "keepalive",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class MqttConfig:
    enabled: bool = False
    host: str = "localhost"
    port: int = 1883
    username: str = ""
    password: str = ""
    topic: str = "display"
    client_id: str = "display-bridge"
    keepalive: int = 60

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)


@dataclass
class BridgeConfig:
    port: int = 8000
    auto_connect: bool = True
    device_factory: Optional[str] = None
    connection_factory: Optional[str] = None
    upload_dir: str = "public/uploads"
    public_dir: str = "public"
    mqtt: MqttConfig = field(default_factory=MqttConfig)


def _resolve_path(path: Optional[os.PathLike[str] | str] = None) -> Path:
    if path is not None:
        return Path(path).expanduser().resolve()

    env_override = os.getenv(_CONFIG_ENV_VAR)
    if env_override:
        return Path(env_override).expanduser().resolve()

    return _DEFAULT_CONFIG_PATH


def load_config_file(path: Optional[os.PathLike[str] | str] = None) -> Dict[str, Dict[str, Any]]:
    config_path = _resolve_path(path)
    try:
        if not config_path.is_file():
            return {}
        with config_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", config_path, exc)
        return {}

    if not isinstance(payload, dict):
        return {}

    result: Dict[str, Dict[str, Any]] = {}
    for section, keys in (("service", _SERVICE_KEYS), ("mqtt", _MQTT_KEYS)):
        values = payload.get(section)
        if isinstance(values, dict):
            result[section] = {key: values[key] for key in keys if key in values}
    return result


def _parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    return None


def _apply(target: Any, key: str, value: Any, source: str) -> None:
    current = getattr(target, key)
    if isinstance(current, bool):
        parsed = _parse_bool(value)
        if parsed is None:
            logger.warning("Invalid %s=%s; using %s", source, value, current)
            return
        setattr(target, key, parsed)
    elif isinstance(current, int):
        try:
            setattr(target, key, int(value))
        except (TypeError, ValueError):
            logger.warning("Invalid %s=%s; using %s", source, value, current)
    elif value is None:
        setattr(target, key, None)
    else:
        setattr(target, key, str(value).strip())


def load_bridge_config(path: Optional[os.PathLike[str] | str] = None) -> BridgeConfig:
    config = BridgeConfig()
    stored = load_config_file(path)

    for key, value in stored.get("service", {}).items():
        _apply(config, key, value, f"service.{key}")
    for key, value in stored.get("mqtt", {}).items():
        _apply(config.mqtt, key, value, f"mqtt.{key}")

    for key in sorted(_SERVICE_KEYS):
        env_name = f"BRIDGE_{key.upper()}"
        env_value = os.getenv(env_name)
        if env_value is not None and env_value.strip():
            _apply(config, key, env_value, env_name)
    for key in sorted(_MQTT_KEYS):
        env_name = f"BRIDGE_MQTT_{key.upper()}"
        env_value = os.getenv(env_name)
        if env_value is not None and env_value.strip():
            _apply(config.mqtt, key, env_value, env_name)

    config.mqtt.topic = config.mqtt.topic.rstrip("/")
    return config


__all__ = ["BridgeConfig", "MqttConfig", "load_bridge_config", "load_config_file"]
