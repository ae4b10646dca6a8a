"""MQTT front-end: subscribes to command topics and hands work to the service.

Inbound topics are ``<base>/set/<command>``; the status snapshot is published
on ``<base>/get/status`` when requested. paho runs its network loop on its own
thread, so every command is scheduled onto the service's event loop and the
returned future is the only link back to its outcome.
"""
from __future__ import annotations

import asyncio
import concurrent.futures
import json
import logging
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Dict, List, Optional

import paho.mqtt.client as mqtt

from .commands import ALIASES, COMMANDS, Command, resolve
from .device import BridgeError

if TYPE_CHECKING:  # pragma: no cover
    from .services.bridge_service import BridgeService
    from .services.config import MqttConfig

logger = logging.getLogger(__name__)

SET_SEGMENT = "set"
GET_SEGMENT = "get"


def create_client(config: "MqttConfig") -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=config.client_id,
        protocol=mqtt.MQTTv311,
        clean_session=True,
    )


class MqttBridge:
    """Owns the broker client for the lifetime of one service run."""

    def __init__(
        self,
        service: "BridgeService",
        config: "MqttConfig",
        client_factory: Optional[Callable[["MqttConfig"], Any]] = None,
    ) -> None:
        self._service = service
        self._config = config
        self._client_factory = client_factory or create_client
        self._client: Optional[Any] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def client(self) -> Optional[Any]:
        return self._client

    @property
    def status_topic(self) -> str:
        return f"{self._config.topic}/{GET_SEGMENT}/status"

    def command_topic(self, name: str) -> str:
        return f"{self._config.topic}/{SET_SEGMENT}/{name}"

    def subscriptions(self) -> List[str]:
        return [self.command_topic(name) for name in [*COMMANDS, *ALIASES]]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._client is not None:
            return
        self._loop = loop
        client = self._client_factory(self._config)
        if self._config.has_credentials:
            client.username_pw_set(self._config.username, self._config.password)
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        logger.info(
            "Connecting to MQTT broker %s:%s (topic base %s)",
            self._config.host,
            self._config.port,
            self._config.topic,
        )
        self._client = client
        client.connect_async(self._config.host, self._config.port, self._config.keepalive)
        client.loop_start()

    def stop(self) -> None:
        client = self._client
        self._client = None
        if client is None:
            return
        client.disconnect()
        client.loop_stop()

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------
    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connect refused: %s", reason_code)
            return
        logger.info("mqtt client connected")
        for topic in self.subscriptions():
            client.subscribe(topic, qos=0)

    def _on_connect_fail(self, client, userdata) -> None:
        logger.error("MQTT broker %s:%s unreachable", self._config.host, self._config.port)
        self._teardown(client)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connection lost: %s", reason_code)
            self._teardown(client)
            return
        logger.info("mqtt client disconnected")
        if self._client is client:
            self._client = None

    def _on_message(self, client, userdata, message) -> None:
        self.handle_message(message.topic, message.payload)

    def _teardown(self, client: Any) -> None:
        if self._client is client:
            self._client = None
        # No reopen; the broker link stays down until the service restarts.
        client.disconnect()
        client.loop_stop()

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------
    def handle_message(self, topic: str, payload: bytes) -> Optional[concurrent.futures.Future]:
        """Route an inbound message; returns the scheduled future, if any."""

        prefix = f"{self._config.topic}/{SET_SEGMENT}/"
        if not topic.startswith(prefix):
            return None
        command = resolve(topic[len(prefix):])
        if command is None:
            logger.debug("No command bound to topic %s", topic)
            return None

        logger.info("TOPIC: %s MSG %s", topic, _preview(payload))
        if command.name == "status":
            return self._submit(self._publish_status())
        if command.name == "connect":
            return self._submit(self._service.connect())
        if command.name == "disconnect":
            return self._submit(self._service.disconnect())

        settings = self._parse_settings(command, payload)
        if settings is None:
            return None
        return self._submit(self._service.dispatch_message(command.name, settings))

    @staticmethod
    def _parse_settings(command: Command, payload: bytes) -> Optional[Dict[str, Any]]:
        try:
            document = json.loads(payload)
        except (TypeError, ValueError):
            logger.debug("Dropping %s message with malformed JSON", command.name)
            return None
        if not isinstance(document, dict):
            logger.debug("Dropping %s message: payload is not a JSON object", command.name)
            return None
        return command.from_payload(document)

    def _submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        if self._loop is None:
            coro.close()
            raise RuntimeError("MQTT bridge is not started")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(_log_outcome)
        return future

    async def _publish_status(self) -> Dict[str, Any]:
        snapshot = self._service.status()
        self.publish(self.status_topic, json.dumps(snapshot, default=str))
        return snapshot

    def publish(self, topic: str, payload: str) -> None:
        client = self._client
        if client is None:
            logger.warning("Dropping publish to %s: MQTT client is not connected", topic)
            return
        client.publish(topic, payload, qos=0)


def _preview(payload: bytes, limit: int = 200) -> str:
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else str(payload)
    return text if len(text) <= limit else text[:limit] + "..."


def _log_outcome(future: concurrent.futures.Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if isinstance(exc, BridgeError):
        logger.error("MQTT command failed: %s", exc)
    elif exc is not None:
        logger.error("MQTT command crashed", exc_info=exc)


__all__ = ["GET_SEGMENT", "MqttBridge", "SET_SEGMENT", "create_client"]
