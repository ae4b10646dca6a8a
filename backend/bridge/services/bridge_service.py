"""Core business logic for the display bridge."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from ..commands import COMMANDS, Command, execute, resolve
from ..device import DeviceConnection, DeviceEncoder, status_snapshot
from ..gatekeeper import ConnectionGatekeeper
from ..integration import run_integration
from ..mqtt_link import MqttBridge
from .config import BridgeConfig

logger = logging.getLogger("bridge.service")


class UnknownCommandError(LookupError):
    """Raised when a command name has no encoder entry in the command table."""


def _store_file(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("wb") as handle:
        handle.write(data)


class BridgeService:
    """Async facade over the device and its connection shared by both front-ends."""

    def __init__(
        self,
        device: DeviceEncoder,
        connection: DeviceConnection,
        config: Optional[BridgeConfig] = None,
        mqtt_client_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        self._config = config or BridgeConfig()
        self._device = device
        self._connection = connection
        self._gatekeeper = ConnectionGatekeeper(
            connection, auto_connect=self._config.auto_connect
        )
        self._mqtt_client_factory = mqtt_client_factory
        self._mqtt: Optional[MqttBridge] = None
        self._running = False

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def gatekeeper(self) -> ConnectionGatekeeper:
        return self._gatekeeper

    @property
    def mqtt(self) -> Optional[MqttBridge]:
        return self._mqtt

    async def start(self) -> None:
        if self._running:
            logger.warning("Service is already running and needs to be stopped first.")
            return
        self._running = True
        if self._config.mqtt.enabled:
            self._mqtt = MqttBridge(
                self,
                self._config.mqtt,
                client_factory=self._mqtt_client_factory,
            )
            self._mqtt.start(asyncio.get_running_loop())

    async def stop(self) -> None:
        if self._mqtt is not None:
            self._mqtt.stop()
            self._mqtt = None
        self._running = False

    def status(self) -> Dict[str, Any]:
        return status_snapshot(self._connection, self._device)

    async def gate(self) -> None:
        await self._gatekeeper.gate()

    def _writing_command(self, name: str) -> Command:
        command = resolve(name)
        if command is None or not command.writes:
            raise UnknownCommandError(f"'{name}' is not a device command")
        return command

    async def execute(self, name: str, settings: Dict[str, Any]) -> None:
        command = self._writing_command(name)
        logger.info("Executing %s with %s", command.name, settings)
        await execute(command, settings, self._device, self._connection)

    async def run_request(self, name: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize query parameters, write the command and report status."""

        command = self._writing_command(name)
        settings = command.from_query(params)
        await self.execute(command.name, settings)
        return self.status()

    async def dispatch_message(self, name: str, settings: Dict[str, Any]) -> None:
        command = self._writing_command(name)
        await self._gatekeeper.reconnect_then(lambda: self.execute(command.name, settings))

    async def connect(self) -> Dict[str, Any]:
        await self._gatekeeper.connect()
        return self.status()

    async def disconnect(self) -> Dict[str, Any]:
        await self._gatekeeper.disconnect()
        return self.status()

    async def save_upload(self, filename: str, data: bytes) -> str:
        """Store an uploaded file and return its path.

        A failed disk write is logged only; the caller still receives the path.
        """

        target = Path(self._config.upload_dir) / Path(filename).name
        try:
            await asyncio.to_thread(_store_file, target, data)
        except OSError as exc:
            logger.error("Failed to store upload %s: %s", target, exc)
        else:
            logger.info("Stored upload %s (%d bytes)", target, len(data))
        return target.as_posix()

    async def run_integration(self, delay_ms: int = 2000) -> Dict[str, Any]:
        await run_integration(self, max(delay_ms, 0) / 1000.0)
        return self.status()

    def describe(self) -> Dict[str, Any]:
        return {
            "auto_connect": self._gatekeeper.auto_connect,
            "mqtt_enabled": self._mqtt is not None,
            "commands": sorted(name for name, command in COMMANDS.items() if command.writes),
        }


__all__ = ["BridgeService", "UnknownCommandError"]
