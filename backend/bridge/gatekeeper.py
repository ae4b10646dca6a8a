"""Connection gating in front of every device write."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .device import DeviceConnection, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConnectionGatekeeper:
    """Opens the device link on demand.

    Two usage patterns are supported:

    * :meth:`gate` blocks the caller until a pending connect settles, used by
      the HTTP routes before every command,
    * :meth:`reconnect_then` connects if needed and then runs an action, used by
      the MQTT front-end where each call is scheduled as its own future.

    Concurrent callers share a single in-flight ``connect()``. A failed connect
    is logged and the caller proceeds; the subsequent write surfaces whatever
    error the transport raises.
    """

    def __init__(self, connection: DeviceConnection, *, auto_connect: bool = True) -> None:
        self._connection = connection
        self.auto_connect = auto_connect
        self._pending: Optional[asyncio.Task[bool]] = None

    @property
    def connection(self) -> DeviceConnection:
        return self._connection

    def is_connected(self) -> bool:
        return bool(self._connection.is_connected())

    async def ensure_connected(self) -> bool:
        if self.is_connected():
            return True
        task = self._pending
        if task is None or task.done():
            task = asyncio.create_task(self._connect())
            self._pending = task
        return await asyncio.shield(task)

    async def _connect(self) -> bool:
        logger.info("Device link closed; connecting")
        try:
            await asyncio.to_thread(self._connection.connect)
        except Exception as exc:
            logger.warning("Device connect failed: %s", exc)
            return False
        finally:
            self._pending = None
        connected = self.is_connected()
        if connected:
            logger.info("Device link established")
        return connected

    async def gate(self) -> None:
        if not self.auto_connect:
            return
        if self.is_connected():
            return
        await self.ensure_connected()

    async def reconnect_then(self, action: Callable[[], Awaitable[T]]) -> T:
        if not self.is_connected():
            await self.ensure_connected()
        return await action()

    async def connect(self) -> bool:
        if self.is_connected():
            return True
        return await self.ensure_connected()

    async def disconnect(self) -> None:
        if not self.is_connected():
            return
        try:
            await asyncio.to_thread(self._connection.disconnect)
        except Exception as exc:
            raise TransportError(f"Disconnect failed: {exc}") from exc
        logger.info("Device link closed on request")


__all__ = ["ConnectionGatekeeper"]
