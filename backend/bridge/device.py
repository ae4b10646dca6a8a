"""Contracts for the device encoder and connection transport the bridge drives.

Neither collaborator is implemented here. The bridge only needs:

* a device object exposing one encoder method per command kind, an
  asynchronous ``set_img(path)`` render and a readable ``config`` attribute,
* a connection object exposing ``is_connected``, ``connect``, ``disconnect``,
  ``write_all`` (control channel) and ``write_image`` (bulk channel).

Concrete implementations are plugged in at startup through ``module:attribute``
factory paths, resolved by :func:`load_factory`.
"""
from __future__ import annotations

import importlib
import inspect
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, runtime_checkable


class BridgeError(RuntimeError):
    """Base error for failures raised while executing a command."""


class EncodeError(BridgeError):
    """Raised when the device encoder rejects the settings it was given."""


class TransportError(BridgeError):
    """Raised when the connection transport fails to connect or write."""


class CollaboratorLoadError(BridgeError):
    """Raised when a device or connection factory cannot be resolved."""


class RenderedImage(Protocol):
    def as_binary_buffer(self) -> bytes:
        ...


@runtime_checkable
class DeviceConnection(Protocol):
    """Stateful link to the device; owns its own retry/backoff."""

    def is_connected(self) -> bool:
        ...

    def connect(self) -> None:
        ...

    def disconnect(self) -> None:
        ...

    def write_all(self, message: bytes) -> None:
        ...

    def write_image(self, payload: bytes) -> None:
        ...


class DeviceEncoder(Protocol):
    """Pure encoders producing device messages from settings."""

    config: Any

    def score(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def brightness(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def fullday(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def datetime(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def clock(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def lighting(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def climate(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def effect(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def visualization(self, settings: Mapping[str, Any]) -> bytes:
        ...

    def power_screen(self, settings: Mapping[str, Any]) -> bytes:
        ...

    async def set_img(self, path: Optional[str]) -> RenderedImage:
        ...


def status_snapshot(connection: DeviceConnection, device: DeviceEncoder) -> Dict[str, Any]:
    """Read the current ``{connected, config}`` projection. Never cached."""

    return {
        "connected": bool(connection.is_connected()),
        "config": getattr(device, "config", None),
    }


def load_factory(path: str) -> Callable[..., Any]:
    """Resolve a ``package.module:attribute`` path to a callable."""

    module_name, sep, attribute = path.strip().partition(":")
    if not sep or not module_name or not attribute:
        raise CollaboratorLoadError(
            f"Factory path '{path}' must look like 'package.module:attribute'"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise CollaboratorLoadError(f"Cannot import module '{module_name}': {exc}") from exc

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise CollaboratorLoadError(
                f"Module '{module_name}' has no attribute '{attribute}'"
            ) from exc
    if not callable(target):
        raise CollaboratorLoadError(f"Factory '{path}' is not callable")
    return target


def build_collaborators(
    device_factory: Optional[str],
    connection_factory: Optional[str],
) -> tuple[DeviceEncoder, DeviceConnection]:
    """Instantiate the configured device and connection.

    Connection factories that declare a parameter receive the device instance.
    """

    if not device_factory:
        raise CollaboratorLoadError(
            "No device factory configured; set BRIDGE_DEVICE_FACTORY=package.module:factory"
        )
    if not connection_factory:
        raise CollaboratorLoadError(
            "No connection factory configured; set BRIDGE_CONNECTION_FACTORY=package.module:factory"
        )

    device = load_factory(device_factory)()
    make_connection = load_factory(connection_factory)
    try:
        wants_device = bool(inspect.signature(make_connection).parameters)
    except (TypeError, ValueError):
        wants_device = False
    connection = make_connection(device) if wants_device else make_connection()
    if not isinstance(connection, DeviceConnection):
        raise CollaboratorLoadError(
            f"Connection factory '{connection_factory}' returned {type(connection).__name__}, "
            "which does not provide is_connected/connect/disconnect/write_all/write_image"
        )
    return device, connection


__all__ = [
    "BridgeError",
    "CollaboratorLoadError",
    "DeviceConnection",
    "DeviceEncoder",
    "EncodeError",
    "RenderedImage",
    "TransportError",
    "build_collaborators",
    "load_factory",
    "status_snapshot",
]
