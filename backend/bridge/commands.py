"""Command table shared by the HTTP and MQTT front-ends.

Each command binds its recognized settings fields, the device encoder method
that turns settings into bytes, and the transport channel the bytes go out on.
``connect``, ``disconnect`` and ``status`` carry no encoder; they only touch the
connection or read a status snapshot.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .device import DeviceConnection, DeviceEncoder, EncodeError, TransportError
from .settings import (
    KIND_BOOL,
    KIND_COLOR,
    KIND_DATE,
    KIND_INT,
    KIND_STRING,
    KIND_TEXT,
    FieldSpec,
    from_payload,
    from_query,
    parse_iso_date,
)

logger = logging.getLogger(__name__)

CHANNEL_CONTROL = "control"
CHANNEL_BULK = "bulk"
CHANNEL_NONE = "none"

Message = Tuple[str, Dict[str, Any]]


@dataclass(frozen=True)
class Command:
    name: str
    fields: Tuple[FieldSpec, ...] = ()
    encoder: Optional[str] = None
    channel: str = CHANNEL_CONTROL
    expand: Optional[Callable[[Dict[str, Any]], List[Message]]] = None

    @property
    def writes(self) -> bool:
        return self.channel != CHANNEL_NONE

    def from_query(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        return from_query(self.fields, params)

    def from_payload(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return from_payload(self.fields, payload)

    def messages(self, settings: Dict[str, Any]) -> List[Message]:
        """Encoder calls this command performs, in write order."""

        if self.encoder is None:
            return []
        if self.expand is not None:
            return self.expand(settings)
        return [(self.encoder, dict(settings))]


def _coerce_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        parsed = parse_iso_date(value)
        if parsed is not None:
            return parsed
        logger.debug("Ignoring unparseable date %r; using current time", value)
    return datetime.now()


def _expand_datetime(settings: Dict[str, Any]) -> List[Message]:
    messages: List[Message] = [("datetime", {"date": _coerce_date(settings.get("date"))})]
    if "fulldayMode" in settings:
        messages.append(("fullday", {"enable": settings["fulldayMode"]}))
    return messages


def _int(name: str) -> FieldSpec:
    return FieldSpec(name, KIND_INT)


def _bool(name: str) -> FieldSpec:
    return FieldSpec(name, KIND_BOOL)


_TABLE = (
    Command("score", (_int("red"), _int("blue")), encoder="score"),
    Command("brightness", (_int("level"),), encoder="brightness"),
    Command("fullday", (_bool("enable"),), encoder="fullday"),
    Command(
        "datetime",
        (FieldSpec("date", KIND_DATE), _bool("fulldayMode")),
        encoder="datetime",
        expand=_expand_datetime,
    ),
    Command(
        "clock",
        (
            _int("mode"),
            _bool("showTime"),
            _bool("showWeather"),
            _bool("showTemperature"),
            _bool("showCalendar"),
            FieldSpec("color", KIND_COLOR),
        ),
        encoder="clock",
    ),
    Command(
        "lighting",
        (
            FieldSpec("color", KIND_TEXT),
            _int("brightness"),
            _int("mode"),
            _bool("powerScreen"),
        ),
        encoder="lighting",
    ),
    Command("climate", (_int("weather"), _int("temperature")), encoder="climate"),
    Command("effect", (_int("mode"),), encoder="effect"),
    Command("visualization", (_int("mode"),), encoder="visualization"),
    Command("screenOff", (_bool("enable"),), encoder="power_screen"),
    Command(
        "setImg",
        (FieldSpec("path", KIND_STRING),),
        encoder="set_img",
        channel=CHANNEL_BULK,
    ),
    Command("connect", channel=CHANNEL_NONE),
    Command("disconnect", channel=CHANNEL_NONE),
    Command("status", channel=CHANNEL_NONE),
)

COMMANDS: Dict[str, Command] = {command.name: command for command in _TABLE}

# Topic names the first MQTT clients were built against.
ALIASES: Dict[str, str] = {
    "img": "setImg",
    "lightning": "lighting",
}


def resolve(name: str) -> Optional[Command]:
    return COMMANDS.get(ALIASES.get(name, name))


def _encode(device: DeviceEncoder, encoder: str, settings: Dict[str, Any]) -> bytes:
    method = getattr(device, encoder, None)
    if method is None:
        raise EncodeError(f"Device does not implement '{encoder}'")
    try:
        return method(settings)
    except Exception as exc:
        raise EncodeError(f"{encoder} rejected settings {settings!r}: {exc}") from exc


async def _write(send: Callable[[bytes], Any], payload: bytes, channel: str) -> None:
    try:
        await asyncio.to_thread(send, payload)
    except Exception as exc:
        raise TransportError(f"Write on {channel} channel failed: {exc}") from exc


async def execute(
    command: Command,
    settings: Dict[str, Any],
    device: DeviceEncoder,
    connection: DeviceConnection,
) -> None:
    """Encode ``settings`` for ``command`` and write the result to the device."""

    if command.channel == CHANNEL_BULK:
        path = settings.get("path")
        try:
            rendered = await device.set_img(path)
            payload = rendered.as_binary_buffer()
        except Exception as exc:
            raise EncodeError(f"Rendering image {path!r} failed: {exc}") from exc
        await _write(connection.write_image, payload, CHANNEL_BULK)
        return

    for encoder, encoder_settings in command.messages(settings):
        message = _encode(device, encoder, encoder_settings)
        logger.debug("Writing %s message", encoder)
        await _write(connection.write_all, message, CHANNEL_CONTROL)


__all__ = [
    "ALIASES",
    "CHANNEL_BULK",
    "CHANNEL_CONTROL",
    "CHANNEL_NONE",
    "COMMANDS",
    "Command",
    "execute",
    "resolve",
]
