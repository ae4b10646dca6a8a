"""Tests for the command table and command execution."""
from __future__ import annotations

import threading
from datetime import datetime

import pytest

from backend.bridge.commands import (
    CHANNEL_BULK,
    CHANNEL_NONE,
    COMMANDS,
    execute,
    resolve,
)
from backend.bridge.device import EncodeError, TransportError


def test_table_covers_every_command() -> None:
    assert set(COMMANDS) == {
        "score",
        "brightness",
        "fullday",
        "datetime",
        "clock",
        "lighting",
        "climate",
        "effect",
        "visualization",
        "screenOff",
        "setImg",
        "connect",
        "disconnect",
        "status",
    }
    assert COMMANDS["setImg"].channel == CHANNEL_BULK
    for name in ("connect", "disconnect", "status"):
        assert COMMANDS[name].channel == CHANNEL_NONE
        assert COMMANDS[name].messages({}) == []


def test_aliases_resolve_to_commands() -> None:
    assert resolve("img") is COMMANDS["setImg"]
    assert resolve("lightning") is COMMANDS["lighting"]
    assert resolve("unknown") is None


def test_datetime_defaults_date_to_now() -> None:
    before = datetime.now()
    messages = COMMANDS["datetime"].messages({})
    assert [name for name, _ in messages] == ["datetime"]
    assert messages[0][1]["date"] >= before


def test_datetime_with_fullday_mode_adds_fullday_message() -> None:
    date = datetime(2024, 1, 2, 3, 4, 5)
    messages = COMMANDS["datetime"].messages({"date": date, "fulldayMode": False})
    assert messages == [("datetime", {"date": date}), ("fullday", {"enable": False})]


def test_datetime_parses_string_dates_from_payloads() -> None:
    messages = COMMANDS["datetime"].messages({"date": "2024-05-06T07:08:09"})
    assert messages[0][1]["date"] == datetime(2024, 5, 6, 7, 8, 9)


@pytest.mark.asyncio
async def test_execute_writes_control_message(device, connection) -> None:
    await execute(COMMANDS["score"], {"red": 1, "blue": 2}, device, connection)

    assert device.encoded == [("score", {"red": 1, "blue": 2})]
    assert connection.writes == [("write_all", b"score")]


@pytest.mark.asyncio
async def test_screen_off_uses_power_screen_encoder(device, connection) -> None:
    await execute(COMMANDS["screenOff"], {"enable": True}, device, connection)

    assert device.encoded == [("power_screen", {"enable": True})]


@pytest.mark.asyncio
async def test_set_img_renders_and_writes_bulk_channel(device, connection) -> None:
    await execute(COMMANDS["setImg"], {"path": "public/uploads/a.png"}, device, connection)

    assert device.encoded == [("set_img", {"path": "public/uploads/a.png"})]
    assert connection.writes == [("write_image", b"img:public/uploads/a.png")]


@pytest.mark.asyncio
async def test_encoder_rejection_raises_encode_error(device, connection) -> None:
    device.reject = "clock"

    with pytest.raises(EncodeError):
        await execute(COMMANDS["clock"], {}, device, connection)
    assert connection.writes == []


@pytest.mark.asyncio
async def test_write_failure_raises_transport_error(device, connection) -> None:
    connection.fail_writes = True

    with pytest.raises(TransportError):
        await execute(COMMANDS["effect"], {"mode": 3}, device, connection)


@pytest.mark.asyncio
async def test_opaque_encoder_output_is_written_as_is(device, connection) -> None:
    message = object()
    device.lighting = lambda settings: message

    await execute(COMMANDS["lighting"], {"mode": 2}, device, connection)

    assert connection.writes == [("write_all", message)]


@pytest.mark.asyncio
async def test_encoders_run_on_the_event_loop_thread(device, connection) -> None:
    threads = []

    def lighting(settings):
        threads.append(threading.get_ident())
        return b"lighting"

    device.lighting = lighting

    await execute(COMMANDS["lighting"], {}, device, connection)

    assert threads == [threading.get_ident()]
