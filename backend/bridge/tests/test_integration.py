"""Tests for the scripted integration sequence."""
from __future__ import annotations

import pytest

from backend.bridge.commands import COMMANDS
from backend.bridge.integration import integration_steps


def test_steps_only_use_known_commands() -> None:
    for name, _ in integration_steps():
        assert COMMANDS[name].writes


def test_sequence_ends_on_plain_clock() -> None:
    steps = integration_steps()

    assert steps[-2][0] == "datetime"
    assert steps[-1] == (
        "clock",
        {
            "mode": 6,
            "showTime": True,
            "showWeather": False,
            "showTemperature": False,
            "showCalendar": False,
            "color": "ffffff",
        },
    )


@pytest.mark.asyncio
async def test_run_writes_each_step_in_order(service, device, connection) -> None:
    expected = [name for name, _ in integration_steps()]

    snapshot = await service.run_integration(delay_ms=0)

    assert [name for name, _ in device.encoded] == expected
    assert connection.count("write_all") == len(expected)
    assert snapshot["connected"] is True
