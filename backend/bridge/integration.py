"""Scripted command sequence for checking a device by eye.

Each step writes one command and then waits, so an operator standing next to
the display can confirm every change before the next one lands.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from .services.bridge_service import BridgeService

logger = logging.getLogger(__name__)

Step = Tuple[str, Dict[str, Any]]


def _clock(mode: int, *, time: bool = True, weather: bool = False,
           temperature: bool = False, calendar: bool = False,
           color: str = "ffffff") -> Step:
    return (
        "clock",
        {
            "mode": mode,
            "showTime": time,
            "showWeather": weather,
            "showTemperature": temperature,
            "showCalendar": calendar,
            "color": color,
        },
    )


def integration_steps() -> List[Step]:
    steps: List[Step] = [("datetime", {"date": datetime.now()})]

    steps += [("brightness", {"level": level}) for level in (10, 50, 100)]

    steps += [_clock(mode) for mode in range(7)]
    steps.append(_clock(1, weather=True, temperature=True, calendar=True, color="ff0000"))

    steps += [
        ("lighting", {"color": color, "brightness": 100, "mode": 1, "powerScreen": True})
        for color in ("ff0000", "00ff00", "0000ff")
    ]
    steps.append(("lighting", {"powerScreen": False}))

    steps += [("climate", {"weather": weather, "temperature": 20}) for weather in range(1, 7)]
    steps.append(("climate", {"weather": 1, "temperature": -5}))

    # Leave the display on a plain clock once the run is over.
    steps.append(("datetime", {"date": datetime.now()}))
    steps.append(_clock(6))
    return steps


async def run_integration(service: "BridgeService", delay: float) -> None:
    steps = integration_steps()
    logger.info("Running integration sequence: %d steps, %.2fs apart", len(steps), delay)
    for index, (command, settings) in enumerate(steps, start=1):
        logger.info("Integration step %d/%d: %s", index, len(steps), command)
        await service.execute(command, settings)
        if index < len(steps) and delay > 0:
            await asyncio.sleep(delay)


__all__ = ["integration_steps", "run_integration"]
