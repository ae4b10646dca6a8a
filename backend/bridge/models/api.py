"""Pydantic schemas shared across API routes."""
from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel


class StatusResponse(BaseModel):
    connected: bool
    config: Any = None


class ServiceInfo(BaseModel):
    auto_connect: bool
    mqtt_enabled: bool
    commands: List[str]


__all__ = [
    "ServiceInfo",
    "StatusResponse",
]
