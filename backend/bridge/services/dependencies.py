"""Dependency helpers for wiring BridgeService into FastAPI."""
from __future__ import annotations

from typing import Optional

from ..device import build_collaborators
from .bridge_service import BridgeService
from .config import BridgeConfig, load_bridge_config


config = load_bridge_config()
service: Optional[BridgeService] = None


def build_service(cfg: Optional[BridgeConfig] = None) -> BridgeService:
    cfg = cfg or config
    device, connection = build_collaborators(cfg.device_factory, cfg.connection_factory)
    return BridgeService(device, connection, config=cfg)


async def startup_service() -> None:
    global service
    if service is None:
        service = build_service()
    await service.start()


async def shutdown_service() -> None:
    if service is not None:
        await service.stop()


def get_service() -> BridgeService:
    if service is None:
        raise RuntimeError("Bridge service is not running; start the app through its lifespan")
    return service


__all__ = [
    "build_service",
    "config",
    "get_service",
    "service",
    "shutdown_service",
    "startup_service",
]
