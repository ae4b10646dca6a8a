"""ASGI entrypoint wiring the bridge backend components together."""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .api.routes import router
from .services.dependencies import (
    config,
    shutdown_service,
    startup_service,
)


@asynccontextmanager
async def _lifespan(_: FastAPI):
    await startup_service()
    try:
        yield
    finally:
        await shutdown_service()


app = FastAPI(title="Display Bridge", version="0.1.0", lifespan=_lifespan)
app.include_router(router)

# Mounted last: a mount at "/" shadows every route registered after it.
if Path(config.public_dir).is_dir():
    app.mount("/", StaticFiles(directory=config.public_dir, html=True), name="public")


def run(host: str = "0.0.0.0", port: Optional[int] = None, log_level: str = "info") -> None:  # pragma: no cover - manual execution helper
    """Launch the FastAPI app using uvicorn."""

    import uvicorn  # type: ignore

    uvicorn.run(
        "backend.bridge.server:app",
        host=host,
        port=port or config.port,
        log_level=log_level,
        reload=False,
    )


__all__ = [
    "app",
    "run",
]


if __name__ == "__main__":  # pragma: no cover - manual execution path
    run()
