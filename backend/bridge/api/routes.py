"""FastAPI routing layer for the bridge backend."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import PlainTextResponse

from ..commands import COMMANDS
from ..device import EncodeError, TransportError
from ..models.api import ServiceInfo, StatusResponse
from ..services.bridge_service import BridgeService
from ..services.dependencies import get_service
from ..settings import parse_leading_int

DEFAULT_TEST_DELAY_MS = 2000

# Original path of the setImg route, kept for existing dashboards.
LEGACY_PATHS = {"img": "setImg"}


async def gate_connection(svc: BridgeService = Depends(get_service)) -> None:
    await svc.gate()


router = APIRouter()
commands_router = APIRouter(prefix="/api", dependencies=[Depends(gate_connection)])


async def _respond(action: Awaitable[Dict[str, Any]]) -> StatusResponse:
    try:
        snapshot = await action
    except EncodeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except TransportError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return StatusResponse(**snapshot)


def _command_endpoint(name: str) -> Callable[..., Awaitable[StatusResponse]]:
    async def endpoint(
        request: Request,
        svc: BridgeService = Depends(get_service),
    ) -> StatusResponse:
        return await _respond(svc.run_request(name, request.query_params))

    endpoint.__name__ = f"api_{name}"
    return endpoint


for _name, _command in COMMANDS.items():
    if _command.writes:
        commands_router.add_api_route(
            f"/{_name}",
            _command_endpoint(_name),
            methods=["GET"],
            response_model=StatusResponse,
        )
for _path, _name in LEGACY_PATHS.items():
    commands_router.add_api_route(
        f"/{_path}",
        _command_endpoint(_name),
        methods=["GET"],
        response_model=StatusResponse,
    )


@router.get("/api/status", response_model=StatusResponse)
async def api_status(svc: BridgeService = Depends(get_service)) -> StatusResponse:
    return StatusResponse(**svc.status())


@router.get("/api/connect", response_model=StatusResponse)
async def api_connect(svc: BridgeService = Depends(get_service)) -> StatusResponse:
    return await _respond(svc.connect())


@router.get("/api/disconnect", response_model=StatusResponse)
async def api_disconnect(svc: BridgeService = Depends(get_service)) -> StatusResponse:
    return await _respond(svc.disconnect())


@router.post("/api/upload", response_class=PlainTextResponse)
async def api_upload(
    file: Optional[UploadFile] = File(None),
    svc: BridgeService = Depends(get_service),
) -> PlainTextResponse:
    if file is None or not file.filename:
        return PlainTextResponse("No files were uploaded.", status_code=400)
    data = await file.read()
    stored = await svc.save_upload(file.filename, data)
    return PlainTextResponse(stored)


@router.get("/api/info", response_model=ServiceInfo)
async def api_info(svc: BridgeService = Depends(get_service)) -> ServiceInfo:
    return ServiceInfo(**svc.describe())


@router.get(
    "/test",
    response_model=StatusResponse,
    dependencies=[Depends(gate_connection)],
)
async def api_test(
    delay: Optional[str] = None,
    svc: BridgeService = Depends(get_service),
) -> StatusResponse:
    parsed = parse_leading_int(delay) if delay else None
    delay_ms = parsed if parsed is not None else DEFAULT_TEST_DELAY_MS
    return await _respond(svc.run_integration(delay_ms))


router.include_router(commands_router)


__all__ = ["commands_router", "gate_connection", "router"]
