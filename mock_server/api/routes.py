from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request, status

from opsview_client.logging_conf import get_logger

from ..service.state import ReloadBusyError, ServerState
from .models import (
    ConfigListResponse,
    ConfigPutResponse,
    ListSummary,
    LoginRequest,
    LoginResponse,
    ReloadStatusResponse,
)

router = APIRouter()
logger = get_logger("mock_server.api")


def get_state(request: Request) -> ServerState:
    return request.app.state.opsview


def require_session(
    state: ServerState = Depends(get_state),
    username: str | None = Header(None, alias="X-Opsview-Username"),
    token: str | None = Header(None, alias="X-Opsview-Token"),
) -> ServerState:
    """Reject requests that don't carry a token issued by /login."""
    if not state.authorized(username, token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Token invalid or expired"},
        )
    return state


@router.post("/login", response_model=LoginResponse, summary="Obtain a session token")
async def login(req: LoginRequest, state: ServerState = Depends(get_state)) -> LoginResponse:
    token = state.login(req.username, req.password)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid username or password"},
        )
    return LoginResponse(token=token)


@router.get(
    "/config/{resource_type}",
    response_model=ConfigListResponse,
    summary="List config objects, optionally filtered by name",
)
async def list_config(
    resource_type: str,
    name: str | None = Query(None, alias="s.name"),
    rows: str | None = Query(None),
    state: ServerState = Depends(require_session),
) -> ConfigListResponse:
    objs = state.list_objects(resource_type.lower(), name)
    total = len(state.list_objects(resource_type.lower()))
    return ConfigListResponse(list=objs, summary=ListSummary(rows=len(objs), allrows=total))


@router.put(
    "/config/{resource_type}",
    response_model=ConfigPutResponse,
    summary="Create or update a config object",
)
async def put_config(
    resource_type: str,
    obj: dict[str, Any] = Body(...),
    state: ServerState = Depends(require_session),
) -> ConfigPutResponse:
    try:
        stored = state.put_object(resource_type.lower(), obj)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"message": str(e)})
    return ConfigPutResponse(object=stored)


@router.get("/reload", response_model=ReloadStatusResponse, summary="Current reload status")
async def reload_status(state: ServerState = Depends(require_session)) -> ReloadStatusResponse:
    return ReloadStatusResponse(**state.reload_status())


@router.post(
    "/reload",
    response_model=ReloadStatusResponse,
    summary="Run a reload; answers once it has finished",
)
async def reload(state: ServerState = Depends(require_session)) -> ReloadStatusResponse:
    try:
        out = await state.reload()
    except ReloadBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail={"message": str(e)})
    return ReloadStatusResponse(**out)
