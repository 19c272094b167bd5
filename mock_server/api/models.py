from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials posted to /login."""
    username: str
    password: str


class LoginResponse(BaseModel):
    """Session token handed back on a successful login."""
    token: str


class ListSummary(BaseModel):
    rows: int
    allrows: int


class ConfigListResponse(BaseModel):
    """Envelope for config object reads."""
    items: list[dict[str, Any]] = Field(..., alias="list")
    summary: ListSummary


class ConfigPutResponse(BaseModel):
    """Acknowledgment of a stored config object."""
    obj: dict[str, Any] = Field(..., alias="object")


class ReloadStatusResponse(BaseModel):
    """Current reload state; server_status 0 means idle."""
    server_status: int = Field(..., ge=0)
    lastupdated: int
    configuration_status: str
