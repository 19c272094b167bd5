"""Shared fixtures for the client test suite.

FakeOpsview is an httpx.MockTransport handler that plays the server side and
records every request, so tests can count exchanges per endpoint.
"""
from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Iterable
from typing import Any

import httpx
import pytest

from opsview_client import OpsviewClient, Settings


class FakeClock:
    """Virtual monotonic clock; `sleep` advances it instead of waiting."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        # Let the detached trigger task make progress
        await asyncio.sleep(0)


class FakeOpsview:
    """Scriptable Opsview server.

    - login_status / login_body control POST /login
    - objects maps lower-case type -> list of objects for GET /config/{type}
    - reload_statuses is consumed one per GET /reload; the last one repeats
    - hooks maps (method, path) -> callable(request) returning a Response or
      raising, overriding the defaults
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.login_status = 200
        self.login_body: Any = {"token": "tok-123"}
        self.objects: dict[str, list[dict[str, Any]]] = {}
        self.reload_statuses: list[dict[str, Any]] = [{"server_status": 0, "lastupdated": "T0"}]
        self.hooks: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/rest/")
        hook = self.hooks.get((request.method, path))
        if hook is not None:
            return hook(request)

        if path == "login" and request.method == "POST":
            if isinstance(self.login_body, (dict, list)):
                return httpx.Response(self.login_status, json=self.login_body)
            return httpx.Response(self.login_status, text=str(self.login_body))

        if path.startswith("config/"):
            rtype = path.split("/", 1)[1]
            if request.method == "PUT":
                return httpx.Response(200, json={"object": json.loads(request.content)})
            objs = self.objects.get(rtype, [])
            name = request.url.params.get("s.name")
            if name is not None:
                objs = [o for o in objs if o.get("name") == name]
            return httpx.Response(200, json={"list": objs, "summary": {"rows": len(objs)}})

        if path == "reload":
            if request.method == "POST":
                return httpx.Response(200, json={"server_status": 0})
            status = self.reload_statuses[0]
            if len(self.reload_statuses) > 1:
                self.reload_statuses.pop(0)
            return httpx.Response(200, json=status)

        return httpx.Response(404, json={"message": "not found"})

    def count(self, method: str, path: str) -> int:
        return sum(
            1
            for r in self.requests
            if r.method == method and r.url.path.removeprefix("/rest/") == path
        )

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path.removeprefix("/rest/") == path
        ]

    def script_reload(self, statuses: Iterable[tuple[int, str]]) -> None:
        self.reload_statuses = [{"server_status": s, "lastupdated": t} for s, t in statuses]


@pytest.fixture
def settings() -> Settings:
    return Settings(url="http://opsview.test/rest/", username="admin", password="initial", timeout=5)


@pytest.fixture
def fake() -> FakeOpsview:
    return FakeOpsview()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_client(settings: Settings, fake: FakeOpsview, clock: FakeClock):
    def _make(**kwargs: Any) -> OpsviewClient:
        kwargs.setdefault("transport", httpx.MockTransport(fake))
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("sleep", clock.sleep)
        return OpsviewClient(settings, **kwargs)

    return _make
