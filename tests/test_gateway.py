from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from opsview_client import MissingNameError, ObjectNotFoundError, ReloadStatusError, ResponseParseError
from opsview_client.gateway import config_path


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def test_config_path_lowercases_type():
    assert config_path("HostGroup") == "config/hostgroup"


@pytest.mark.asyncio
async def test_put_sends_auth_headers_and_json(make_client, fake):
    async with make_client() as client:
        ack = await client.put("Host", {"name": "web1", "ip": "10.0.0.1"})

    assert ack == {"object": {"name": "web1", "ip": "10.0.0.1"}}
    (req,) = fake.calls("PUT", "config/host")
    assert req.headers["X-Opsview-Username"] == "admin"
    assert req.headers["X-Opsview-Token"] == "tok-123"
    assert req.headers["Content-Type"] == "application/json"
    assert req.headers["Accept"] == "application/json"
    assert json.loads(req.content) == {"name": "web1", "ip": "10.0.0.1"}


@pytest.mark.asyncio
async def test_put_transport_failure_degrades_and_returns_none(make_client, fake):
    fake.hooks[("PUT", "config/host")] = _refuse
    async with make_client() as client:
        assert await client.put("host", {"name": "web1"}) is None
        assert client.degraded


@pytest.mark.asyncio
async def test_put_error_status_degrades(make_client, fake):
    fake.hooks[("PUT", "config/host")] = lambda r: httpx.Response(500, json={"message": "boom"})
    async with make_client() as client:
        assert await client.put("host", {"name": "web1"}) is None
        assert client.degraded


@pytest.mark.asyncio
async def test_put_unparsable_ack_degrades_without_raising(make_client, fake):
    fake.hooks[("PUT", "config/host")] = lambda r: httpx.Response(200, text="<html>proxy</html>")
    async with make_client() as client:
        assert await client.put("host", {"name": "web1"}) is None
        assert client.degraded


@pytest.mark.asyncio
async def test_degraded_client_makes_no_requests(make_client, fake):
    fake.objects["host"] = [{"name": "web1"}]
    async with make_client() as client:
        client.breaker.mark_degraded()
        for _ in range(3):
            assert await client.put("host", {"name": "web1"}) is None
            assert await client.get_resource("host", "web1") is None
            assert await client.get_resources("host") is None
            assert await client.gateway.get("config/host") is None
        assert fake.requests == []

        client.breaker.mark_healthy()
        assert await client.get_resources("host") == [{"name": "web1"}]
    assert fake.count("GET", "config/host") == 1


@pytest.mark.asyncio
async def test_in_flight_success_clears_breaker(make_client, fake):
    gate = asyncio.Event()

    async def slow_put(request: httpx.Request) -> httpx.Response:
        await gate.wait()
        return httpx.Response(200, json={"object": {}})

    def failing_get(request: httpx.Request) -> httpx.Response:
        gate.set()
        raise httpx.ConnectError("connection refused", request=request)

    fake.hooks[("PUT", "config/host")] = slow_put
    fake.hooks[("GET", "config/host")] = failing_get
    async with make_client() as client:
        await client.session.get_token()
        ack, objs = await asyncio.gather(client.put("host", {"name": "a"}), client.get_resources("host"))
        assert ack == {"object": {}}
        assert objs is None
        # The get degraded the breaker, the put that finished after it cleared it
        assert not client.degraded
        assert client.breaker.failures == 0


@pytest.mark.asyncio
async def test_get_single_returns_first_match_with_filter(make_client, fake):
    fake.objects["host"] = [{"name": "web1", "ip": "10.0.0.1"}, {"name": "web2"}]
    async with make_client() as client:
        obj = await client.get_resource("host", "web1")

    assert obj == {"name": "web1", "ip": "10.0.0.1"}
    (req,) = fake.calls("GET", "config/host")
    assert req.url.params["s.name"] == "web1"
    assert req.url.params["rows"] == "all"


@pytest.mark.asyncio
async def test_get_single_without_name_is_caller_error(make_client, fake):
    async with make_client() as client:
        with pytest.raises(MissingNameError):
            await client.get_resource("host", None)
        with pytest.raises(ValueError):
            await client.get_resource("host", "")
        assert not client.degraded
    assert fake.requests == []


@pytest.mark.asyncio
async def test_get_single_empty_list_is_not_found(make_client, fake):
    async with make_client() as client:
        with pytest.raises(ObjectNotFoundError) as excinfo:
            await client.get_resource("host", "missing-name")
        assert not client.degraded
    assert excinfo.value.name == "missing-name"
    assert excinfo.value.resource_type == "host"


@pytest.mark.asyncio
async def test_get_transport_failure_is_skipped_not_not_found(make_client, fake):
    fake.hooks[("GET", "config/host")] = _refuse
    async with make_client() as client:
        assert await client.get_resource("host", "missing-name") is None
        assert client.degraded


@pytest.mark.asyncio
async def test_get_all_passes_rows_all(make_client, fake):
    fake.objects["host"] = [{"name": "a"}, {"name": "b"}]
    async with make_client() as client:
        assert await client.get_resources("HOST") == [{"name": "a"}, {"name": "b"}]
    (req,) = fake.calls("GET", "config/host")
    assert req.url.params["rows"] == "all"
    assert "s.name" not in req.url.params


@pytest.mark.asyncio
async def test_get_unparsable_body_raises_and_degrades(make_client, fake):
    fake.hooks[("GET", "config/host")] = lambda r: httpx.Response(200, text="oops")
    async with make_client() as client:
        with pytest.raises(ResponseParseError):
            await client.get_resources("host")
        assert client.degraded


@pytest.mark.asyncio
async def test_get_without_list_envelope_raises(make_client, fake):
    fake.hooks[("GET", "config/host")] = lambda r: httpx.Response(200, json={"unexpected": 1})
    async with make_client() as client:
        with pytest.raises(ResponseParseError):
            await client.get_resources("host")


@pytest.mark.asyncio
async def test_failed_login_skips_operation(make_client, fake):
    fake.login_status = 500
    async with make_client() as client:
        assert await client.put("host", {"name": "web1"}) is None
        assert client.degraded
        # Now degraded: nothing else goes out, not even another login
        assert await client.get_resources("host") is None
    assert fake.count("POST", "login") == 1
    assert fake.count("PUT", "config/host") == 0


@pytest.mark.asyncio
async def test_reload_status_parses_integer_lastupdated(make_client, fake):
    fake.reload_statuses = [{"server_status": "0", "lastupdated": 1700000000}]
    async with make_client() as client:
        status = await client.gateway.get_reload_status()
    assert status.server_status == 0
    assert status.lastupdated == "1700000000"
    assert status.idle


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response, match",
    [
        (httpx.Response(401, json={}), "Login failed"),
        (httpx.Response(503, json={}), "HTTP code 503"),
        (httpx.Response(200, text="nope"), "Could not parse"),
        (httpx.Response(200, json={"lastupdated": "T0"}), "Could not parse"),
    ],
)
async def test_reload_status_failures_raise_and_degrade(make_client, fake, response, match):
    fake.hooks[("GET", "reload")] = lambda r: response
    async with make_client() as client:
        with pytest.raises(ReloadStatusError, match=match):
            await client.gateway.get_reload_status()
        assert client.degraded


@pytest.mark.asyncio
async def test_trigger_reload_failure_is_reported_not_raised(make_client, fake):
    fake.hooks[("POST", "reload")] = _refuse
    async with make_client() as client:
        assert await client.gateway.trigger_reload() is False
        assert not client.degraded
