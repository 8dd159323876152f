"""Tests for the HTTP surface."""

import httpx
import pytest
from aiohttp import web
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tests.conftest import PAST_SLOT, PUBKEY_A, FakeRPCClient, never_answers
from validator_api.config import settings
from validator_api.constants import (
    ESTIMATED_DATA_HEADER,
    FALLBACK_REWARD_GWEI,
    ZERO_REWARD_PLACEHOLDER_GWEI,
)
from validator_api.exceptions import RPCFailure, RPCResponseError
from validator_api.rpc_client import RPCClient
from validator_api.web.application import get_app
from validator_api.web.dependencies import get_reward_resolver, get_rpc_client


@pytest.fixture
def app() -> FastAPI:
    return get_app()


@pytest.fixture
def make_client(app):
    def factory(rpc: FakeRPCClient) -> TestClient:
        app.dependency_overrides[get_rpc_client] = lambda: rpc
        return TestClient(app)

    return factory


class TestBlockReward:
    def test_past_slot(self, make_client, beacon_block, execution_block):
        rpc = FakeRPCClient(
            {"eth_getBlockByNumber": beacon_block, "eth_getBlockByHash": execution_block},
        )
        response = make_client(rpc).get(f"/blockreward/{PAST_SLOT}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] in ("mev", "vanilla")
        assert body["reward"] >= 0
        assert body == {
            "status": "vanilla",
            "reward": ZERO_REWARD_PLACEHOLDER_GWEI,
            "block_info": {
                "proposer_payment": ZERO_REWARD_PLACEHOLDER_GWEI,
                "is_mev_boost": False,
            },
        }
        assert response.headers[ESTIMATED_DATA_HEADER] == "true"

    def test_mev_block(self, make_client, beacon_block):
        beacon_block["extraData"] = "0x" + b"Titan (titanbuilder.xyz)".hex()
        execution_block = {
            "baseFeePerGas": "0x1",
            "transactions": [{"maxPriorityFeePerGas": hex(10**9), "gasUsed": "0x5208"}],
        }
        rpc = FakeRPCClient(
            {"eth_getBlockByNumber": beacon_block, "eth_getBlockByHash": execution_block},
        )
        response = make_client(rpc).get(f"/blockreward/{PAST_SLOT}")

        assert response.status_code == 200
        assert response.json() == {
            "status": "mev",
            "reward": 21_000,
            "block_info": {"proposer_payment": 21_000, "is_mev_boost": True},
        }
        assert ESTIMATED_DATA_HEADER not in response.headers

    def test_negative_tip_still_answers_with_placeholder(self, make_client, beacon_block):
        execution_block = {
            "baseFeePerGas": "0x5",
            "transactions": [{"maxPriorityFeePerGas": -5, "gas": "0x5208"}],
        }
        rpc = FakeRPCClient(
            {"eth_getBlockByNumber": beacon_block, "eth_getBlockByHash": execution_block},
        )
        response = make_client(rpc).get(f"/blockreward/{PAST_SLOT}")

        assert response.status_code == 200
        assert response.json()["reward"] == ZERO_REWARD_PLACEHOLDER_GWEI
        assert response.headers[ESTIMATED_DATA_HEADER] == "true"

    def test_future_slot(self, make_client, future_slot):
        rpc = FakeRPCClient()
        response = make_client(rpc).get(f"/blockreward/{future_slot}")

        assert response.status_code == 400
        assert response.json() == {"error": "Slot is in the future"}
        assert rpc.calls == []

    def test_unknown_block(self, make_client):
        rpc = FakeRPCClient({"eth_getBlockByNumber": RPCResponseError("Unknown block", -32000)})
        response = make_client(rpc).get(f"/blockreward/{PAST_SLOT}")

        assert response.status_code == 404
        assert response.json() == {"error": "Slot does not exist"}

    @pytest.mark.parametrize("slot", ["abc", "-5", "1.5"])
    def test_invalid_slot(self, make_client, slot):
        response = make_client(FakeRPCClient()).get(f"/blockreward/{slot}")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid slot number"}

    def test_rpc_failure_is_hidden(self, make_client):
        rpc = FakeRPCClient({"eth_getBlockByNumber": RPCFailure("secret upstream detail")})
        response = make_client(rpc).get(f"/blockreward/{PAST_SLOT}")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "secret" not in response.text


class TestSyncDuties:
    def test_upstream_committee(self, make_client):
        rpc = FakeRPCClient(
            {"beacon_get_state_sync_committees": {"data": {"validators": [PUBKEY_A]}}},
        )
        response = make_client(rpc).get(f"/syncduties/{PAST_SLOT}")

        assert response.status_code == 200
        assert response.json() == {
            "validators": [PUBKEY_A],
            "sync_info": {"sync_period": PAST_SLOT // 8192, "committee_size": 1},
        }
        assert ESTIMATED_DATA_HEADER not in response.headers

    def test_synthetic_fallback(self, make_client):
        response = make_client(FakeRPCClient()).get(f"/syncduties/{PAST_SLOT}")

        assert response.status_code == 200
        body = response.json()
        assert 1 <= len(body["validators"]) <= 32
        assert body["sync_info"]["committee_size"] == len(body["validators"])
        assert response.headers[ESTIMATED_DATA_HEADER] == "true"

    def test_future_slot(self, make_client, future_slot):
        response = make_client(FakeRPCClient()).get(f"/syncduties/{future_slot}")

        assert response.status_code == 400
        assert "future" in response.json()["error"]

    def test_transport_failure(self, make_client):
        rpc = FakeRPCClient({"eth_syncing": RPCFailure("connection reset")})
        response = make_client(rpc).get(f"/syncduties/{PAST_SLOT}")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class UnexpectedFailureResolver:
    async def resolve(self, slot: int):
        raise RuntimeError("unexpected")


class TestServerErrors:
    @pytest.mark.parametrize(
        "path, method",
        [("/blockreward", "eth_getBlockByNumber"), ("/syncduties", "eth_syncing")],
    )
    def test_slow_upstream_times_out(self, make_client, monkeypatch, path, method):
        monkeypatch.setattr(settings, "resolution_timeout", 0.05)
        rpc = FakeRPCClient({method: never_answers})
        response = make_client(rpc).get(f"{path}/{PAST_SLOT}")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_unexpected_error_uses_error_body(self, app):
        app.dependency_overrides[get_reward_resolver] = UnexpectedFailureResolver
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get(f"/blockreward/{PAST_SLOT}")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "unexpected" not in response.text


def test_health(make_client):
    response = make_client(FakeRPCClient()).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "pending_rpc_requests": 0}


def test_cors_preflight(make_client):
    response = make_client(FakeRPCClient()).options(
        f"/blockreward/{PAST_SLOT}",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


async def test_unknown_block_end_to_end(app, rpc_server):
    async def handler(request: web.Request) -> web.Response:
        return web.json_response({"jsonrpc": "2.0", "id": 1, "error": {"message": "Unknown block"}})

    server = await rpc_server(handler)
    rpc = RPCClient(str(server.make_url("/")), request_interval=0)
    app.state.rpc_client = rpc

    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(f"/blockreward/{PAST_SLOT}")
    finally:
        await rpc.close()

    assert response.status_code == 404
    assert response.json() == {"error": "Slot does not exist"}


def test_metrics(app):
    with TestClient(app) as client:
        client.get("/health")
        response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_request" in response.text


async def test_undecodable_beacon_replies_end_to_end(app, rpc_server):
    async def handler(request: web.Request) -> web.Response:
        payload = await request.json()
        if payload["method"].startswith("beacon_"):
            return web.Response(text="<html>method not supported</html>", content_type="text/html")
        return web.json_response({"jsonrpc": "2.0", "id": payload["id"], "result": None})

    server = await rpc_server(handler)
    rpc = RPCClient(str(server.make_url("/")), request_interval=0)
    app.state.rpc_client = rpc

    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(f"/syncduties/{PAST_SLOT}")
    finally:
        await rpc.close()

    assert response.status_code == 200
    assert 1 <= len(response.json()["validators"]) <= 32
    assert response.headers[ESTIMATED_DATA_HEADER] == "true"


async def test_non_utf8_execution_block_end_to_end(app, rpc_server, beacon_block):
    async def handler(request: web.Request) -> web.Response:
        payload = await request.json()
        if payload["method"] == "eth_getBlockByHash":
            return web.Response(body=b"\xff\xfe\x00not json")
        return web.json_response({"jsonrpc": "2.0", "id": payload["id"], "result": beacon_block})

    server = await rpc_server(handler)
    rpc = RPCClient(str(server.make_url("/")), request_interval=0)
    app.state.rpc_client = rpc

    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(f"/blockreward/{PAST_SLOT}")
    finally:
        await rpc.close()

    assert response.status_code == 200
    assert response.json()["reward"] == FALLBACK_REWARD_GWEI
    assert response.headers[ESTIMATED_DATA_HEADER] == "true"
