"""Pytest configuration and shared fixtures."""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from validator_api.slots import current_slot

PAST_SLOT = 4_700_000

PUBKEY_A = "0x" + "a1" * 48
PUBKEY_B = "0x" + "b2" * 48


class FakeRPCClient:
    """
    Scripted stand-in for RPCClient.

    ``responses`` maps a JSON-RPC method name to the value to return, an
    exception instance to raise, or a callable receiving the call params.
    Awaitable results are awaited, which lets a test simulate a slow upstream.
    """

    pending_requests = 0

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses = responses or {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    @property
    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    async def _respond(self, method: str, *params: Any) -> Any:
        self.calls.append((method, params))
        value = self.responses.get(method)
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            value = value(*params)
        if inspect.isawaitable(value):
            return await value
        return value

    async def get_block_by_number(self, block_number: int, full_transactions: bool = True) -> Any:
        return await self._respond("eth_getBlockByNumber", block_number, full_transactions)

    async def get_block_by_hash(self, block_hash: str, full_transactions: bool = True) -> Any:
        return await self._respond("eth_getBlockByHash", block_hash, full_transactions)

    async def syncing(self) -> Any:
        return await self._respond("eth_syncing")

    async def get_sync_committee(self, epoch: int, sync_period: int) -> Any:
        return await self._respond("beacon_get_state_sync_committees", epoch, sync_period)

    async def get_validators(self, epoch: int) -> Any:
        return await self._respond("beacon_get_validators", epoch)

    async def close(self) -> None:
        return None


async def never_answers(*params: Any) -> Any:
    """Response for FakeRPCClient that blocks until the caller is cancelled."""
    await asyncio.Event().wait()


@pytest.fixture
def fake_rpc() -> FakeRPCClient:
    return FakeRPCClient()


@pytest.fixture
def future_slot() -> int:
    return current_slot() + 1000


@pytest.fixture
def beacon_block() -> Dict[str, Any]:
    """Block as returned by eth_getBlockByNumber, built without a known builder."""
    return {
        "hash": "0x" + "12" * 32,
        "miner": "0x" + "34" * 20,
        "extraData": "0x",
        "baseFeePerGas": "0x5",
        "number": "0x47b760",
        "transactions": ["0x01"],
    }


@pytest.fixture
def execution_block() -> Dict[str, Any]:
    """One legacy transaction: gasPrice 8, baseFee 5, gasUsed 21000."""
    return {
        "baseFeePerGas": "0x5",
        "transactions": [
            {"hash": "0x01", "gasPrice": "0x8", "gasUsed": "0x5208"},
        ],
    }


Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@pytest.fixture
async def rpc_server():
    """Factory starting an in-process JSON-RPC server around a request handler."""
    servers: List[TestServer] = []

    async def factory(handler: Handler) -> TestServer:
        app = web.Application()
        app.router.add_post("/", handler)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        await server.close()
