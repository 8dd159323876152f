import asyncio
import itertools
import json
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger
from yarl import URL

from validator_api.config import settings
from validator_api.constants import RATE_LIMIT_MARKER
from validator_api.exceptions import (
    InvalidRPCEndpointError,
    RPCDecodeError,
    RPCFailure,
    RPCRateLimitedError,
    RPCResponseError,
)


def validate_endpoint(rpc_endpoint: str) -> URL:
    """
    Validate the RPC endpoint URL.

    Args:
        rpc_endpoint (str): The endpoint URL as configured.

    Returns:
        URL: The parsed endpoint.

    Raises:
        InvalidRPCEndpointError: If the URL is empty, malformed, relative or does
                                 not use the http(s) scheme.
    """
    if not rpc_endpoint:
        raise InvalidRPCEndpointError("RPC URL cannot be empty")

    try:
        url = URL(rpc_endpoint)
    except (TypeError, ValueError) as exc:
        raise InvalidRPCEndpointError(f"invalid RPC URL: {exc}") from exc

    if not url.is_absolute() or not url.host:
        raise InvalidRPCEndpointError("RPC URL must be absolute")

    if url.scheme not in ("http", "https"):
        raise InvalidRPCEndpointError("RPC URL must use http or https scheme")

    return url


class RPCClient:
    """RPCClient is an asynchronous JSON-RPC client for the chain data endpoint."""

    def __init__(
        self,
        rpc_endpoint: str,
        timeout: float = settings.rpc_timeout,
        request_interval: float = settings.rpc_request_interval,
        rate_limit_retries: int = settings.rpc_rate_limit_retries,
        backoff_factor: float = settings.rpc_backoff_factor,
        max_concurrency: int = settings.rpc_max_concurrency,
    ) -> None:
        """
        Initialize the RPC client.

        Args:
            rpc_endpoint (str): The endpoint URL for the RPC server.
            timeout (float): Total timeout in seconds for one HTTP round-trip.
            request_interval (float): Delay in seconds inserted before every
                                      outbound call to respect the provider's
                                      rate limit.
            rate_limit_retries (int): How many times a rate limited call is
                                      re-issued before giving up.
            backoff_factor (float): Base of the exponential wait applied after a
                                    rate limited response.
            max_concurrency (int): Max number of in-flight HTTP requests.

        Attributes:
            rpc_url (URL): The validated endpoint URL.
            rate_limiter (asyncio.Semaphore): Bounds concurrent outbound requests.
            _id_counter (itertools.count): Counter for generating unique request IDs.
            active_requests (Dict[int, Dict[str, Any]]): Dictionary to store active
                                                         request IDs and their details.
            lock (asyncio.Lock): Lock to ensure safe updates to active requests.

        Raises:
            InvalidRPCEndpointError: If ``rpc_endpoint`` is not a usable URL.
        """
        self.rpc_url = validate_endpoint(rpc_endpoint)
        self.timeout = timeout
        self.request_interval = request_interval
        self.rate_limit_retries = rate_limit_retries
        self.backoff_factor = backoff_factor
        self.rate_limiter = asyncio.Semaphore(max_concurrency)
        self._session: Optional[aiohttp.ClientSession] = None

        # Request ID management
        self._id_counter = itertools.count(1)
        self.active_requests: Dict[int, Dict[str, Any]] = {}
        self.lock = asyncio.Lock()

    @property
    def session(self) -> aiohttp.ClientSession:
        """HTTP session, created on first use inside the running event loop."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Content-Type": "application/json"},
            )
        return self._session

    @property
    def pending_requests(self) -> int:
        return len(self.active_requests)

    async def close(self) -> None:
        """
        Asynchronously closes the session.

        This method should be called to properly close the session and release any
        resources associated with it.
        """
        if self._session is not None:
            await self._session.close()

    async def _generate_request_id(self, method: str) -> int:
        """
        Generate a unique request ID for a given method.

        Args:
            method (str): The name of the method for which the request ID is being
                          generated.

        Returns:
            int: A unique request ID.
        """
        async with self.lock:
            request_id = next(self._id_counter)
            self.active_requests[request_id] = {
                "method": method,
                "timestamp": datetime.now(UTC),
            }
            return request_id

    async def _remove_request_id(self, request_id: int) -> None:
        async with self.lock:
            self.active_requests.pop(request_id, None)

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Makes an asynchronous JSON-RPC call, retrying rate limited responses.

        Every attempt waits ``request_interval`` seconds before hitting the
        endpoint. A rate limited response (HTTP 429 or the provider's
        "request limit reached" body) is re-issued after an exponential backoff,
        at most ``rate_limit_retries`` times. Other failures are not retried.

        Args:
            method (str): The name of the RPC method to call.
            params (Optional[List[Any]]): The parameters to pass to the RPC method.
                                          Defaults to None.

        Returns:
            Any: The ``result`` member of the JSON-RPC response.

        Raises:
            RPCResponseError: If the endpoint answers with a JSON-RPC error.
            RPCRateLimitedError: If the call is still rate limited after all retries.
            RPCDecodeError: If the body is not a JSON-RPC response object.
            RPCFailure: On transport errors or non 200 responses.
        """
        request_id = await self._generate_request_id(method)
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": request_id,
        }
        attempt = 0

        try:
            while True:
                await asyncio.sleep(self.request_interval)
                logger.debug(f"RPC request {request_id}: {method} {payload['params']}")

                try:
                    async with self.rate_limiter, self.session.post(
                        str(self.rpc_url),
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        status = response.status
                        body = await response.read()
                except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                    raise RPCFailure(f"{method} request failed: {exc!r}") from exc

                if not self._is_rate_limited(status, body):
                    return self._parse_response(method, status, body)

                attempt += 1
                if attempt > self.rate_limit_retries:
                    raise RPCRateLimitedError(
                        f"{method} still rate limited after "
                        f"{self.rate_limit_retries} retries",
                    )

                delay = self.backoff_factor * (2**attempt)
                logger.warning(
                    f"RPC request {request_id} ({method}) rate limited, "
                    f"retry {attempt}/{self.rate_limit_retries} in {delay:.2f}s",
                )
                await asyncio.sleep(delay)
        finally:
            await self._remove_request_id(request_id)

    @staticmethod
    def _is_rate_limited(status: int, body: bytes) -> bool:
        return status == 429 or RATE_LIMIT_MARKER.encode() in body.lower()

    @staticmethod
    def _parse_response(method: str, status: int, body: bytes) -> Any:
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            if status != 200:
                raise RPCFailure(f"{method} failed with status {status}") from exc
            raise RPCDecodeError(f"{method} returned invalid JSON") from exc

        if not isinstance(data, dict):
            if status != 200:
                raise RPCFailure(f"{method} failed with status {status}")
            raise RPCDecodeError(f"{method} returned a non-object response")

        # Check for JSON-RPC errors
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise RPCResponseError(str(error.get("message", "")), error.get("code"))
            raise RPCResponseError(str(error))

        # Check for HTTP errors
        if status != 200:
            raise RPCFailure(f"{method} failed with status {status}")

        if "result" not in data:
            raise RPCDecodeError(f"{method} response has no result")

        return data["result"]

    async def get_block_by_number(
        self,
        block_number: int,
        full_transactions: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """
        Asynchronously retrieves a block by its number.

        Args:
            block_number (int): The number of the block to retrieve.
            full_transactions (bool, optional): Whether to include full transaction
                                                objects or just transaction hashes.

        Returns:
            Optional[Dict[str, Any]]: The block, or None when the node has none.
        """
        return await self._call(
            "eth_getBlockByNumber",
            [hex(block_number), full_transactions],
        )

    async def get_block_by_hash(
        self,
        block_hash: str,
        full_transactions: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """
        Asynchronously retrieves a block by its hash.

        Args:
            block_hash (str): The 0x prefixed block hash.
            full_transactions (bool, optional): Whether to include full transaction
                                                objects or just transaction hashes.

        Returns:
            Optional[Dict[str, Any]]: The block, or None when the node has none.
        """
        return await self._call("eth_getBlockByHash", [block_hash, full_transactions])

    async def syncing(self) -> Any:
        """Return the node's ``eth_syncing`` status (False or a progress object)."""
        return await self._call("eth_syncing")

    async def get_sync_committee(self, epoch: int, sync_period: int) -> Any:
        """
        Asynchronously retrieves the sync committee for an epoch.

        Args:
            epoch (int): Epoch to query.
            sync_period (int): Sync committee period the epoch belongs to.

        Returns:
            Any: Raw result, expected as ``{"data": {"validators": [...]}}``.
        """
        return await self._call(
            "beacon_get_state_sync_committees",
            [hex(epoch), hex(sync_period)],
        )

    async def get_validators(self, epoch: int) -> Any:
        """
        Asynchronously retrieves the validator list for an epoch.

        Returns:
            Any: Raw result, expected as ``{"data": [{"validator": {"pubkey": ...}}]}``.
        """
        return await self._call("beacon_get_validators", [hex(epoch)])
