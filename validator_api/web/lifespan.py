from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from loguru import logger
from prometheus_fastapi_instrumentator.instrumentation import (
    PrometheusFastApiInstrumentator,
)

from validator_api.config import settings
from validator_api.rpc_client import RPCClient


def setup_prometheus(app: FastAPI) -> None:  # pragma: no cover
    """
    Enables prometheus integration.

    :param app: current application.
    """
    PrometheusFastApiInstrumentator(should_group_status_codes=False).instrument(
        app,
    ).expose(app, should_gzip=True, name="prometheus_metrics")


def init_rpc_client(app: FastAPI) -> None:
    """
    Creates the shared JSON-RPC client.

    :param app: current application.
    :raises InvalidRPCEndpointError: if the configured endpoint is unusable.
    """
    app.state.rpc_client = RPCClient(settings.eth_rpc)
    # Provider URLs embed API keys in the path, only the host is logged
    logger.info(f"Using RPC endpoint host {app.state.rpc_client.rpc_url.host}")


async def shutdown_rpc_client(app: FastAPI) -> None:
    """
    Closes the shared JSON-RPC client.

    :param app: current application.
    """
    await app.state.rpc_client.close()


@asynccontextmanager
async def lifespan_setup(
    app: FastAPI,
) -> AsyncGenerator[None, None]:  # pragma: no cover
    """
    Actions to run on application startup.

    This function uses fastAPI app to store data
    in the state, such as the RPC client.

    :param app: the fastAPI application.
    :return: function that actually performs actions.
    """

    app.middleware_stack = None
    init_rpc_client(app)
    setup_prometheus(app)
    app.middleware_stack = app.build_middleware_stack()

    yield
    await shutdown_rpc_client(app)
