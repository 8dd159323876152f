from fastapi import Depends
from starlette.requests import Request

from validator_api.rpc_client import RPCClient
from validator_api.services.reward import RewardResolver
from validator_api.services.sync_duties import SyncDutyResolver
from validator_api.slots import parse_slot


def get_rpc_client(request: Request) -> RPCClient:  # pragma: no cover
    """
    Returns the shared RPC client.

    :param request: current request.
    :return: RPC client created on startup.
    """
    return request.app.state.rpc_client


def get_reward_resolver(
    rpc_client: RPCClient = Depends(get_rpc_client),
) -> RewardResolver:
    return RewardResolver(rpc_client)


def get_sync_duty_resolver(
    rpc_client: RPCClient = Depends(get_rpc_client),
) -> SyncDutyResolver:
    return SyncDutyResolver(rpc_client)


def valid_slot(slot: str) -> int:
    """
    Parses the slot path parameter.

    :param slot: raw path segment.
    :return: slot number.
    :raises InvalidSlotError: if the segment is not a non-negative integer.
    """
    return parse_slot(slot)
