import asyncio

from fastapi import APIRouter, Depends, Response

from validator_api.config import settings
from validator_api.constants import ESTIMATED_DATA_HEADER
from validator_api.services.reward import RewardResolver
from validator_api.web.api.blockreward.schema import BlockInfo, BlockRewardResponse
from validator_api.web.api.schema import ERROR_RESPONSES
from validator_api.web.dependencies import get_reward_resolver, valid_slot

router = APIRouter()


@router.get(
    "/blockreward/{slot}",
    response_model=BlockRewardResponse,
    responses=ERROR_RESPONSES,
    tags=["block"],
    summary="Get Block Reward",
)
async def get_block_reward(
    response: Response,
    slot: int = Depends(valid_slot),
    resolver: RewardResolver = Depends(get_reward_resolver),
) -> BlockRewardResponse:
    """Get the block reward and MEV information for a given slot."""
    async with asyncio.timeout(settings.resolution_timeout):
        result = await resolver.resolve(slot)

    if result.estimated:
        response.headers[ESTIMATED_DATA_HEADER] = "true"

    return BlockRewardResponse(
        status=result.status,
        reward=result.reward,
        block_info=BlockInfo(
            proposer_payment=result.reward,
            is_mev_boost=result.is_mev_boost,
        ),
    )
