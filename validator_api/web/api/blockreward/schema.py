from pydantic import BaseModel

from validator_api.models import BlockStatus


class BlockInfo(BaseModel):
    proposer_payment: int
    is_mev_boost: bool


class BlockRewardResponse(BaseModel):
    """Block reward info including MEV status and reward in GWEI."""

    status: BlockStatus
    reward: int
    block_info: BlockInfo
