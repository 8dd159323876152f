from typing import List

from pydantic import BaseModel


class SyncInfo(BaseModel):
    sync_period: int
    committee_size: int


class SyncDutiesResponse(BaseModel):
    """Public keys of validators with sync committee duties."""

    validators: List[str]
    sync_info: SyncInfo
