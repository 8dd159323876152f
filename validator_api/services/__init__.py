from validator_api.services.reward import RewardResolver, classify_block
from validator_api.services.sync_duties import SyncDutyResolver, synthetic_sync_duties

__all__ = [
    "RewardResolver",
    "SyncDutyResolver",
    "classify_block",
    "synthetic_sync_duties",
]
