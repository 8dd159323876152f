from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from validator_api.utils.custom_types import HexInt, Quantity


class BlockStatus(str, Enum):
    """How the block for a slot was built."""

    MEV = "mev"
    VANILLA = "vanilla"


class RawBeaconBlock(BaseModel):
    """
    Block returned by ``eth_getBlockByNumber`` for a slot.

    Only the fields needed for MEV classification and reward lookup are kept.
    Transactions may be hashes or full objects depending on the request.

    Attributes:
        block_hash (Optional[str]): Execution payload hash, None when not resolvable.
        fee_recipient (Optional[str]): Address credited with the priority fees.
        extra_data (Optional[str]): Hex encoded extraData set by the block builder.
        base_fee_per_gas (Optional[int]): Base fee of the block in wei.
        block_number (Optional[int]): Execution block number.
        transactions (List[Any]): Transaction hashes or transaction objects.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    block_hash: Optional[str] = Field(default=None, alias="hash")
    fee_recipient: Optional[str] = Field(default=None, alias="miner")
    extra_data: Optional[str] = Field(default=None, alias="extraData")
    base_fee_per_gas: Optional[HexInt] = Field(default=None, alias="baseFeePerGas")
    block_number: Optional[HexInt] = Field(default=None, alias="number")
    transactions: List[Any] = Field(default_factory=list)

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)


class ExecutionTransaction(BaseModel):
    """Fee related fields of a transaction inside an execution block."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    hash: Optional[str] = None
    gas_price: Optional[Quantity] = Field(default=None, alias="gasPrice")
    max_priority_fee_per_gas: Optional[Quantity] = Field(
        default=None,
        alias="maxPriorityFeePerGas",
    )
    max_fee_per_gas: Optional[Quantity] = Field(default=None, alias="maxFeePerGas")
    gas: Optional[Quantity] = None
    gas_used: Optional[Quantity] = Field(default=None, alias="gasUsed")


class ExecutionBlock(BaseModel):
    """
    Block returned by ``eth_getBlockByHash`` with full transactions.

    Transactions are kept raw and validated one by one during reward
    aggregation so a single malformed entry does not discard the block.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base_fee_per_gas: Optional[Quantity] = Field(default=None, alias="baseFeePerGas")
    transactions: List[Any] = Field(default_factory=list)


class SyncCommitteeData(BaseModel):
    validators: List[str] = Field(default_factory=list)


class SyncCommitteeResult(BaseModel):
    """Result of ``beacon_get_state_sync_committees``."""

    data: SyncCommitteeData = Field(default_factory=SyncCommitteeData)


class ValidatorDetails(BaseModel):
    pubkey: str = ""


class ValidatorEntry(BaseModel):
    validator: ValidatorDetails = Field(default_factory=ValidatorDetails)


class ValidatorListResult(BaseModel):
    """Result of ``beacon_get_validators``."""

    data: List[ValidatorEntry] = Field(default_factory=list)


class BlockRewardResult(BaseModel):
    """
    Reward resolved for a slot.

    Attributes:
        status (BlockStatus): MEV or vanilla classification.
        reward (int): Proposer reward in GWEI, never negative.
        estimated (bool): True when the reward is a placeholder, not a computed value.
    """

    status: BlockStatus
    reward: int = Field(ge=0)
    estimated: bool = False

    @property
    def is_mev_boost(self) -> bool:
        return self.status is BlockStatus.MEV


class SyncDutySet(BaseModel):
    """
    Validators on sync committee duty for a slot.

    Attributes:
        validators (List[str]): BLS public keys, at most 32 of them.
        sync_period (int): Sync committee period of the slot.
        synthetic (bool): True when the keys come from the deterministic generator.
    """

    validators: List[str]
    sync_period: int
    synthetic: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def committee_size(self) -> int:
        return len(self.validators)
