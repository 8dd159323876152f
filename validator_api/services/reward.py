from typing import Any, Iterable, Optional

from loguru import logger
from pydantic import ValidationError

from validator_api.constants import (
    FALLBACK_REWARD_GWEI,
    GWEI,
    MEV_BUILDER_IDENTIFIERS,
    MEV_TX_COUNT_THRESHOLD,
    ZERO_REWARD_PLACEHOLDER_GWEI,
)
from validator_api.exceptions import (
    RPCFailure,
    RPCResponseError,
    SlotNotFoundError,
)
from validator_api.models import (
    BlockRewardResult,
    BlockStatus,
    ExecutionBlock,
    ExecutionTransaction,
    RawBeaconBlock,
)
from validator_api.rpc_client import RPCClient
from validator_api.slots import ensure_not_future
from validator_api.utils.decorators import log_execution


def _decode_extra_data(extra_data: str) -> str:
    """Best-effort text view of a hex encoded extraData field."""
    if extra_data[:2].lower() != "0x":
        return extra_data
    try:
        return bytes.fromhex(extra_data[2:]).decode("utf-8", errors="ignore")
    except ValueError:
        return ""


def classify_block(extra_data: str, transaction_count: int) -> BlockStatus:
    """
    Heuristically decide whether a block came from a MEV-Boost builder.

    A block is MEV when its extraData names a known builder (checked on the raw
    value and on its decoded text, case-insensitively) or when it carries more
    than ``MEV_TX_COUNT_THRESHOLD`` transactions. Empty extraData is vanilla.

    Args:
        extra_data (str): The execution payload extraData, usually hex encoded.
        transaction_count (int): Number of transactions in the block.

    Returns:
        BlockStatus: The classification.
    """
    if not extra_data or extra_data.lower() == "0x":
        return BlockStatus.VANILLA

    haystacks = (extra_data.lower(), _decode_extra_data(extra_data).lower())
    for identifier in MEV_BUILDER_IDENTIFIERS:
        if any(identifier in text for text in haystacks):
            return BlockStatus.MEV

    if transaction_count > MEV_TX_COUNT_THRESHOLD:
        return BlockStatus.MEV

    return BlockStatus.VANILLA


def priority_fee(tx: ExecutionTransaction, base_fee_per_gas: int) -> Optional[int]:
    """Tip per gas paid to the proposer, None when the transaction has no fee data."""
    if tx.max_priority_fee_per_gas is not None:
        return tx.max_priority_fee_per_gas
    if tx.gas_price is not None:
        return max(tx.gas_price - base_fee_per_gas, 0)
    return None


def aggregate_reward_wei(transactions: Iterable[Any], base_fee_per_gas: int) -> int:
    """
    Sum the priority fees of a block's transactions, in wei.

    Each transaction contributes ``priority_fee * gas`` where gas is ``gasUsed``
    when the node supplies it and the gas limit otherwise. Hash-only entries and
    transactions without usable fee or gas data are skipped, as are negative
    quantities.

    Args:
        transactions (Iterable[Any]): Raw transaction objects from the block.
        base_fee_per_gas (int): Base fee of the block in wei.

    Returns:
        int: Total reward in wei.
    """
    total_wei = 0
    for raw in transactions:
        if not isinstance(raw, dict):
            continue
        try:
            tx = ExecutionTransaction.model_validate(raw)
        except ValidationError as exc:
            logger.warning(f"Skipping malformed transaction {raw.get('hash')}: {exc}")
            continue

        fee = priority_fee(tx, base_fee_per_gas)
        gas = tx.gas_used if tx.gas_used is not None else tx.gas
        if fee is None or gas is None:
            continue

        total_wei += fee * gas
    return max(total_wei, 0)


def wei_to_gwei(amount_wei: int) -> int:
    return amount_wei // GWEI


class RewardResolver:
    """
    Resolves the MEV status and proposer reward of the block at a slot.

    Attributes:
        rpc_client (RPCClient): Client for the chain data endpoint.
    """

    def __init__(self, rpc_client: RPCClient) -> None:
        self.rpc_client = rpc_client

    @log_execution()
    async def resolve(self, slot: int) -> BlockRewardResult:
        """
        Resolve the reward for a slot.

        Args:
            slot (int): A slot that is not in the future.

        Returns:
            BlockRewardResult: Status and reward in GWEI. ``estimated`` is set
                               when a placeholder reward was substituted.

        Raises:
            FutureSlotError: If the slot lies after the current slot.
            SlotNotFoundError: If the node has no block for the slot.
            RPCFailure: If the block cannot be fetched or decoded.
        """
        ensure_not_future(slot)

        block = await self._fetch_block(slot)
        status = classify_block(block.extra_data or "", block.transaction_count)

        if not block.block_hash:
            return BlockRewardResult(status=BlockStatus.VANILLA, reward=0)

        try:
            reward_wei = await self._fetch_reward_wei(block.block_hash)
        except (RPCFailure, ValidationError) as exc:
            logger.warning(
                f"Reward lookup for slot {slot} ({block.block_hash}) failed, "
                f"using fallback of {FALLBACK_REWARD_GWEI} gwei: {exc}",
            )
            return BlockRewardResult(
                status=status,
                reward=FALLBACK_REWARD_GWEI,
                estimated=True,
            )

        reward_gwei = wei_to_gwei(reward_wei)
        if reward_gwei == 0:
            logger.info(
                f"Slot {slot} reward of {reward_wei} wei rounds to 0 gwei, "
                f"reporting {ZERO_REWARD_PLACEHOLDER_GWEI} gwei",
            )
            return BlockRewardResult(
                status=status,
                reward=ZERO_REWARD_PLACEHOLDER_GWEI,
                estimated=True,
            )

        return BlockRewardResult(status=status, reward=reward_gwei)

    async def _fetch_block(self, slot: int) -> RawBeaconBlock:
        try:
            raw = await self.rpc_client.get_block_by_number(slot, full_transactions=True)
        except RPCResponseError as exc:
            if exc.is_unknown_block:
                raise SlotNotFoundError(slot) from exc
            raise

        if not raw:
            raise SlotNotFoundError(slot)

        try:
            return RawBeaconBlock.model_validate(raw)
        except ValidationError as exc:
            raise RPCFailure(f"malformed block for slot {slot}: {exc}") from exc

    async def _fetch_reward_wei(self, block_hash: str) -> int:
        raw = await self.rpc_client.get_block_by_hash(block_hash, full_transactions=True)
        if not raw:
            raise RPCFailure(f"no execution block found for hash {block_hash}")

        block = ExecutionBlock.model_validate(raw)
        return aggregate_reward_wei(block.transactions, block.base_fee_per_gas or 0)
