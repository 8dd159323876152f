from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from validator_api.constants import (
    BLS_PUBKEY_PATTERN,
    MAX_SYNC_DUTIES,
    SYNTHETIC_VALIDATOR_PUBKEYS,
)
from validator_api.exceptions import RPCDecodeError, RPCResponseError
from validator_api.models import SyncCommitteeResult, SyncDutySet, ValidatorListResult
from validator_api.rpc_client import RPCClient
from validator_api.slots import ensure_not_future, epoch_at_slot, sync_period_at_slot
from validator_api.utils.decorators import log_execution


def usable_pubkeys(keys: Iterable[str]) -> List[str]:
    """Keep only well formed BLS public keys (0x followed by 96 hex characters)."""
    return [key for key in keys if isinstance(key, str) and BLS_PUBKEY_PATTERN.match(key)]


def synthetic_sync_duties(
    slot: int,
    epoch: int,
    table: Sequence[str] = SYNTHETIC_VALIDATOR_PUBKEYS,
) -> List[str]:
    """
    Deterministically pick validator keys for a slot from a fixed table.

    The same ``(slot, epoch)`` always yields the same list of 8 to 23 keys;
    keys can repeat. The result is not the real sync committee.

    Args:
        slot (int): The slot.
        epoch (int): Epoch of the slot.
        table (Sequence[str]): Keys to pick from.

    Returns:
        List[str]: The selected keys.
    """
    seed = (slot * 1000 + epoch * 2000) % 1_000_000
    count = min(8 + seed % 16, len(table))
    return [table[(seed + i * i) % len(table)] for i in range(count)]


class SyncDutyStrategy(ABC):
    """One way of asking the endpoint for the validators on sync duty."""

    name: str = "strategy"

    @abstractmethod
    async def fetch(self, rpc_client: RPCClient, epoch: int, sync_period: int) -> object:
        """Issue the RPC call and return its raw result."""

    @abstractmethod
    def extract(self, result: object) -> List[str]:
        """Pull candidate public keys out of a raw result."""

    async def attempt(
        self,
        rpc_client: RPCClient,
        epoch: int,
        sync_period: int,
    ) -> Optional[List[str]]:
        """
        Try to resolve the sync duties.

        JSON-RPC errors, undecodable replies and malformed payloads are treated
        as "no answer";
        transport failures propagate to the caller.

        Returns:
            Optional[List[str]]: Usable keys, or None when this strategy has none.
        """
        try:
            result = await self.fetch(rpc_client, epoch, sync_period)
        except (RPCResponseError, RPCDecodeError) as exc:
            logger.info(f"Sync duty strategy {self.name} unavailable: {exc}")
            return None

        try:
            keys = usable_pubkeys(self.extract(result))
        except ValidationError as exc:
            logger.warning(f"Sync duty strategy {self.name} returned malformed data: {exc}")
            return None

        return keys or None


class SyncCommitteeStrategy(SyncDutyStrategy):
    name = "sync_committee"

    async def fetch(self, rpc_client: RPCClient, epoch: int, sync_period: int) -> object:
        return await rpc_client.get_sync_committee(epoch, sync_period)

    def extract(self, result: object) -> List[str]:
        if result is None:
            return []
        return SyncCommitteeResult.model_validate(result).data.validators


class ValidatorListStrategy(SyncDutyStrategy):
    name = "validator_list"

    async def fetch(self, rpc_client: RPCClient, epoch: int, sync_period: int) -> object:
        return await rpc_client.get_validators(epoch)

    def extract(self, result: object) -> List[str]:
        if result is None:
            return []
        return [
            entry.validator.pubkey
            for entry in ValidatorListResult.model_validate(result).data
        ]


DEFAULT_STRATEGIES: Sequence[SyncDutyStrategy] = (
    SyncCommitteeStrategy(),
    ValidatorListStrategy(),
)


class SyncDutyResolver:
    """
    Resolves the validators on sync committee duty at a slot.

    Strategies are tried in order; the first one yielding a usable key wins.
    When none does, keys come from ``synthetic_sync_duties``.

    Attributes:
        rpc_client (RPCClient): Client for the chain data endpoint.
        strategies (Sequence[SyncDutyStrategy]): Ordered query strategies.
    """

    def __init__(
        self,
        rpc_client: RPCClient,
        strategies: Sequence[SyncDutyStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.rpc_client = rpc_client
        self.strategies = strategies

    @log_execution()
    async def resolve(self, slot: int) -> SyncDutySet:
        """
        Resolve sync duties for a slot.

        Args:
            slot (int): A slot that is not in the future.

        Returns:
            SyncDutySet: Between 1 and 32 keys with the slot's sync period.

        Raises:
            FutureSlotError: If the slot lies after the current slot.
            RPCFailure: On transport failures, including exhausted rate limit retries.
        """
        ensure_not_future(slot)

        epoch = epoch_at_slot(slot)
        sync_period = sync_period_at_slot(slot)

        await self._probe(slot)

        for strategy in self.strategies:
            keys = await strategy.attempt(self.rpc_client, epoch, sync_period)
            if keys:
                logger.debug(f"Slot {slot} sync duties resolved by {strategy.name}")
                return SyncDutySet(
                    validators=keys[:MAX_SYNC_DUTIES],
                    sync_period=sync_period,
                )

        logger.warning(
            f"No upstream sync committee data for slot {slot} (epoch {epoch}), "
            "using synthetic validator set",
        )
        return SyncDutySet(
            validators=synthetic_sync_duties(slot, epoch)[:MAX_SYNC_DUTIES],
            sync_period=sync_period,
            synthetic=True,
        )

    async def _probe(self, slot: int) -> None:
        """
        Check that the node knows the slot and is synced.

        JSON-RPC errors and undecodable replies are only logged.
        """
        try:
            block = await self.rpc_client.get_block_by_number(slot, full_transactions=False)
            if not block:
                logger.info(f"Node has no block for slot {slot}")
            syncing = await self.rpc_client.syncing()
            if syncing:
                logger.info(f"Node is still syncing: {syncing}")
        except (RPCResponseError, RPCDecodeError) as exc:
            logger.info(f"Capability probe for slot {slot} failed: {exc}")
