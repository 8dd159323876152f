import time
from typing import Optional

from validator_api.constants import (
    EPOCHS_PER_SYNC_COMMITTEE_PERIOD,
    SECONDS_PER_SLOT,
    SLOTS_PER_EPOCH,
)
from validator_api.exceptions import FutureSlotError, InvalidSlotError


def parse_slot(raw: str) -> int:
    """
    Parse a slot taken from a request path.

    Args:
        raw (str): The path segment as received.

    Returns:
        int: The slot number.

    Raises:
        InvalidSlotError: If the value is not a non-negative base 10 integer.
    """
    raw = raw.strip()
    if not (raw.isascii() and raw.isdigit()):
        raise InvalidSlotError(f"invalid slot number: {raw!r}")
    return int(raw)


def current_slot(now: Optional[float] = None) -> int:
    """Slot number derived from the wall clock (unix time / 12)."""
    if now is None:
        now = time.time()
    return int(now) // SECONDS_PER_SLOT


def ensure_not_future(slot: int, now: Optional[float] = None) -> int:
    """
    Reject slots situated after the current wall-clock slot.

    Args:
        slot (int): The requested slot.
        now (Optional[float]): Unix time to check against, defaults to now.

    Returns:
        int: The current slot, for diagnostics.

    Raises:
        FutureSlotError: If ``slot`` is greater than the current slot.
    """
    head = current_slot(now)
    if slot > head:
        raise FutureSlotError(slot, head)
    return head


def epoch_at_slot(slot: int) -> int:
    return slot // SLOTS_PER_EPOCH


def sync_period_at_slot(slot: int) -> int:
    return epoch_at_slot(slot) // EPOCHS_PER_SYNC_COMMITTEE_PERIOD
