from typing import Optional


class ValidatorAPIError(Exception):
    """Base class for every error raised by the validator API."""


class InvalidSlotError(ValidatorAPIError):
    """The requested slot is not a non-negative integer."""


class FutureSlotError(ValidatorAPIError):
    """
    The requested slot lies after the current wall-clock slot.

    Attributes:
        slot (int): The requested slot.
        current_slot (int): The slot computed from the wall clock at check time.
    """

    def __init__(self, slot: int, current_slot: int) -> None:
        self.slot = slot
        self.current_slot = current_slot
        super().__init__(
            f"requested slot {slot} is in the future (current slot: {current_slot})",
        )


class SlotNotFoundError(ValidatorAPIError):
    """The upstream node reports that no block exists for the slot."""

    def __init__(self, slot: int) -> None:
        self.slot = slot
        super().__init__(f"slot {slot} does not exist")


class InvalidRPCEndpointError(ValidatorAPIError):
    """The configured RPC endpoint is not an absolute http(s) URL."""


class RPCFailure(ValidatorAPIError):
    """Transport or decoding failure while talking to the RPC endpoint."""


class RPCResponseError(RPCFailure):
    """
    The RPC endpoint answered with a JSON-RPC error object.

    Attributes:
        code (Optional[int]): JSON-RPC error code, when supplied.
        message (str): JSON-RPC error message.
    """

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        self.code = code
        self.message = message
        super().__init__(f"RPC error: {message} (code: {code})")

    @property
    def is_unknown_block(self) -> bool:
        text = self.message.lower()
        return "unknown block" in text or "does not exist" in text


class RPCRateLimitedError(RPCFailure):
    """The RPC endpoint kept rate limiting a call after every allowed retry."""


class RPCDecodeError(RPCFailure):
    """The RPC endpoint answered, but the body is not a usable JSON-RPC response."""
