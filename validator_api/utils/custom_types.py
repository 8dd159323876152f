from typing import Annotated, Any

from pydantic import BeforeValidator, Field


def _parse_quantity(value: Any) -> Any:
    """Decode a JSON-RPC hex quantity ("0x5208") into an int."""
    if isinstance(value, str) and value[:2].lower() == "0x":
        return int(value, 16) if len(value) > 2 else 0
    return value


HexInt = Annotated[
    int,
    BeforeValidator(_parse_quantity),
]

# Fees, gas and prices are unsigned on chain
Quantity = Annotated[HexInt, Field(ge=0)]
