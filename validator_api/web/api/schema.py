from typing import Any, Dict, Union

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str


ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid slot number or future slot"},
    404: {"model": ErrorResponse, "description": "Slot does not exist"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
}
