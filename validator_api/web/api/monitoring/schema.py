from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    pending_rpc_requests: int
