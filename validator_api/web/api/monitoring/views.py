from fastapi import APIRouter, Depends

from validator_api.rpc_client import RPCClient
from validator_api.web.api.monitoring.schema import HealthResponse
from validator_api.web.dependencies import get_rpc_client

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health_check(rpc_client: RPCClient = Depends(get_rpc_client)) -> HealthResponse:
    """
    Checks the health of a project.

    It returns 200 if the project is healthy.
    """
    return HealthResponse(status="ok", pending_rpc_requests=rpc_client.pending_requests)
