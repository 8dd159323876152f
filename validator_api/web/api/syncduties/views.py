import asyncio

from fastapi import APIRouter, Depends, Response

from validator_api.config import settings
from validator_api.constants import ESTIMATED_DATA_HEADER
from validator_api.services.sync_duties import SyncDutyResolver
from validator_api.web.api.schema import ERROR_RESPONSES
from validator_api.web.api.syncduties.schema import SyncDutiesResponse, SyncInfo
from validator_api.web.dependencies import get_sync_duty_resolver, valid_slot

router = APIRouter()


@router.get(
    "/syncduties/{slot}",
    response_model=SyncDutiesResponse,
    responses=ERROR_RESPONSES,
    tags=["sync"],
    summary="Get Sync Duties",
)
async def get_sync_duties(
    response: Response,
    slot: int = Depends(valid_slot),
    resolver: SyncDutyResolver = Depends(get_sync_duty_resolver),
) -> SyncDutiesResponse:
    """Get the sync committee duties for validators at a given slot."""
    async with asyncio.timeout(settings.resolution_timeout):
        duties = await resolver.resolve(slot)

    if duties.synthetic:
        response.headers[ESTIMATED_DATA_HEADER] = "true"

    return SyncDutiesResponse(
        validators=duties.validators,
        sync_info=SyncInfo(
            sync_period=duties.sync_period,
            committee_size=duties.committee_size,
        ),
    )
