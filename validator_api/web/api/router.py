from fastapi.routing import APIRouter

from validator_api.web.api import blockreward, monitoring, syncduties

api_router = APIRouter()
api_router.include_router(monitoring.router)
api_router.include_router(blockreward.router)
api_router.include_router(syncduties.router)
