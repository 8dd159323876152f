from validator_api.web.api.syncduties.views import router

__all__ = ["router"]
