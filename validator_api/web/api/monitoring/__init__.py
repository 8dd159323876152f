from validator_api.web.api.monitoring.views import router

__all__ = ["router"]
