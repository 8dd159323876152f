from validator_api.web.api.blockreward.views import router

__all__ = ["router"]
