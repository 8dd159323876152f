from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.requests import Request

from validator_api.config import settings
from validator_api.exceptions import (
    FutureSlotError,
    InvalidSlotError,
    RPCFailure,
    SlotNotFoundError,
    ValidatorAPIError,
)
from validator_api.log import configure_logging
from validator_api.web.api.router import api_router
from validator_api.web.lifespan import lifespan_setup


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def invalid_slot_handler(request: Request, exc: InvalidSlotError) -> JSONResponse:
    return _error(400, "Invalid slot number")


async def future_slot_handler(request: Request, exc: FutureSlotError) -> JSONResponse:
    logger.info(f"Rejected {request.url.path}: {exc}")
    if request.url.path.startswith("/syncduties"):
        return _error(400, "Slot is too far in the future")
    return _error(400, "Slot is in the future")


async def slot_not_found_handler(
    request: Request,
    exc: SlotNotFoundError,
) -> JSONResponse:
    return _error(404, "Slot does not exist")


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Logs the failure; upstream error text never reaches the client."""
    if isinstance(exc, RPCFailure):
        logger.error(f"RPC failure while serving {request.url.path}: {exc}")
    else:
        logger.opt(exception=exc).error(f"Unhandled error while serving {request.url.path}")
    return _error(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps the error taxonomy to HTTP responses.

    :param app: current application.
    """
    app.add_exception_handler(InvalidSlotError, invalid_slot_handler)  # type: ignore[arg-type]
    app.add_exception_handler(FutureSlotError, future_slot_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SlotNotFoundError, slot_not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValidatorAPIError, internal_error_handler)
    app.add_exception_handler(TimeoutError, internal_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)


def get_app() -> FastAPI:
    """
    Get FastAPI application.

    This is the main constructor of an application.

    :return: application.
    """
    configure_logging()
    app = FastAPI(
        title="validator-api",
        description="Block reward and sync duty lookups for Ethereum beacon chain slots",
        lifespan=lifespan_setup,
        docs_url="/swagger",
        openapi_url="/swagger/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept"],
    )

    register_exception_handlers(app)
    app.include_router(router=api_router)

    return app
