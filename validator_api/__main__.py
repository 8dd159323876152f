import uvicorn
from loguru import logger

from validator_api.config import settings


def main() -> None:
    """
    Main entry point for the service.

    Runs uvicorn with the application factory, using host, port and reload
    flags from settings.
    """
    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    uvicorn.run(
        "validator_api.web.application:get_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
