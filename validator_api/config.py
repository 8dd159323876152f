from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings configuration class for the validator API service."""

    app_name: str = "validator-api"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 3004
    reload: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    cors_origins: List[str] = ["http://localhost:3000"]

    # RPC Configuration
    eth_rpc: str = Field(
        default="http://localhost:8545",
        validation_alias=AliasChoices("VALIDATOR_API_ETH_RPC", "ETH_RPC"),
    )
    rpc_timeout: float = 10.0
    rpc_request_interval: float = 1.0  # Upstream allows ~1 request per second
    rpc_rate_limit_retries: int = 5
    rpc_backoff_factor: float = 1.0
    rpc_max_concurrency: int = 10

    # Upper bound for a whole resolution (several sequential RPC calls)
    resolution_timeout: float = 60.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="VALIDATOR_API_",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
