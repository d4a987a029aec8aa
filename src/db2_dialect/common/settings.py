from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env into os.environ
load_dotenv()


class Settings(BaseSettings):
    """Dialect configuration settings backed by environment variables."""

    pool_max_size: int = Field(
        default=10,
        ge=1,
        validation_alias="DB2_POOL_MAX_SIZE",
        description="Maximum number of native connections held by one pool.",
    )
    pool_timeout_sec: Optional[float] = Field(
        default=None,
        validation_alias="DB2_POOL_TIMEOUT_SEC",
        description="Seconds to wait for a free session when the pool is exhausted. None waits forever.",
    )
    log_level: str = Field(default="INFO", validation_alias="DB2_LOG_LEVEL")
    log_json: bool = Field(
        default=False,
        validation_alias="DB2_LOG_JSON",
        description="Emit JSON log lines instead of plain text.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


settings = Settings()
