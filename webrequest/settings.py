"""Settings for webrequest, read once from the environment."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration injected into WebRequest and RequestContext.

    Every field can be overridden with a WEBREQUEST_ prefixed environment
    variable, e.g. WEBREQUEST_PATH_INFO_SOURCE=SERVER.
    """

    # Where the extra path info is read from: the per-request server
    # variables (the WSGI environ) or the process environment.
    path_info_source: Literal["SERVER", "ENV"] = "ENV"
    path_info_key: str = "PATH_INFO"

    # Multipart uploads
    temp_dir: Optional[str] = None
    max_file_size: Optional[int] = Field(default=None, gt=0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logs: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    model_config = SettingsConfigDict(env_prefix="WEBREQUEST_", env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
