"""Runtime settings for cattle."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CattleSettings(BaseSettings):
    """Settings read from ``CATTLE_*`` environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="CATTLE_",
        env_file=".env",
        extra="ignore",
    )

    working_dir: str = Field(
        default=".",
        description="Directory holding the network files, key store and node folders"
    )
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON instead of the console renderer"
    )

    # Key store encryption
    kdf_iterations: int = Field(default=200_000, ge=1)

    # External node configuration toolkit
    bootstrap_command: str = Field(
        default="symbol-bootstrap",
        description="Executable used to render node configurations"
    )
    presets_dir: Optional[str] = Field(
        default=None,
        description="Directory with <name>.yml base network presets"
    )
    bootstrap_min_version: str = Field(
        default="1.1.0",
        description="Oldest toolkit version accepted by the verify command"
    )
    compose_user: Optional[str] = Field(default=None)


@lru_cache()
def get_settings() -> CattleSettings:
    """Get the process wide settings."""
    return CattleSettings()
