"""Application settings via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from opsbridge.errors import ConfigError


class Settings(BaseSettings):
    """
    Application settings via environment variables.

    Values come from the process environment, then from a .env file in the
    working directory. Nothing here is required up front: each tool module
    calls require() for the variables it needs while it registers, which
    turns a missing variable into a fatal startup error.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Discord
    discord_token: str | None = None
    discord_development_channel_id: str | None = None
    discord_staging_channel_id: str | None = None
    discord_production_channel_id: str | None = None
    discord_api_url: str = "https://discord.com/api/v10"

    # Azure CLI
    az_executable: str = "az"

    # Server
    host: str = Field(default="0.0.0.0", alias="OPSBRIDGE_HOST")
    port: int = Field(default=8765, alias="OPSBRIDGE_PORT")
    log_level: str = Field(default="INFO", alias="OPSBRIDGE_LOG_LEVEL")

    def require(self, *names: str) -> None:
        """
        Ensure the named settings are set.

        Args:
            names: Attribute names of required settings

        Raises:
            ConfigError: Naming the environment variable of every missing
                setting
        """
        missing = [name.upper() for name in names if not getattr(self, name)]
        if missing:
            raise ConfigError(missing=missing)
