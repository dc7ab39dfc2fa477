from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Sightings store (required at startup, e.g. "sqlite+aiosqlite:///telegram_data.db")
    database_url: str = ""
    database_echo: bool = False

    # Web
    web_host: str = "0.0.0.0"
    web_port: int = 5000

    # Logging
    log_level: str = "INFO"

    # Common tokens view: minimum distinct channels when ?minChannels is absent
    default_min_channels: int = 2

    # Channel name stamped on sightings created through the API
    api_channel_name: str = "API"


settings = Settings()
