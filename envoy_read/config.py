from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    admin_api: str = "http://localhost:19000"
    config_dump_path: str = "/config_dump?include_eds"
    timeout: float = 5.0
    output: str = "table"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="ENVOY_",
        env_file=".env",  # Load from .env file if available
        extra="ignore",
    )
