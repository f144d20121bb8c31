"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "zigbridge"
    debug: bool = False
    environment: str = "development"
    port: int = 8090
    api_prefix: str = ""

    # Durable gateway configuration (YAML). Empty = in-memory only.
    config_file: str = "data/configuration.yaml"

    # MQTT (zigbee2mqtt broker)
    mqtt_enabled: bool = False
    mqtt_broker_host: str = "localhost"
    mqtt_broker_port: int = 1883
    mqtt_username: str = ""
    mqtt_password: str = ""
    mqtt_ca_cert: str = ""              # Empty = plain TCP
    mqtt_client_id: str = "zigbridge"
    mqtt_base_topic: str = "zigbee2mqtt"
    mqtt_reconnect_interval: int = 5
    mqtt_max_reconnect_interval: int = 60

    # Callback relay
    topic_namespace: str = "utzigbee"
    callback_path: str = "/point_of_sales/deviceCallBackFn"
    callback_timeout: float = 5.0

    # Process restart (external supervisor)
    restart_command: str = "pm2 restart"
    restart_delay: float = 1.0

    @field_validator("api_prefix", mode="before")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        """Strip trailing slashes so routers mount cleanly."""
        v = (v or "").rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    # CORS - accepts comma-separated string or JSON array
    cors_origins_str: str = "*"

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        value = self.cors_origins_str
        if value.startswith("["):
            import json
            return json.loads(value)
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    # Logging
    log_level: str = "INFO"

    # Metrics
    metrics_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
