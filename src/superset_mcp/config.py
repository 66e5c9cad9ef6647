"""Configuration management for Superset MCP Server."""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Superset connection
    superset_url: str
    superset_username: str
    superset_password: str
    superset_with_credentials: bool = True  # Forward session cookies
    superset_timeout_seconds: float = 30.0
    superset_verify_ssl: bool = True

    # Metadata cache
    cache_warmup_on_start: bool = True

    # MCP Server Configuration (HTTP/SSE mode)
    server_host: str = "0.0.0.0"
    server_port: int = 8080
    server_reload: bool = False

    # Inbound authentication for HTTP/SSE mode
    api_keys: str = "dev-key-12345"  # Comma-separated
    jwt_secret_key: str = "change-this-in-production"
    jwt_algorithm: str = "HS256"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def api_keys_list(self) -> List[str]:
        """Return API keys as a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]


# Global settings instance
settings = Settings()
