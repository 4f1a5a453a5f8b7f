"""
Student Support Client - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Backend API
    api_base_url: str = "http://localhost:8000/api"
    api_token: str = ""  # Bearer token, empty for anonymous requests
    api_timeout: float = 60.0
    api_read_timeout: float = 120.0

    # Tickets
    tickets_page_size: int = 20
    tickets_refresh_interval: float = 30.0

    # Notifications polling
    notification_poll_interval: float = 60.0
    notification_idle_timeout: float = 300.0

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    @property
    def API_URL(self) -> str:
        """Backend base URL without trailing slash"""
        return self.api_base_url.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
