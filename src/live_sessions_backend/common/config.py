'''
Holds all the configurations
'''
from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    # Application Metadata
    APP_NAME: str = "LiveSessions Booking Engine"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Scheduling and bid negotiation engine for instructor live sessions."
    TEST_MODE: bool = False
    LOG_LEVEL: str = "INFO"

    # Database URL (the availability store falls back to memory when unset)
    DATABASE_URL: Optional[str] = None
    DATABASE_URL_TEST: Optional[str] = None
    @property
    def database_url(self) -> Optional[str]:
        """
        Dynamically returns the correct database URL based on the test_mode flag.
        """
        if self.TEST_MODE:
            return self.DATABASE_URL_TEST
        return self.DATABASE_URL

    BACKEND_CORS_ORIGINS: list[str] = []

    # Scheduling defaults
    DEFAULT_TIMEZONE: str = "UTC"
    DEFAULT_SLOT_DURATION_MINUTES: int = 60
    DEFAULT_MIN_ADVANCE_HOURS: int = 1
    DEFAULT_MAX_ADVANCE_HOURS: int = 720  # 30 days

    # Booking request policies
    PAYMENT_TIMEOUT_MINUTES: int = 30
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 60
    POPULAR_TIME_SLOTS_LIMIT: int = 3

    # Payment collaborator
    PAYMENT_GATEWAY_URL: Optional[str] = None
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 10.0

    class Config:
        env_file = ".env" # automatically loads the .env

# Create a single, importable instance of the settings
settings = Settings()
