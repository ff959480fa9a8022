from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: Optional[str] = None

    # Server binding
    HOST: str = ""  # Empty binds all interfaces
    PORT: int = 8000

    # Number of sample batches to cache before sending to the API server
    CACHE_LENGTH: int = 5

    # Mindsight API
    API_SERVER_URL: str = "https://api.mindsight.io/query"

    # Test mode: samples are dumped to the log instead of being sent
    TEST_MODE: bool = False

    # Mindsight client credentials (OAuth2 client-credentials grant)
    MINDSIGHT_CLIENT_ID: Optional[str] = None
    MINDSIGHT_CLIENT_SECRET: Optional[str] = None
    CREDENTIALS_AUDIENCE: str = "https://api.mindsight.io/"
    TOKEN_URL: str = "https://mindsight.auth0.com/oauth/token/"

    # HTTP Settings
    HTTP_REQUEST_TIMEOUT_SECONDS: float = 30.0  # Per-call timeout for outbound requests

    # Attempt a final flush of pending samples on shutdown
    FLUSH_ON_SHUTDOWN: bool = True

    # Log Level
    LOG_LEVEL: (
        str  # Required: Must be set in environment (e.g., INFO, DEBUG, WARNING, ERROR)
    )

    # Logging Configuration
    LOGGING_FRAME_DEPTH: int = (
        6  # Frame depth for finding logging call origin in stack trace
    )

    # Sentry Configuration
    SENTRY_DSN: Optional[str] = None  # Sentry DSN for error tracking

    # API Configuration
    PROJECT_NAME: str = "Mindsight-Hotpath-Agent"
    VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    # --------- Properties ---------
    @property
    def is_local(self) -> bool:
        """
        Check if running in local development environment.

        Returns True only for local development (local or local_dev).
        Any other environment (dev, staging, prod) returns False.
        """
        if not self.ENVIRONMENT:
            return False
        env = self.ENVIRONMENT.lower()
        return env in ["local", "local_dev"]

    @property
    def bind_host(self) -> str:
        """Host uvicorn binds to; an empty HOST means all interfaces."""
        return self.HOST or "0.0.0.0"


settings = Settings()
