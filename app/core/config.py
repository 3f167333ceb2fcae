# app/core/config.py
import os
from typing import List, Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from functools import lru_cache

# Determine the base directory of the project (where app/ and main.py live)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# This will be used when running the app normally (e.g., with uvicorn)
# For tests, the conftest.py points DOTENV_PATH at .env.test
DOTENV = os.getenv("DOTENV_PATH", os.path.join(BASE_DIR, '.env'))
if os.path.exists(DOTENV):
    load_dotenv(dotenv_path=DOTENV)

class Settings(BaseSettings):
    # App Environment
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"

    model_config = SettingsConfigDict(
         case_sensitive=True,
         env_file_encoding = 'utf-8'
     )

    # Database Configuration (required from environment)
    DB_HOST: str
    DB_PORT: int
    DB_USER: str
    DB_PASSWORD: str
    DB_NAME: str
    DB_SSL_MODE: str = "prefer"
    DB_CA_CERT_FILE: Optional[str] = None

    @property
    def DATABASE_URL(self) -> str:
        dsn = f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?sslmode={self.DB_SSL_MODE}"
        if self.DB_SSL_MODE in ['verify-ca', 'verify-full'] and self.DB_CA_CERT_FILE:
            # The path to the 'certs' dir is relative to the project root (BASE_DIR)
            ca_cert_path = os.path.join(BASE_DIR, 'certs', self.DB_CA_CERT_FILE)
            dsn = f"{dsn}&sslrootcert={ca_cert_path}"
        return dsn

    # Firebase / session
    FIREBASE_SERVICE_ACCOUNT_KEY_PATH: str = "service-account.json"
    SESSION_COOKIE_NAME: str = "session"

    # Browser origins allowed to call the API with credentials
    BACKEND_CORS_ORIGINS: List[str] = []

    # Sentry
    SENTRY_DSN: Optional[str] = None

    # Invites
    APP_BASE_URL: str = "http://localhost:3000"
    INVITE_DEFAULT_EXPIRY_DAYS: float = 7
    INVITE_MAX_EXPIRY_DAYS: float = 365
    INVITE_TOKEN_BYTES: int = 32

    # Outbound e-mail
    EMAIL_BACKEND: Literal["console", "smtp", "sendgrid"] = "console"
    EMAIL_FROM: str = "noreply@example.com"
    EMAIL_TIMEOUT_SECONDS: float = 10
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    SENDGRID_API_KEY: Optional[str] = None
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"

# Use lru_cache to load settings only once in production/development,
# but for testing, we want to be able to reload it.
if os.getenv('ENVIRONMENT') == 'test':
    def get_settings() -> Settings:
        """Get settings without caching for tests."""
        return Settings()
else:
    @lru_cache()
    def get_settings() -> Settings:
        """Get cached settings for production/development."""
        return Settings()

# Create a singleton instance accessible throughout the app
settings = get_settings()
