from pydantic_settings import BaseSettings
from typing import List, Any
import json
from pathlib import Path


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "AchievR"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)

    # ==========================================
    # Public URLs
    # ==========================================
    APP_URL: str = "http://localhost:8000"  # Base for verification links embedded in QR codes
    FRONTEND_URL: str = "http://localhost:3000"

    # ==========================================
    # Email
    # ==========================================
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@achievr.app"
    EMAIL_FROM_NAME: str = "AchievR"

    # SendGrid Configuration (preferred when an API key is present)
    SENDGRID_API_KEY: str = ""
    USE_SENDGRID: bool = True

    # ==========================================
    # Certificates
    # ==========================================
    CERTIFICATE_STORAGE_PATH: str = "storage/certificates"
    CERTIFICATE_ID_PREFIX: str = "CERT"
    CERTIFICATE_VALIDITY_DAYS: int = 365
    CERTIFICATE_RENDER_TIMEOUT_SECONDS: float = 30.0
    EMAIL_SEND_TIMEOUT_SECONDS: float = 20.0
    CHAIN_CONFLICT_MAX_RETRIES: int = 3

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Get CORS origins as a list"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    VERIFY_RATE_LIMIT: str = "60/minute"  # Public verification endpoint

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._base_dir = Path(__file__).resolve().parent.parent.parent
        certificate_dir = Path(self.CERTIFICATE_STORAGE_PATH)
        if not certificate_dir.is_absolute():
            certificate_dir = self._base_dir / certificate_dir
        self._certificate_dir = certificate_dir

        # Create directories if they don't exist
        self._certificate_dir.mkdir(exist_ok=True, parents=True)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    @property
    def BASE_DIR(self) -> Path:
        return self._base_dir

    @property
    def CERTIFICATE_DIR(self) -> Path:
        return self._certificate_dir

    @property
    def email_configured(self) -> bool:
        return bool(self.SENDGRID_API_KEY) or bool(self.SMTP_USER and self.SMTP_PASSWORD)

    def is_dev_mode(self) -> bool:
        return self.ENVIRONMENT == "development"

    def get_verification_url(self, certificate_id: str) -> str:
        """Public verification link encoded in the certificate QR code"""
        return f"{self.APP_URL.rstrip('/')}/verify/{certificate_id}"


# Create settings instance
settings = Settings()
