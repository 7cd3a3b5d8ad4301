"""
Core settings and environment variables for the Hack-a-Problem API.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Hack-a-Problem API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - comma separated list of frontend origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000"

    # Session cookie (signed, server only keeps the user id in it)
    SESSION_SECRET: str = "change-me-in-production"
    SESSION_MAX_AGE_SECONDS: int = 24 * 60 * 60

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # Mock DB mode for local development without Firebase credentials
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: Optional[str] = "./mock_db.json"

    # AI enrichment (Gemini)
    AI_ENABLED: bool = True
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_TEXT_MODEL: str = "gemini-pro"
    GEMINI_VISION_MODEL: str = "gemini-pro-vision"
    AI_TIMEOUT_SECONDS: float = 10.0
    # Edits re-run enrichment before responding unless this is set
    ENRICH_EDITS_IN_BACKGROUND: bool = False
    BACKGROUND_WORKERS: int = 4

    # SMS notifications (Twilio REST API)
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None
    AUTHORITY_PHONE_NUMBER: Optional[str] = None
    SMS_TIMEOUT_SECONDS: float = 5.0

    # Uploads
    UPLOAD_DIR: str = "./public/uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # Insert the sample problems on startup when the collection is empty
    SEED_SAMPLE_DATA: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins_list(self) -> list:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
