"""
Konfiguracija aplikacije / Application configuration.
Uporablja pydantic-settings za branje iz .env ali okoljskih spremenljivk.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Mat Tracker"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Database - SQLite privzeto za razvoj / SQLite by default for development
    DATABASE_URL: str = "sqlite+aiosqlite:///./mat_tracker.db"

    # CORS - dovoljeni izvori / allowed origins
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:8080"]

    # JWT (izda zunanji ponudnik avtentikacije / issued by the external auth provider)
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Rate Limiting
    RATE_LIMIT_CODEGEN: str = "10/minute"
    RATE_LIMIT_ACCOUNTS: str = "5/minute"

    # Testno obdobje / Trial window
    TRIAL_DAYS: int = 7
    EXTENSION_DAYS: int = 7
    EXPIRING_WINDOW_DAYS: int = 1
    EXPIRING_SOON_DAYS: int = 3
    MAX_TEST_EXTENSIONS: int | None = None

    # Pragovi zanemarjanja / Neglect escalation thresholds
    TEST_WARNING_DAYS: int = 20
    TEST_CRITICAL_DAYS: int = 30
    PICKUP_OLD_DAYS: int = 3
    DIRTY_BACKLOG_THRESHOLD: int = 10

    # Opomniki / Follow-ups
    CONTRACT_FOLLOWUP_DAYS: int = 3
    OFFER_FOLLOWUP_DAYS: int = 2
    FOLLOWUP_HOUR: int = 9
    LOCAL_TIMEZONE: str = "Europe/Ljubljana"

    # Analitika / Analytics
    CONVERSION_WINDOW_DAYS: int = 90
    TREND_MONTHS: int = 12

    # Zemljevid / Map
    CLUSTER_THRESHOLD_DEG: float = 0.0001
    NEAREST_RANGE_KM: float = 30.0

    # QR kode / QR codes
    CODE_SUFFIX_LENGTH: int = 4
    CODE_ATTEMPTS_PER_CODE: int = 100

    # Prevzemi / Driver pickups
    PICKUP_REQUIRE_ALL_ITEMS: bool = False

    # Geolokacija / Geolocation
    GEOLOCATION_TIMEOUT_SECONDS: float = 10.0
    GEOLOCATION_MAX_AGE_SECONDS: int = 60

    # Privilegirana storitev za račune / Privileged account service
    ADMIN_SERVICE_URL: str = "http://localhost:54321/functions/v1"
    ADMIN_SERVICE_TIMEOUT_SECONDS: float = 15.0
    ADMIN_SERVICE_MAX_RETRIES: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
