# platecheck/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./platecheck.db"
    DATABASE_ECHO: bool = False     # Set True to log all SQL queries (debug only)

    # ── Vehicle rules ─────────────────────────────────────────────────────
    MIN_VEHICLE_YEAR: int = 1900    # Upper bound is always current year + 1
    UNKNOWN_OWNER: str = "Unknown Owner"
    PLACEHOLDER_IMAGE_URL: str = (
        "https://images.pexels.com/photos/170811/pexels-photo-170811.jpeg"
        "?auto=compress&cs=tinysrgb&w=800"
    )
    SEED_DEMO_VEHICLES: bool = True

    # ── Accounts ──────────────────────────────────────────────────────────
    PASSWORD_MIN_LENGTH: int = 6

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False       # Set True to also write logs/platecheck.log

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
