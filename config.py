"""
Configuration module for the appointment booking engine.
Loads environment variables and provides typed configuration.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    storage_backend: str = "memory"  # memory, supabase
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    appointments_table: str = "appointments"
    businesses_table: str = "businesses"

    # Booking
    default_timezone: str = "UTC"
    max_booking_days_ahead: int = 365  # 0 disables the horizon check

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def uses_supabase(self) -> bool:
        """True when appointments are stored in Supabase."""
        return self.storage_backend.strip().lower() == "supabase"

    def validate_all_required(self) -> None:
        """
        Validate that all settings required by the selected backend are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        backend = self.storage_backend.strip().lower()
        if backend not in ("memory", "supabase"):
            raise ValueError(
                f"Unknown storage backend '{self.storage_backend}'. "
                f"Expected 'memory' or 'supabase'."
            )

        required_fields = []
        if backend == "supabase":
            required_fields = ["supabase_url", "supabase_key"]

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)

            if not value:
                missing.append(field)
                continue

            # Placeholder values copied from .env.example
            if str(value).lower().startswith("your_"):
                missing.append(field)

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
