"""Storage backends and repository factories."""

from typing import Optional, Tuple

from config import settings
from db.memory_store import InMemoryAppointmentRepository, InMemoryBusinessRepository
from db.repository import AppointmentRepository, BusinessConfigRepository
from utils.exceptions import ConfigurationError

__all__ = [
    "AppointmentRepository",
    "BusinessConfigRepository",
    "InMemoryAppointmentRepository",
    "InMemoryBusinessRepository",
    "get_repositories",
    "reset_repositories",
]

# Global repository instances
_repositories: Optional[Tuple[AppointmentRepository, BusinessConfigRepository]] = None


def get_repositories() -> Tuple[AppointmentRepository, BusinessConfigRepository]:
    """Get or create the repositories for the configured storage backend."""
    global _repositories
    if _repositories is None:
        try:
            settings.validate_all_required()
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        if settings.uses_supabase():
            from db.supabase_client import (
                SupabaseAppointmentRepository,
                SupabaseBusinessRepository,
            )

            _repositories = (SupabaseAppointmentRepository(), SupabaseBusinessRepository())
        else:
            _repositories = (InMemoryAppointmentRepository(), InMemoryBusinessRepository())
    return _repositories


def reset_repositories() -> None:
    """Forget the cached repositories (tests, settings reload)."""
    global _repositories
    _repositories = None
