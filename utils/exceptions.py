"""
Custom exception classes for infrastructure faults.
Expected booking outcomes (conflicts, lost races) are returned as data,
not raised; see models.results.
"""


class DatabaseError(Exception):
    """Base exception for storage operations."""

    pass


class BusinessNotFoundError(DatabaseError):
    """Raised when a business configuration is not found."""

    pass


class ConfigurationError(Exception):
    """Raised when application settings are missing or invalid."""

    pass


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass
