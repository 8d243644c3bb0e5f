"""
Custom exceptions for LedgerMap.

Provides a hierarchy of exceptions with error codes for consistent error handling.
"""
from typing import Optional, Dict, Any


class LedgerMapError(Exception):
    """
    Base exception for all LedgerMap errors.

    Attributes:
        error_code: Unique error code (e.g., LMP-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "LMP-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Taxonomy Errors (LMP-1XX)
class TaxonomyError(LedgerMapError):
    """Error while loading or querying the reporting taxonomy."""
    error_code = "LMP-100"
    http_status = 422

    def __init__(self, message: str = "Failed to load taxonomy", **kwargs):
        super().__init__(message, **kwargs)


class InvalidTaxonomyError(TaxonomyError):
    """Taxonomy data is structurally invalid."""
    error_code = "LMP-101"
    http_status = 422

    def __init__(self, message: str = "Invalid taxonomy", **kwargs):
        super().__init__(message, **kwargs)


class TaxonomyNodeNotFoundError(TaxonomyError):
    """Taxonomy node not found at the requested level."""
    error_code = "LMP-102"
    http_status = 404

    def __init__(self, level: str, code: str, **kwargs):
        message = f"{level} {code} not found"
        super().__init__(message, details={"level": level, "code": code}, **kwargs)


# Mapping Errors (LMP-3XX)
class MappingError(LedgerMapError):
    """A mapping cannot be applied to a ledger record."""
    error_code = "LMP-300"
    http_status = 400

    def __init__(self, message: str = "Failed to apply mapping", **kwargs):
        super().__init__(message, **kwargs)


# Validation Errors (LMP-7XX)
class ValidationError(LedgerMapError):
    """Input validation failed."""
    error_code = "LMP-700"
    http_status = 400

    def __init__(self, message: str = "Validation failed", errors: list = None, **kwargs):
        details = kwargs.pop("details", {})
        details["errors"] = errors or []
        super().__init__(message, details=details, **kwargs)


# External Service Errors (LMP-9XX)
class ExternalServiceError(LedgerMapError):
    """External service call failed."""
    error_code = "LMP-900"
    http_status = 502

    def __init__(self, service_name: str, message: str = None, **kwargs):
        msg = message or f"External service '{service_name}' is unavailable"
        details = kwargs.pop("details", {})
        details["service"] = service_name
        super().__init__(msg, details=details, **kwargs)


class SuggestionProviderError(ExternalServiceError):
    """A single suggestion request failed; other requests may still succeed."""
    error_code = "LMP-901"
    http_status = 502


class ProviderUnavailableError(SuggestionProviderError):
    """The suggestion channel as a whole is down (connectivity, quota, credentials)."""
    error_code = "LMP-902"
    http_status = 503
