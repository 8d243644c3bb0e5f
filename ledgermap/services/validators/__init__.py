"""Validators package."""
from ledgermap.services.validators.suggestion_validator import (
    SuggestionValidator,
    ValidationOutcome,
)

__all__ = ["SuggestionValidator", "ValidationOutcome"]
