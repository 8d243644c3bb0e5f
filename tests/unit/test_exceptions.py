"""
Unit tests for custom exceptions.

Tests exception hierarchy and error formatting.
"""
import pytest

from ledgermap.exceptions import (
    LedgerMapError,
    TaxonomyError,
    InvalidTaxonomyError,
    TaxonomyNodeNotFoundError,
    MappingError,
    ValidationError,
    ExternalServiceError,
    SuggestionProviderError,
    ProviderUnavailableError,
)


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    def test_base_exception(self):
        """Test base LedgerMapError."""
        exc = LedgerMapError("Test error")

        assert exc.error_code == "LMP-000"
        assert exc.message == "Test error"
        assert exc.http_status == 500

    def test_taxonomy_errors(self):
        """Test taxonomy errors inherit correctly."""
        exc = InvalidTaxonomyError("Duplicate code")

        assert isinstance(exc, TaxonomyError)
        assert isinstance(exc, LedgerMapError)
        assert exc.error_code == "LMP-101"
        assert exc.http_status == 422

    def test_node_not_found(self):
        """Test TaxonomyNodeNotFoundError message and details."""
        exc = TaxonomyNodeNotFoundError("Grouping", "G9")

        assert exc.message == "Grouping G9 not found"
        assert exc.details == {"level": "Grouping", "code": "G9"}
        assert exc.error_code == "LMP-102"

    def test_mapping_error(self):
        """Test MappingError."""
        exc = MappingError("Invalid mapping")

        assert exc.error_code == "LMP-300"
        assert exc.http_status == 400

    def test_validation_error_with_errors(self):
        """Test ValidationError carries field errors."""
        exc = ValidationError("Bad input", errors=["groupings must not be empty"])

        assert exc.details["errors"] == ["groupings must not be empty"]
        assert exc.error_code == "LMP-700"

    def test_provider_errors(self):
        """Test provider error hierarchy."""
        per_item = SuggestionProviderError("openai", message="bad answer")
        systemic = ProviderUnavailableError("openai", message="quota exceeded")

        assert isinstance(per_item, ExternalServiceError)
        assert isinstance(systemic, SuggestionProviderError)
        assert per_item.error_code == "LMP-901"
        assert systemic.error_code == "LMP-902"
        assert systemic.http_status == 503
        assert systemic.details["service"] == "openai"

    def test_external_service_default_message(self):
        """Test ExternalServiceError default message."""
        exc = ExternalServiceError("ollama")

        assert "ollama" in exc.message


class TestErrorFormatting:
    """Tests for error serialization."""

    def test_to_dict(self):
        """Test to_dict output."""
        exc = MappingError("Cannot map", details={"ledger_id": "7"})

        assert exc.to_dict() == {
            "error": True,
            "error_code": "LMP-300",
            "message": "Cannot map",
            "details": {"ledger_id": "7"},
        }

    def test_custom_error_code(self):
        """Test overriding the error code."""
        exc = LedgerMapError("Custom", error_code="LMP-555")

        assert exc.error_code == "LMP-555"

    def test_raise_and_catch_as_base(self):
        """Test catching subclasses as base."""
        with pytest.raises(LedgerMapError):
            raise InvalidTaxonomyError()
