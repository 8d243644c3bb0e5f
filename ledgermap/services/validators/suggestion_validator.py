"""
Structural validator for mapping suggestions.

Any suggestion coming from outside the engine must pass this check before it
can be applied: every code has to exist at its level and the
Major → Minor → Grouping (→ Line Item) chain has to be consistent.
"""
import math
from dataclasses import dataclass
from typing import Optional

from ledgermap.models.suggestion import Suggestion
from ledgermap.models.taxonomy import TaxonomyLevel
from ledgermap.services.taxonomy_service import TaxonomyService


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating a suggestion."""

    accepted: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationOutcome":
        return cls(accepted=False, reason=reason)


class SuggestionValidator:
    """
    Validator for suggestion structure against a taxonomy.

    Checks:
    1. Major Head, Minor Head and Grouping codes are present
    2. Each code exists at its expected level
    3. Minor Head's parent is the Major Head, Grouping's parent is the Minor Head
    4. Line Item, when present, exists and belongs to the Grouping
    5. Confidence is a number in [0, 1]
    """

    def validate(self, suggestion: Suggestion, taxonomy: TaxonomyService) -> ValidationOutcome:
        """
        Validate a suggestion.

        Args:
            suggestion: Suggestion to check.
            taxonomy: Taxonomy snapshot the codes must belong to.

        Returns:
            ValidationOutcome, with a reason when rejected.
        """
        missing = [
            field_name
            for field_name in ("major_head_code", "minor_head_code", "grouping_code")
            if not getattr(suggestion, field_name)
        ]
        if missing:
            return ValidationOutcome.rejected(f"Missing required codes: {', '.join(missing)}")

        confidence = suggestion.confidence
        if (
            isinstance(confidence, bool)
            or not isinstance(confidence, (int, float))
            or math.isnan(confidence)
            or not 0.0 <= confidence <= 1.0
        ):
            return ValidationOutcome.rejected(f"Confidence {confidence!r} is outside [0, 1]")

        major = taxonomy.get(TaxonomyLevel.MAJOR_HEAD, suggestion.major_head_code)
        if major is None:
            return ValidationOutcome.rejected(f"Unknown major head '{suggestion.major_head_code}'")

        minor = taxonomy.get(TaxonomyLevel.MINOR_HEAD, suggestion.minor_head_code)
        if minor is None:
            return ValidationOutcome.rejected(f"Unknown minor head '{suggestion.minor_head_code}'")

        grouping = taxonomy.get(TaxonomyLevel.GROUPING, suggestion.grouping_code)
        if grouping is None:
            return ValidationOutcome.rejected(f"Unknown grouping '{suggestion.grouping_code}'")

        if not taxonomy.is_child_of(minor, major):
            return ValidationOutcome.rejected(
                f"Minor head '{minor.code}' belongs to '{minor.parent_code}', "
                f"not major head '{major.code}'"
            )

        if not taxonomy.is_child_of(grouping, minor):
            return ValidationOutcome.rejected(
                f"Grouping '{grouping.code}' belongs to '{grouping.parent_code}', "
                f"not minor head '{minor.code}'"
            )

        if suggestion.line_item_code:
            line_item = taxonomy.get(TaxonomyLevel.LINE_ITEM, suggestion.line_item_code)
            if line_item is None:
                return ValidationOutcome.rejected(
                    f"Unknown line item '{suggestion.line_item_code}'"
                )
            if not taxonomy.is_child_of(line_item, grouping):
                return ValidationOutcome.rejected(
                    f"Line item '{line_item.code}' belongs to '{line_item.parent_code}', "
                    f"not grouping '{grouping.code}'"
                )

        return ValidationOutcome.ok()


# Singleton instance
_validator_instance: Optional[SuggestionValidator] = None


def get_suggestion_validator() -> SuggestionValidator:
    """Get singleton SuggestionValidator instance."""
    global _validator_instance
    if _validator_instance is None:
        _validator_instance = SuggestionValidator()
    return _validator_instance
