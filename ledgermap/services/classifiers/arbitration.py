"""
Arbitration between external (AI) and local (fuzzy) suggestions.

Decision order:
1. AI suggestion → valid and confidence ≥ 0.85 → apply (source AI)
2. Local suggestion → confidence ≥ 0.55 → apply (source kept)
3. Otherwise → None, the ledger needs manual classification

There is no blending: a qualifying AI suggestion wins outright.
"""
from dataclasses import replace
from typing import Optional

import structlog

from ledgermap.config import Settings, get_settings
from ledgermap.models.suggestion import Suggestion, SuggestionSource
from ledgermap.services.taxonomy_service import TaxonomyService
from ledgermap.services.validators.suggestion_validator import (
    SuggestionValidator,
    get_suggestion_validator,
)

logger = structlog.get_logger(__name__)


class ArbitrationPolicy:
    """
    Policy deciding which suggestion, if any, is applied to a ledger.

    The AI and fuzzy bars are separate named settings; neither is derived
    from the other.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        validator: Optional[SuggestionValidator] = None,
    ):
        """
        Initialize arbitration policy.

        Args:
            settings: Settings carrying acceptance floors.
            validator: Validator for external suggestions.
        """
        self._settings = settings or get_settings()
        self._validator = validator or get_suggestion_validator()

    @property
    def ai_accept_floor(self) -> float:
        return self._settings.ai_accept_floor

    @property
    def fuzzy_accept_floor(self) -> float:
        return self._settings.fuzzy_accept_floor

    def evaluate_ai(
        self,
        ledger_name: str,
        suggestion: Optional[Suggestion],
        taxonomy: TaxonomyService,
    ) -> Optional[Suggestion]:
        """
        Return the external suggestion if it may be applied, else None.

        Invalid suggestions are logged and treated as absent.
        """
        if suggestion is None:
            return None

        outcome = self._validator.validate(suggestion, taxonomy)
        if not outcome.accepted:
            logger.warning(
                "Rejected invalid AI suggestion",
                ledger=ledger_name,
                reason=outcome.reason,
                grouping=suggestion.grouping_code,
            )
            return None

        if suggestion.confidence < self._settings.ai_accept_floor:
            logger.debug(
                "AI suggestion below acceptance floor",
                ledger=ledger_name,
                confidence=suggestion.confidence,
                floor=self._settings.ai_accept_floor,
            )
            return None

        if suggestion.source != SuggestionSource.AI:
            suggestion = replace(suggestion, source=SuggestionSource.AI)
        return suggestion

    def evaluate_fuzzy(
        self, ledger_name: str, suggestion: Optional[Suggestion]
    ) -> Optional[Suggestion]:
        """Return the local suggestion if it clears the fuzzy floor, else None."""
        if suggestion is None:
            return None
        if suggestion.confidence < self._settings.fuzzy_accept_floor:
            logger.debug(
                "Local suggestion below acceptance floor",
                ledger=ledger_name,
                confidence=round(suggestion.confidence, 4),
                floor=self._settings.fuzzy_accept_floor,
            )
            return None
        return suggestion

    def decide(
        self,
        ledger_name: str,
        taxonomy: TaxonomyService,
        ai_suggestion: Optional[Suggestion] = None,
        fuzzy_suggestion: Optional[Suggestion] = None,
    ) -> Optional[Suggestion]:
        """
        Pick the suggestion to apply to a ledger.

        Args:
            ledger_name: Ledger being classified (for diagnostics).
            taxonomy: Taxonomy used to validate the AI suggestion.
            ai_suggestion: Suggestion from the external provider.
            fuzzy_suggestion: Suggestion from the cascading resolver.

        Returns:
            Suggestion to apply, or None for manual classification.
        """
        accepted = self.evaluate_ai(ledger_name, ai_suggestion, taxonomy)
        if accepted is not None:
            return accepted
        return self.evaluate_fuzzy(ledger_name, fuzzy_suggestion)
