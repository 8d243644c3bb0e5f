"""
Suggestion and batch result structures.

A Suggestion is transient: produced per classification attempt and consumed
by the arbitration policy. Only the applied codes ever reach a LedgerRecord.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SuggestionSource(str, Enum):
    """Provenance of a suggestion."""
    AI = "ai"            # External suggestion provider
    FUZZY = "fuzzy"      # String-similarity cascade
    KEYWORD = "keyword"  # Lexical fallback


class BatchMode(str, Enum):
    """How a batch was classified."""
    EXTERNAL = "external"
    LOCAL_ONLY = "local_only"
    EXTERNAL_FAILED_FALLBACK = "external_failed_fallback"
    EXTERNAL_FAILED_NO_FALLBACK = "external_failed_no_fallback"
    DISABLED = "disabled"


@dataclass(frozen=True)
class Suggestion:
    """A proposed taxonomy mapping for one ledger."""
    major_head_code: Optional[str]
    minor_head_code: Optional[str]
    grouping_code: Optional[str]
    confidence: float
    rationale: str
    source: SuggestionSource
    line_item_code: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.source in (SuggestionSource.FUZZY, SuggestionSource.KEYWORD)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "major_head_code": self.major_head_code,
            "minor_head_code": self.minor_head_code,
            "grouping_code": self.grouping_code,
            "line_item_code": self.line_item_code,
            "confidence": round(self.confidence, 4),
            "rationale": self.rationale,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class BatchOutcome:
    """Classification outcome for one ledger of a batch."""
    ledger_name: str
    suggestion: Optional[Suggestion] = None


@dataclass
class BatchResult:
    """
    Result of a batch classification.

    Counts are derived from the outcomes so that
    ai_mapped + fuzzy_mapped + unmapped == total always holds.
    """
    outcomes: List[BatchOutcome]
    mode: BatchMode
    provider_errors: int = 0
    rejected_ai_suggestions: int = 0
    notes: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def ai_mapped(self) -> int:
        return sum(
            1 for o in self.outcomes
            if o.suggestion is not None and o.suggestion.source == SuggestionSource.AI
        )

    @property
    def fuzzy_mapped(self) -> int:
        return sum(
            1 for o in self.outcomes
            if o.suggestion is not None and o.suggestion.is_local
        )

    @property
    def unmapped(self) -> int:
        return sum(1 for o in self.outcomes if o.suggestion is None)

    def summary(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "total": self.total,
            "ai_mapped": self.ai_mapped,
            "fuzzy_mapped": self.fuzzy_mapped,
            "unmapped": self.unmapped,
            "provider_errors": self.provider_errors,
            "rejected_ai_suggestions": self.rejected_ai_suggestions,
        }
