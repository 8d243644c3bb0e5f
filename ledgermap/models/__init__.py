"""Models package."""
from ledgermap.models.taxonomy import TaxonomyLevel, TaxonomyNode
from ledgermap.models.suggestion import (
    BatchMode,
    BatchOutcome,
    BatchResult,
    Suggestion,
    SuggestionSource,
)
from ledgermap.models.ledger import LedgerRecord, MappingState

__all__ = [
    "TaxonomyLevel", "TaxonomyNode",
    "BatchMode", "BatchOutcome", "BatchResult", "Suggestion", "SuggestionSource",
    "LedgerRecord", "MappingState",
]
