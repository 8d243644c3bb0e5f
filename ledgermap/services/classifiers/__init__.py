"""Classifiers package."""
from ledgermap.services.classifiers.similarity import similarity, levenshtein_distance
from ledgermap.services.classifiers.keywords import LedgerCategory, keywords_of
from ledgermap.services.classifiers.fuzzy_matcher import FuzzyMatcher, MatchResult
from ledgermap.services.classifiers.cascade import CascadingResolver
from ledgermap.services.classifiers.arbitration import ArbitrationPolicy
from ledgermap.services.classifiers.llm_based import (
    OllamaSuggestionProvider,
    OpenAISuggestionProvider,
    SuggestionProvider,
)

__all__ = [
    "similarity", "levenshtein_distance",
    "LedgerCategory", "keywords_of",
    "FuzzyMatcher", "MatchResult",
    "CascadingResolver", "ArbitrationPolicy",
    "SuggestionProvider", "OpenAISuggestionProvider", "OllamaSuggestionProvider",
]
