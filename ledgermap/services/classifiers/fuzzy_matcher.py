"""
Candidate matcher for taxonomy nodes.

Scores a ledger name against the nodes of one taxonomy level using string
similarity, boosted when the ledger and the node share a keyword category.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from ledgermap.models.taxonomy import TaxonomyNode
from ledgermap.services.classifiers.keywords import keywords_of
from ledgermap.services.classifiers.similarity import similarity

logger = structlog.get_logger(__name__)

DEFAULT_KEYWORD_BONUS = 0.1


@dataclass(frozen=True)
class MatchResult:
    """Best candidate for a name at one taxonomy level."""

    node: TaxonomyNode
    raw_score: float
    confidence: float

    @property
    def similarity_pct(self) -> str:
        return f"{self.raw_score * 100:.0f}%"


class FuzzyMatcher:
    """
    Matcher combining edit-distance similarity with keyword hints.

    Eligibility is gated on the raw similarity only; the keyword bonus can
    raise a plausible match's confidence but never admits a poor one.
    """

    def __init__(self, keyword_bonus: float = DEFAULT_KEYWORD_BONUS):
        """
        Initialize fuzzy matcher.

        Args:
            keyword_bonus: Confidence added when keyword categories overlap.
        """
        self._keyword_bonus = keyword_bonus

    def best_match(
        self,
        name: str,
        candidates: Sequence[TaxonomyNode],
        threshold: float,
    ) -> Optional[MatchResult]:
        """
        Find the best-scoring candidate whose raw similarity meets the threshold.

        Args:
            name: Ledger name to match.
            candidates: Taxonomy nodes of a single level.
            threshold: Minimum raw similarity for eligibility.

        Returns:
            MatchResult for the highest confidence candidate (first one wins
            ties), or None if no candidate is eligible.
        """
        if not name or not candidates:
            return None

        ledger_keywords = keywords_of(name)
        best: Optional[MatchResult] = None

        for node in candidates:
            raw_score = similarity(name, node.name)
            if raw_score < threshold:
                continue

            bonus = self._keyword_bonus if ledger_keywords & keywords_of(node.name) else 0.0
            confidence = min(1.0, raw_score + bonus)

            if best is None or confidence > best.confidence:
                best = MatchResult(node=node, raw_score=raw_score, confidence=confidence)

        if best is not None:
            logger.debug(
                "Fuzzy match found",
                name=name,
                code=best.node.code,
                level=best.node.level.value,
                raw_score=round(best.raw_score, 4),
                confidence=round(best.confidence, 4),
            )
        return best


def best_match(
    name: str,
    candidates: Sequence[TaxonomyNode],
    threshold: float,
    keyword_bonus: float = DEFAULT_KEYWORD_BONUS,
) -> Optional[MatchResult]:
    """Convenience wrapper around FuzzyMatcher.best_match."""
    return FuzzyMatcher(keyword_bonus=keyword_bonus).best_match(name, candidates, threshold)
