"""
Cascading resolver for local (fuzzy) ledger classification.

Implements an ordered strategy pipeline:
1. Grouping-first match → ancestors by parent links, optional line item
2. Minor Head fallback → best (or first) child Grouping, confidence × 0.9
3. Keyword-filtered Grouping match → confidence × 0.8

The first strategy that produces a suggestion wins; nothing is combined.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import structlog

from ledgermap.config import Settings, get_settings
from ledgermap.models.ledger import LedgerRecord
from ledgermap.models.suggestion import BatchOutcome, Suggestion, SuggestionSource
from ledgermap.models.taxonomy import TaxonomyLevel, TaxonomyNode
from ledgermap.services.classifiers.fuzzy_matcher import FuzzyMatcher
from ledgermap.services.classifiers.keywords import keywords_of
from ledgermap.services.taxonomy_service import TaxonomyService

logger = structlog.get_logger(__name__)


class ResolutionStrategy(ABC):
    """One step of the cascade."""

    name: str = "strategy"

    def __init__(self, settings: Optional[Settings] = None, matcher: Optional[FuzzyMatcher] = None):
        self._settings = settings or get_settings()
        self._matcher = matcher or FuzzyMatcher(keyword_bonus=self._settings.keyword_bonus)

    @abstractmethod
    def attempt(self, name: str, taxonomy: TaxonomyService) -> Optional[Suggestion]:
        """Try to classify a ledger name; None if this strategy does not apply."""

    def _resolve_grouping(
        self, grouping: TaxonomyNode, taxonomy: TaxonomyService
    ) -> Optional[Tuple[TaxonomyNode, TaxonomyNode]]:
        """Return (major, minor) for a grouping, None if its chain is broken."""
        chain = taxonomy.ancestors(grouping)
        if chain is None:
            logger.warning(
                "Discarding match with unknown ancestor",
                strategy=self.name,
                grouping=grouping.code,
                parent=grouping.parent_code,
            )
            return None
        return chain[TaxonomyLevel.MAJOR_HEAD], chain[TaxonomyLevel.MINOR_HEAD]


class GroupingFirstStrategy(ResolutionStrategy):
    """Match directly against every Grouping, then refine to a Line Item."""

    name = "grouping_first"

    def attempt(self, name: str, taxonomy: TaxonomyService) -> Optional[Suggestion]:
        match = self._matcher.best_match(
            name,
            taxonomy.nodes(TaxonomyLevel.GROUPING),
            self._settings.grouping_match_threshold,
        )
        if match is None or match.confidence < self._settings.grouping_accept_floor:
            return None

        resolved = self._resolve_grouping(match.node, taxonomy)
        if resolved is None:
            return None
        major, minor = resolved

        line_items = taxonomy.children(match.node)
        line_item_match = self._matcher.best_match(
            name, line_items, self._settings.line_item_match_threshold
        ) if line_items else None

        rationale = f'Fuzzy matched to "{match.node.name}" with {match.similarity_pct} similarity'
        if line_item_match:
            rationale += f' and line item "{line_item_match.node.name}"'

        return Suggestion(
            major_head_code=major.code,
            minor_head_code=minor.code,
            grouping_code=match.node.code,
            line_item_code=line_item_match.node.code if line_item_match else None,
            confidence=match.confidence,
            rationale=rationale,
            source=SuggestionSource.FUZZY,
        )


class MinorHeadFallbackStrategy(ResolutionStrategy):
    """Match against Minor Heads and pick a Grouping underneath."""

    name = "minor_head_fallback"

    def attempt(self, name: str, taxonomy: TaxonomyService) -> Optional[Suggestion]:
        match = self._matcher.best_match(
            name,
            taxonomy.nodes(TaxonomyLevel.MINOR_HEAD),
            self._settings.minor_head_match_threshold,
        )
        if match is None or match.confidence < self._settings.minor_head_accept_floor:
            return None

        minor = match.node
        major = taxonomy.parent(minor)
        if major is None:
            logger.warning(
                "Discarding match with unknown ancestor",
                strategy=self.name,
                minor_head=minor.code,
                parent=minor.parent_code,
            )
            return None

        groupings = taxonomy.children(minor)
        if not groupings:
            logger.debug("Minor head has no groupings", minor_head=minor.code)
            return None

        grouping_match = self._matcher.best_match(
            name, groupings, self._settings.minor_head_grouping_threshold
        )
        grouping = grouping_match.node if grouping_match else groupings[0]

        return Suggestion(
            major_head_code=major.code,
            minor_head_code=minor.code,
            grouping_code=grouping.code,
            confidence=match.confidence * self._settings.minor_head_confidence_scale,
            rationale=(
                f'Fuzzy matched to minor head "{minor.name}" with '
                f'{match.similarity_pct} similarity; grouping "{grouping.name}"'
            ),
            source=SuggestionSource.FUZZY,
        )


class KeywordFallbackStrategy(ResolutionStrategy):
    """Match against Groupings sharing a keyword category, with a lower bar."""

    name = "keyword_fallback"

    def attempt(self, name: str, taxonomy: TaxonomyService) -> Optional[Suggestion]:
        ledger_keywords = keywords_of(name)
        if not ledger_keywords:
            return None

        candidates = [
            g for g in taxonomy.nodes(TaxonomyLevel.GROUPING)
            if ledger_keywords & keywords_of(g.name)
        ]
        if not candidates:
            return None

        match = self._matcher.best_match(name, candidates, self._settings.keyword_match_threshold)
        if match is None:
            return None

        resolved = self._resolve_grouping(match.node, taxonomy)
        if resolved is None:
            return None
        major, minor = resolved

        detected = ", ".join(sorted(k.value for k in ledger_keywords))
        return Suggestion(
            major_head_code=major.code,
            minor_head_code=minor.code,
            grouping_code=match.node.code,
            confidence=match.confidence * self._settings.keyword_confidence_scale,
            rationale=f'Keyword-based match to "{match.node.name}" (detected: {detected})',
            source=SuggestionSource.KEYWORD,
        )


class CascadingResolver:
    """
    Resolver running classification strategies in priority order.

    Strategies share the attempt(name, taxonomy) contract, so adding one is a
    matter of passing a longer list.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        strategies: Optional[Sequence[ResolutionStrategy]] = None,
    ):
        """
        Initialize cascading resolver.

        Args:
            settings: Settings carrying thresholds; defaults to global settings.
            strategies: Ordered strategies; defaults to the standard cascade.
        """
        self._settings = settings or get_settings()
        if strategies is None:
            matcher = FuzzyMatcher(keyword_bonus=self._settings.keyword_bonus)
            strategies = [
                GroupingFirstStrategy(self._settings, matcher),
                MinorHeadFallbackStrategy(self._settings, matcher),
                KeywordFallbackStrategy(self._settings, matcher),
            ]
        self._strategies: List[ResolutionStrategy] = list(strategies)

    @property
    def strategies(self) -> List[ResolutionStrategy]:
        return list(self._strategies)

    def resolve(self, name: str, taxonomy: TaxonomyService) -> Optional[Suggestion]:
        """
        Produce the best local suggestion for a ledger name.

        Args:
            name: Ledger name.
            taxonomy: Taxonomy snapshot.

        Returns:
            Suggestion from the first strategy that succeeds, or None.
        """
        if not name or not name.strip():
            return None

        for strategy in self._strategies:
            suggestion = strategy.attempt(name, taxonomy)
            if suggestion is not None:
                logger.debug(
                    "Ledger resolved locally",
                    ledger=name,
                    strategy=strategy.name,
                    grouping=suggestion.grouping_code,
                    confidence=round(suggestion.confidence, 4),
                )
                return suggestion

        logger.debug("No local match", ledger=name)
        return None

    def auto_map_batch(
        self,
        ledgers: Sequence[LedgerRecord],
        taxonomy: TaxonomyService,
        min_confidence: Optional[float] = None,
    ) -> List[BatchOutcome]:
        """
        Resolve many ledgers, keeping only confident suggestions.

        Args:
            ledgers: Ledgers to classify.
            taxonomy: Taxonomy snapshot.
            min_confidence: Floor for keeping a suggestion; defaults to the
                fuzzy acceptance floor.

        Returns:
            One BatchOutcome per ledger, in input order.
        """
        floor = self._settings.fuzzy_accept_floor if min_confidence is None else min_confidence
        outcomes = []
        for ledger in ledgers:
            suggestion = self.resolve(ledger.name, taxonomy)
            if suggestion is not None and suggestion.confidence < floor:
                suggestion = None
            outcomes.append(BatchOutcome(ledger_name=ledger.name, suggestion=suggestion))
        return outcomes


# Singleton instance
_resolver_instance: Optional[CascadingResolver] = None


def get_cascading_resolver() -> CascadingResolver:
    """Get singleton CascadingResolver instance."""
    global _resolver_instance
    if _resolver_instance is None:
        _resolver_instance = CascadingResolver()
    return _resolver_instance
