"""
Batch orchestrator for ledger classification.

Drives classification of many ledgers: external suggestions first (bounded
concurrency), arbitration, and local fallback through the cascading resolver.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Set

import structlog

from ledgermap.config import Settings, get_settings
from ledgermap.exceptions import ProviderUnavailableError, SuggestionProviderError
from ledgermap.models.ledger import LedgerRecord
from ledgermap.models.suggestion import BatchMode, BatchOutcome, BatchResult, Suggestion
from ledgermap.services.classifiers.arbitration import ArbitrationPolicy
from ledgermap.services.classifiers.cascade import CascadingResolver
from ledgermap.services.classifiers.llm_based import SuggestionProvider
from ledgermap.services.taxonomy_service import TaxonomyService

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class LedgerSuggestion:
    """Applied suggestion for one ledger with the candidates considered."""

    applied: Optional[Suggestion]
    ai_suggestion: Optional[Suggestion]
    local_suggestion: Optional[Suggestion]
    external_error: Optional[str] = None


class _ProgressReporter:
    """Reports completed/total exactly once per finished ledger."""

    def __init__(self, total: int, callback: Optional[ProgressCallback]):
        self._total = total
        self._completed = 0
        self._callback = callback

    def advance(self) -> None:
        self._completed += 1
        if self._callback is not None:
            self._callback(self._completed, self._total)


class BatchOrchestrator:
    """
    Service for classifying batches of ledgers.

    Features:
    - External suggestions with bounded concurrency
    - Output order matches input order regardless of completion order
    - Error isolation (one failed request doesn't stop the batch)
    - Batch-wide switch to local resolution when the external channel is down
    """

    def __init__(
        self,
        provider: Optional[SuggestionProvider] = None,
        resolver: Optional[CascadingResolver] = None,
        policy: Optional[ArbitrationPolicy] = None,
        settings: Optional[Settings] = None,
        max_concurrency: Optional[int] = None,
    ):
        """
        Initialize batch orchestrator.

        Args:
            provider: External suggestion provider (None disables it).
            resolver: Cascading resolver for local suggestions.
            policy: Arbitration policy.
            settings: Application settings.
            max_concurrency: Maximum concurrent provider calls.
        """
        self._settings = settings or get_settings()
        self._provider = provider
        self._resolver = resolver or CascadingResolver(self._settings)
        self._policy = policy or ArbitrationPolicy(self._settings)
        self._max_concurrency = max_concurrency or self._settings.batch_concurrency

    @property
    def has_provider(self) -> bool:
        return self._provider is not None

    async def classify_batch(
        self,
        ledgers: Sequence[LedgerRecord],
        taxonomy: TaxonomyService,
        use_external: bool = True,
        use_fuzzy_fallback: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """
        Classify a batch of ledgers.

        Args:
            ledgers: Ledgers to classify.
            taxonomy: Taxonomy snapshot, read-only for the whole batch.
            use_external: Ask the external provider for each ledger.
            use_fuzzy_fallback: Use the cascading resolver when the external
                suggestion is missing, rejected or unavailable.
            on_progress: Called with (completed, total) after each ledger.

        Returns:
            BatchResult with one outcome per ledger, in input order.
        """
        start_time = time.time()
        progress = _ProgressReporter(len(ledgers), on_progress)

        logger.info(
            "Batch classification started",
            total=len(ledgers),
            use_external=use_external,
            use_fuzzy_fallback=use_fuzzy_fallback,
        )

        if use_external and self._provider is not None:
            result = await self._classify_external(
                ledgers, taxonomy, use_fuzzy_fallback, progress
            )
        else:
            result = self._classify_local(ledgers, taxonomy, use_fuzzy_fallback, progress)
            if use_external:
                logger.warning("External suggestions requested but no provider configured")
                result.mode = (
                    BatchMode.EXTERNAL_FAILED_FALLBACK
                    if use_fuzzy_fallback
                    else BatchMode.EXTERNAL_FAILED_NO_FALLBACK
                )
                result.notes.append("No external suggestion provider configured")

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            "Batch classification completed",
            time_ms=round(processing_time, 2),
            **result.summary(),
        )
        return result

    def _classify_local(
        self,
        ledgers: Sequence[LedgerRecord],
        taxonomy: TaxonomyService,
        use_fuzzy_fallback: bool,
        progress: _ProgressReporter,
    ) -> BatchResult:
        outcomes = []
        for ledger in ledgers:
            outcomes.append(self._local_outcome(ledger, taxonomy, use_fuzzy_fallback))
            progress.advance()

        mode = BatchMode.LOCAL_ONLY if use_fuzzy_fallback else BatchMode.DISABLED
        return BatchResult(outcomes=outcomes, mode=mode)

    async def _classify_external(
        self,
        ledgers: Sequence[LedgerRecord],
        taxonomy: TaxonomyService,
        use_fuzzy_fallback: bool,
        progress: _ProgressReporter,
    ) -> BatchResult:
        outcomes: List[Optional[BatchOutcome]] = [None] * len(ledgers)
        resolved_after_failure: Set[int] = set()
        result = BatchResult(outcomes=[], mode=BatchMode.EXTERNAL)
        channel_error: Optional[str] = None

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def process_ledger(index: int, ledger: LedgerRecord) -> None:
            nonlocal channel_error
            async with semaphore:
                ai_suggestion = None
                if channel_error is None:
                    try:
                        ai_suggestion = await self._provider.get_suggestion(
                            ledger.name, ledger.balance_current_period, taxonomy
                        )
                    except ProviderUnavailableError as e:
                        if channel_error is None:
                            channel_error = e.message
                            logger.error(
                                "External channel failed, switching batch to local resolution",
                                ledger=ledger.name,
                                error=e.message,
                                fallback=use_fuzzy_fallback,
                            )
                    except SuggestionProviderError as e:
                        result.provider_errors += 1
                        logger.warning(
                            "External suggestion failed", ledger=ledger.name, error=e.message
                        )
                    except Exception as e:
                        result.provider_errors += 1
                        logger.warning(
                            "External suggestion failed",
                            ledger=ledger.name,
                            error=str(e),
                            error_type=type(e).__name__,
                        )

                if channel_error is None:
                    outcomes[index] = BatchOutcome(
                        ledger_name=ledger.name,
                        suggestion=self._arbitrate(
                            ledger, ai_suggestion, taxonomy, use_fuzzy_fallback, result
                        ),
                    )
                else:
                    outcomes[index] = self._local_outcome(ledger, taxonomy, use_fuzzy_fallback)
                    resolved_after_failure.add(index)

                progress.advance()

        await asyncio.gather(*(
            process_ledger(index, ledger) for index, ledger in enumerate(ledgers)
        ))

        if channel_error is not None:
            # Ledgers finished before the failure are redone locally so the
            # whole batch is classified the same way
            for index, ledger in enumerate(ledgers):
                if index not in resolved_after_failure:
                    outcomes[index] = self._local_outcome(ledger, taxonomy, use_fuzzy_fallback)
            result.mode = (
                BatchMode.EXTERNAL_FAILED_FALLBACK
                if use_fuzzy_fallback
                else BatchMode.EXTERNAL_FAILED_NO_FALLBACK
            )
            result.notes.append(f"External channel failed: {channel_error}")

        result.outcomes = list(outcomes)
        return result

    def _arbitrate(
        self,
        ledger: LedgerRecord,
        ai_suggestion: Optional[Suggestion],
        taxonomy: TaxonomyService,
        use_fuzzy_fallback: bool,
        result: BatchResult,
    ) -> Optional[Suggestion]:
        applied = self._policy.evaluate_ai(ledger.name, ai_suggestion, taxonomy)
        if applied is not None:
            return applied

        if ai_suggestion is not None:
            result.rejected_ai_suggestions += 1

        if not use_fuzzy_fallback:
            return None
        return self._policy.evaluate_fuzzy(
            ledger.name, self._resolver.resolve(ledger.name, taxonomy)
        )

    def _local_outcome(
        self,
        ledger: LedgerRecord,
        taxonomy: TaxonomyService,
        use_fuzzy_fallback: bool,
    ) -> BatchOutcome:
        suggestion = None
        if use_fuzzy_fallback:
            suggestion = self._policy.evaluate_fuzzy(
                ledger.name, self._resolver.resolve(ledger.name, taxonomy)
            )
        return BatchOutcome(ledger_name=ledger.name, suggestion=suggestion)

    async def suggest(
        self,
        ledger: LedgerRecord,
        taxonomy: TaxonomyService,
        use_external: bool = True,
    ) -> LedgerSuggestion:
        """
        Classify a single ledger, keeping both candidates for display.

        Args:
            ledger: Ledger to classify.
            taxonomy: Taxonomy snapshot.
            use_external: Ask the external provider.

        Returns:
            LedgerSuggestion with the applied suggestion and both candidates.
        """
        ai_suggestion = None
        external_error = None

        if use_external and self._provider is not None:
            try:
                ai_suggestion = await self._provider.get_suggestion(
                    ledger.name, ledger.balance_current_period, taxonomy
                )
            except SuggestionProviderError as e:
                external_error = e.message
                logger.warning("External suggestion failed", ledger=ledger.name, error=e.message)
            except Exception as e:
                external_error = str(e)
                logger.warning(
                    "External suggestion failed",
                    ledger=ledger.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        local_suggestion = self._resolver.resolve(ledger.name, taxonomy)
        applied = self._policy.decide(
            ledger.name,
            taxonomy,
            ai_suggestion=ai_suggestion,
            fuzzy_suggestion=local_suggestion,
        )

        return LedgerSuggestion(
            applied=applied,
            ai_suggestion=ai_suggestion,
            local_suggestion=local_suggestion,
            external_error=external_error,
        )


def get_batch_orchestrator(
    provider: Optional[SuggestionProvider] = None,
    max_concurrency: Optional[int] = None,
) -> BatchOrchestrator:
    """Get BatchOrchestrator instance."""
    return BatchOrchestrator(provider=provider, max_concurrency=max_concurrency)
