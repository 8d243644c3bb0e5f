"""
Classification API routes.

Provides endpoints for classifying trial balance ledgers.
"""
from typing import Optional

import structlog
from fastapi import APIRouter, Depends

from ledgermap.exceptions import ValidationError
from ledgermap.models.ledger import LedgerRecord
from ledgermap.schemas.classify import (
    ClassifyBatchRequest,
    ClassifyBatchResponse,
    SuggestionResponse,
    SuggestRequest,
    SuggestResponse,
    TaxonomyPayload,
)
from ledgermap.services.batch_processor import BatchOrchestrator
from ledgermap.services.classifiers.llm_based import (
    SuggestionProvider,
    get_suggestion_provider,
)
from ledgermap.services.taxonomy_service import TaxonomyService, get_taxonomy_service

logger = structlog.get_logger(__name__)

router = APIRouter()


def get_provider() -> Optional[SuggestionProvider]:
    """Dependency returning the configured external provider."""
    return get_suggestion_provider()


def get_orchestrator(
    provider: Optional[SuggestionProvider] = Depends(get_provider),
) -> BatchOrchestrator:
    """Dependency returning a batch orchestrator bound to the provider."""
    return BatchOrchestrator(provider=provider)


def _taxonomy_for(payload: Optional[TaxonomyPayload]) -> TaxonomyService:
    if payload is None:
        return get_taxonomy_service()

    errors = [
        f"{key} must not be empty"
        for key in ("majorHeads", "minorHeads", "groupings")
        if not getattr(payload, key)
    ]
    if errors:
        raise ValidationError("Supplied taxonomy is incomplete", errors=errors)

    return TaxonomyService.from_dict(payload.model_dump())


@router.post(
    "/classify/suggest",
    response_model=SuggestResponse,
    summary="Suggest a mapping for one ledger",
    description="Classify a single ledger against the reporting taxonomy.",
)
async def suggest_mapping(
    request: SuggestRequest,
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
) -> SuggestResponse:
    """
    Suggest a taxonomy mapping for a ledger.

    Args:
        request: Ledger name, balance and options.

    Returns:
        Applied suggestion plus the external and local candidates.
    """
    logger.info("Suggestion requested", ledger=request.ledger_name[:50], use_external=request.use_external)

    taxonomy = _taxonomy_for(request.taxonomy)
    ledger = LedgerRecord(
        id="0",
        name=request.ledger_name,
        balance_current_period=request.closing_balance,
    )

    result = await orchestrator.suggest(ledger, taxonomy, use_external=request.use_external)

    return SuggestResponse(
        ledger_name=request.ledger_name,
        suggestion=SuggestionResponse.from_suggestion(result.applied),
        ai_suggestion=SuggestionResponse.from_suggestion(result.ai_suggestion),
        local_suggestion=SuggestionResponse.from_suggestion(result.local_suggestion),
        external_error=result.external_error,
    )


@router.post(
    "/classify/batch",
    response_model=ClassifyBatchResponse,
    summary="Classify a batch of ledgers",
    description="Classify many ledgers with external suggestions and local fallback.",
)
async def classify_batch(
    request: ClassifyBatchRequest,
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
) -> ClassifyBatchResponse:
    """
    Classify a batch of ledgers.

    Args:
        request: Ledgers and batch options.

    Returns:
        Outcomes in input order with counts by source.
    """
    logger.info("Batch classification requested", count=len(request.ledgers))

    taxonomy = _taxonomy_for(request.taxonomy)
    ledgers = [
        LedgerRecord(id=str(index), name=item.name, balance_current_period=item.closing_balance)
        for index, item in enumerate(request.ledgers)
    ]

    result = await orchestrator.classify_batch(
        ledgers,
        taxonomy,
        use_external=request.use_external,
        use_fuzzy_fallback=request.use_fuzzy_fallback,
    )

    return ClassifyBatchResponse.from_result(result)
