"""
Pydantic schemas for classification API endpoints.

Defines request and response models for single-ledger suggestions and batch
classification.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ledgermap.models.suggestion import BatchResult, Suggestion


class TaxonomyPayload(BaseModel):
    """Taxonomy snapshot in the source's four flat lists."""

    majorHeads: List[Dict[str, Any]] = Field(default_factory=list, description="Major Heads {code, name}")
    minorHeads: List[Dict[str, Any]] = Field(default_factory=list, description="Minor Heads {code, name, majorHeadCode}")
    groupings: List[Dict[str, Any]] = Field(default_factory=list, description="Groupings {code, name, minorHeadCode}")
    lineItems: List[Dict[str, Any]] = Field(default_factory=list, description="Line Items {code, name, groupingCode}")


class SuggestRequest(BaseModel):
    """Request model for a single ledger suggestion."""

    ledger_name: str = Field(..., description="Ledger name to classify", min_length=1)
    closing_balance: Decimal = Field(Decimal("0"), description="Current period closing balance")
    use_external: bool = Field(True, description="Ask the external suggestion provider")
    taxonomy: Optional[TaxonomyPayload] = Field(None, description="Taxonomy to use instead of the default")


class LedgerInput(BaseModel):
    """A ledger in a batch request."""

    name: str = Field(..., description="Ledger name", min_length=1)
    closing_balance: Decimal = Field(Decimal("0"), description="Current period closing balance")


class ClassifyBatchRequest(BaseModel):
    """Request model for batch classification."""

    ledgers: List[LedgerInput] = Field(..., description="Ledgers to classify", min_length=1, max_length=5000)
    use_external: bool = Field(True, description="Ask the external suggestion provider")
    use_fuzzy_fallback: bool = Field(True, description="Fall back to local fuzzy resolution")
    taxonomy: Optional[TaxonomyPayload] = Field(None, description="Taxonomy to use instead of the default")


class SuggestionResponse(BaseModel):
    """Response model for a suggestion."""

    major_head_code: Optional[str] = Field(None, description="Major Head code")
    minor_head_code: Optional[str] = Field(None, description="Minor Head code")
    grouping_code: Optional[str] = Field(None, description="Grouping code")
    line_item_code: Optional[str] = Field(None, description="Line Item code")
    confidence: float = Field(..., description="Suggestion confidence (0-1)")
    rationale: str = Field(..., description="Why this mapping was suggested")
    source: str = Field(..., description="ai, fuzzy or keyword")

    @classmethod
    def from_suggestion(cls, suggestion: Optional[Suggestion]) -> Optional["SuggestionResponse"]:
        if suggestion is None:
            return None
        return cls(**suggestion.to_dict())


class SuggestResponse(BaseModel):
    """Response model for a single ledger suggestion."""

    ledger_name: str = Field(..., description="Original ledger name")
    suggestion: Optional[SuggestionResponse] = Field(None, description="Suggestion to apply, if any")
    ai_suggestion: Optional[SuggestionResponse] = Field(None, description="Raw external suggestion")
    local_suggestion: Optional[SuggestionResponse] = Field(None, description="Local cascade suggestion")
    external_error: Optional[str] = Field(None, description="External provider error, if any")


class BatchOutcomeResponse(BaseModel):
    """Response model for one batch outcome."""

    ledger_name: str = Field(..., description="Ledger name")
    suggestion: Optional[SuggestionResponse] = Field(None, description="Applied suggestion, if any")


class ClassifyBatchResponse(BaseModel):
    """Response model for batch classification."""

    outcomes: List[BatchOutcomeResponse] = Field(..., description="Outcomes in input order")
    mode: str = Field(..., description="How the batch was classified")
    total: int = Field(..., description="Total ledgers")
    ai_mapped: int = Field(..., description="Ledgers mapped from external suggestions")
    fuzzy_mapped: int = Field(..., description="Ledgers mapped by local resolution")
    unmapped: int = Field(..., description="Ledgers left for manual classification")
    notes: List[str] = Field(default_factory=list, description="Batch-level notes")

    @classmethod
    def from_result(cls, result: BatchResult) -> "ClassifyBatchResponse":
        return cls(
            outcomes=[
                BatchOutcomeResponse(
                    ledger_name=o.ledger_name,
                    suggestion=SuggestionResponse.from_suggestion(o.suggestion),
                )
                for o in result.outcomes
            ],
            mode=result.mode.value,
            total=result.total,
            ai_mapped=result.ai_mapped,
            fuzzy_mapped=result.fuzzy_mapped,
            unmapped=result.unmapped,
            notes=result.notes,
        )
