"""
Ledger record model.

Records are owned by the calling application. The engine only proposes
codes; committing a record to the Mapped state goes through with_mapping(),
which returns a new record and leaves the original untouched.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ledgermap.exceptions import MappingError
from ledgermap.models.suggestion import Suggestion

if TYPE_CHECKING:
    from ledgermap.services.taxonomy_service import TaxonomyService


class MappingState(str, Enum):
    """Persisted mapping state of a ledger."""
    UNMAPPED = "unmapped"
    MAPPED = "mapped"


@dataclass(frozen=True)
class LedgerRecord:
    """
    A trial balance ledger awaiting (or holding) a classification.

    Direct construction only checks that a Mapped record carries its codes.
    It does not check them against a taxonomy or against each other; records
    are mapped consistently only through with_mapping().
    """
    id: str
    name: str
    balance_current_period: Decimal
    balance_previous_period: Optional[Decimal] = None
    mapping_state: MappingState = MappingState.UNMAPPED
    major_head_code: Optional[str] = None
    minor_head_code: Optional[str] = None
    grouping_code: Optional[str] = None
    line_item_code: Optional[str] = None

    def __post_init__(self):
        codes = (
            self.major_head_code,
            self.minor_head_code,
            self.grouping_code,
            self.line_item_code,
        )
        if self.mapping_state == MappingState.UNMAPPED and any(codes):
            raise MappingError(
                "Unmapped ledger cannot carry taxonomy codes",
                details={"ledger_id": self.id},
            )
        if self.mapping_state == MappingState.MAPPED and not all(codes[:3]):
            raise MappingError(
                "Mapped ledger requires major head, minor head and grouping codes",
                details={"ledger_id": self.id},
            )

    @property
    def is_mapped(self) -> bool:
        return self.mapping_state == MappingState.MAPPED

    def with_mapping(
        self, suggestion: Suggestion, taxonomy: "TaxonomyService"
    ) -> "LedgerRecord":
        """
        Return a copy of this record mapped to the suggested codes.

        Args:
            suggestion: Accepted suggestion to apply.
            taxonomy: Taxonomy the codes must be consistent with.

        Returns:
            New LedgerRecord in the Mapped state.

        Raises:
            MappingError: If the suggestion is not structurally valid.
        """
        from ledgermap.services.validators.suggestion_validator import (
            get_suggestion_validator,
        )

        outcome = get_suggestion_validator().validate(suggestion, taxonomy)
        if not outcome.accepted:
            raise MappingError(
                f"Cannot map ledger '{self.name}': {outcome.reason}",
                details={"ledger_id": self.id, "reason": outcome.reason},
            )

        return replace(
            self,
            mapping_state=MappingState.MAPPED,
            major_head_code=suggestion.major_head_code,
            minor_head_code=suggestion.minor_head_code,
            grouping_code=suggestion.grouping_code,
            line_item_code=suggestion.line_item_code or None,
        )

    def cleared(self) -> "LedgerRecord":
        """Return a copy of this record with its mapping removed."""
        return replace(
            self,
            mapping_state=MappingState.UNMAPPED,
            major_head_code=None,
            minor_head_code=None,
            grouping_code=None,
            line_item_code=None,
        )
