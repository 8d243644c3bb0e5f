"""
Pytest configuration and fixtures.
"""
import asyncio
from decimal import Decimal
from typing import Callable, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from ledgermap.config import Settings, get_settings
from ledgermap.models.ledger import LedgerRecord
from ledgermap.models.suggestion import Suggestion, SuggestionSource
from ledgermap.services import taxonomy_service
from ledgermap.services.classifiers import cascade
from ledgermap.services.classifiers.llm_based import SuggestionProvider
from ledgermap.services.taxonomy_service import TaxonomyService
from ledgermap.services.validators import suggestion_validator


SAMPLE_TAXONOMY = {
    "majorHeads": [
        {"code": "EL", "name": "Equity and Liabilities"},
        {"code": "AS", "name": "Assets"},
        {"code": "IN", "name": "Income"},
        {"code": "EX", "name": "Expenses"},
    ],
    "minorHeads": [
        # "Current" and "Non-Current" exist under two Major Heads
        {"code": "EL-CL", "name": "Current", "majorHeadCode": "EL"},
        {"code": "AS-CA", "name": "Current", "majorHeadCode": "AS"},
        {"code": "EL-NCL", "name": "Non-Current", "majorHeadCode": "EL"},
        {"code": "AS-NCA", "name": "Non-Current", "majorHeadCode": "AS"},
        {"code": "IN-OI", "name": "Other Income", "majorHeadCode": "IN"},
        {"code": "EX-OE", "name": "Other Expenses", "majorHeadCode": "EX"},
        {"code": "EX-EB", "name": "Employee Benefits", "majorHeadCode": "EX"},
    ],
    "groupings": [
        {"code": "EL-CL-TP", "name": "Trade Payables", "minorHeadCode": "EL-CL"},
        {"code": "AS-CA-TR", "name": "Trade Receivables", "minorHeadCode": "AS-CA"},
        {"code": "AS-CA-CASH", "name": "Cash and Cash Equivalents", "minorHeadCode": "AS-CA"},
        {"code": "AS-NCA-PPE", "name": "Property, Plant and Equipment", "minorHeadCode": "AS-NCA"},
        {"code": "EL-NCL-LTB", "name": "Long-Term Borrowings", "minorHeadCode": "EL-NCL"},
        {"code": "IN-OI-INT", "name": "Interest Income", "minorHeadCode": "IN-OI"},
        {"code": "IN-OI-COM", "name": "Commission Received", "minorHeadCode": "IN-OI"},
        {"code": "EX-OE-RENT", "name": "Rent Expense", "minorHeadCode": "EX-OE"},
        {"code": "EX-OE-COM", "name": "Commission Paid", "minorHeadCode": "EX-OE"},
        {"code": "EX-EB-SW", "name": "Salaries and Wages", "minorHeadCode": "EX-EB"},
        {"code": "EX-EB-STW", "name": "Staff Welfare", "minorHeadCode": "EX-EB"},
    ],
    "lineItems": [
        {"code": "LI-OFFICE", "name": "Office Rent", "groupingCode": "EX-OE-RENT"},
        {"code": "LI-WH", "name": "Warehouse Rent", "groupingCode": "EX-OE-RENT"},
        {"code": "LI-SAL", "name": "Salaries", "groupingCode": "EX-EB-SW"},
    ],
}

SCENARIO_TAXONOMY = {
    "majorHeads": [{"code": "Maj1", "name": "Expenses"}],
    "minorHeads": [{"code": "M1", "name": "Other Expenses", "majorHeadCode": "Maj1"}],
    "groupings": [{"code": "G1", "name": "Rent Expense", "minorHeadCode": "M1"}],
    "lineItems": [],
}


class FakeSuggestionProvider(SuggestionProvider):
    """In-memory provider answering from a name → result table."""

    name = "fake"

    def __init__(
        self,
        responses: Optional[Dict[str, object]] = None,
        default: object = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.responses = responses or {}
        self.default = default
        self.delays = delays or {}
        self.calls: List[str] = []

    async def get_suggestion(self, ledger_name, closing_balance, taxonomy):
        self.calls.append(ledger_name)
        delay = self.delays.get(ledger_name, 0)
        if delay:
            await asyncio.sleep(delay)
        result = self.responses.get(ledger_name, self.default)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset module-level singletons between tests."""
    get_settings.cache_clear()
    taxonomy_service._taxonomy_instance = None
    cascade._resolver_instance = None
    suggestion_validator._validator_instance = None
    yield
    get_settings.cache_clear()
    taxonomy_service._taxonomy_instance = None
    cascade._resolver_instance = None
    suggestion_validator._validator_instance = None


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the environment's .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_taxonomy() -> TaxonomyService:
    """Small taxonomy with shared Minor Head names under different Major Heads."""
    return TaxonomyService.from_dict(SAMPLE_TAXONOMY)


@pytest.fixture
def scenario_taxonomy() -> TaxonomyService:
    """Single-branch taxonomy: Expenses → Other Expenses → Rent Expense."""
    return TaxonomyService.from_dict(SCENARIO_TAXONOMY)


@pytest.fixture
def default_taxonomy(settings: Settings) -> TaxonomyService:
    """Bundled Schedule III taxonomy."""
    return TaxonomyService.from_yaml(settings.taxonomy_path)


@pytest.fixture
def make_suggestion() -> Callable[..., Suggestion]:
    """Factory for suggestions, valid against the sample taxonomy by default."""

    def _make(
        major: Optional[str] = "EX",
        minor: Optional[str] = "EX-OE",
        grouping: Optional[str] = "EX-OE-RENT",
        confidence: float = 0.95,
        source: SuggestionSource = SuggestionSource.AI,
        line_item: Optional[str] = None,
        rationale: str = "Rent paid for premises",
    ) -> Suggestion:
        return Suggestion(
            major_head_code=major,
            minor_head_code=minor,
            grouping_code=grouping,
            line_item_code=line_item,
            confidence=confidence,
            rationale=rationale,
            source=source,
        )

    return _make


@pytest.fixture
def make_ledgers() -> Callable[[List[str]], List[LedgerRecord]]:
    """Factory turning names into unmapped ledger records."""

    def _make(names: List[str], balance: Decimal = Decimal("1000.00")) -> List[LedgerRecord]:
        return [
            LedgerRecord(id=str(index), name=name, balance_current_period=balance)
            for index, name in enumerate(names)
        ]

    return _make


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client with no external suggestion provider."""
    from ledgermap.api.routes.classify import get_provider
    from ledgermap.main import app

    app.dependency_overrides[get_provider] = lambda: None

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
