"""
Keyword hints for ledger names.

Tags a name with the broad accounting categories its wording suggests.
Tags are not mutually exclusive: "Commission" alone is ambiguous and is left
to other signals.
"""
import re
from enum import Enum
from typing import Dict, FrozenSet, Pattern, Tuple


class LedgerCategory(str, Enum):
    """Broad accounting category suggested by a ledger's wording."""
    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"
    EQUITY = "equity"


CATEGORY_TERMS: Dict[LedgerCategory, Tuple[str, ...]] = {
    LedgerCategory.ASSET: (
        "cash", "bank", "receivable", "debtor", "inventory", "stock", "asset",
        "equipment", "machinery", "building", "land", "vehicle",
    ),
    LedgerCategory.LIABILITY: (
        "payable", "creditor", "loan", "liability", "borrowing", "debt", "overdraft",
    ),
    LedgerCategory.INCOME: (
        "sales", "revenue", "income", "receipt", "earning", "profit", "gain",
        "commission received",
    ),
    LedgerCategory.EXPENSE: (
        "expense", "cost", "payment", "purchase", "salaries", "wages", "rent",
        "utility", "depreciation", "commission paid",
    ),
    LedgerCategory.EQUITY: (
        "capital", "equity", "reserve", "surplus", "retained",
    ),
}


def _compile(terms: Tuple[str, ...]) -> Pattern:
    alternation = "|".join(
        r"\s+".join(re.escape(word) for word in term.split()) for term in terms
    )
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


_PATTERNS: Dict[LedgerCategory, Pattern] = {
    category: _compile(terms) for category, terms in CATEGORY_TERMS.items()
}


def keywords_of(name: str) -> FrozenSet[LedgerCategory]:
    """
    Detect the categories a ledger name hints at.

    Args:
        name: Ledger or taxonomy node name.

    Returns:
        Set of matching categories (possibly empty).
    """
    if not name:
        return frozenset()
    return frozenset(
        category for category, pattern in _PATTERNS.items() if pattern.search(name)
    )
