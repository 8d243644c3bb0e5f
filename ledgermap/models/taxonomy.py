"""
Reporting taxonomy data structures.

The statutory taxonomy is a four-level tree:
Major Head → Minor Head → Grouping → Line Item.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TaxonomyLevel(str, Enum):
    """Levels of the reporting taxonomy, root first."""
    MAJOR_HEAD = "major_head"
    MINOR_HEAD = "minor_head"
    GROUPING = "grouping"
    LINE_ITEM = "line_item"

    @property
    def parent_level(self) -> Optional["TaxonomyLevel"]:
        """Level of this level's parent, None for Major Head."""
        return _PARENT_LEVEL[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


_PARENT_LEVEL = {
    TaxonomyLevel.MAJOR_HEAD: None,
    TaxonomyLevel.MINOR_HEAD: TaxonomyLevel.MAJOR_HEAD,
    TaxonomyLevel.GROUPING: TaxonomyLevel.MINOR_HEAD,
    TaxonomyLevel.LINE_ITEM: TaxonomyLevel.GROUPING,
}

# Key naming used by the taxonomy source payloads
LEVEL_COLLECTION_KEYS = {
    TaxonomyLevel.MAJOR_HEAD: "majorHeads",
    TaxonomyLevel.MINOR_HEAD: "minorHeads",
    TaxonomyLevel.GROUPING: "groupings",
    TaxonomyLevel.LINE_ITEM: "lineItems",
}

PARENT_CODE_KEYS = {
    TaxonomyLevel.MINOR_HEAD: "majorHeadCode",
    TaxonomyLevel.GROUPING: "minorHeadCode",
    TaxonomyLevel.LINE_ITEM: "groupingCode",
}


@dataclass(frozen=True)
class TaxonomyNode:
    """A single node of the reporting taxonomy."""
    code: str
    name: str
    level: TaxonomyLevel
    parent_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "name": self.name}
        parent_key = PARENT_CODE_KEYS.get(self.level)
        if parent_key:
            data[parent_key] = self.parent_code
        return data
