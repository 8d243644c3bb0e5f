"""
Taxonomy service for loading and querying the statutory reporting taxonomy.

Provides lookup by level and code, child listing and ancestor resolution over
an immutable snapshot built from four flat lists (Major Heads, Minor Heads,
Groupings, Line Items).
"""
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog
import yaml

from ledgermap.exceptions import (
    InvalidTaxonomyError,
    TaxonomyError,
    TaxonomyNodeNotFoundError,
)
from ledgermap.models.taxonomy import (
    LEVEL_COLLECTION_KEYS,
    PARENT_CODE_KEYS,
    TaxonomyLevel,
    TaxonomyNode,
)

logger = structlog.get_logger(__name__)


class TaxonomyService:
    """
    Read-only index over a reporting taxonomy snapshot.

    Nodes keep their source order within each level; "first child" always
    means first in that order.
    """

    def __init__(self, nodes: Iterable[TaxonomyNode]):
        """
        Initialize taxonomy index.

        Args:
            nodes: All taxonomy nodes, any level, in source order.

        Raises:
            InvalidTaxonomyError: On duplicate codes within a level or a
                missing parent code below Major Head.
        """
        self._nodes: Dict[TaxonomyLevel, Dict[str, TaxonomyNode]] = {
            level: {} for level in TaxonomyLevel
        }
        self._children: Dict[Tuple[TaxonomyLevel, str], List[TaxonomyNode]] = {}

        for node in nodes:
            self._add(node)

        dangling = self.dangling_nodes()
        if dangling:
            logger.warning(
                "Taxonomy has nodes with unknown parents",
                count=len(dangling),
                codes=[f"{n.level.value}:{n.code}" for n in dangling[:10]],
            )

    def _add(self, node: TaxonomyNode) -> None:
        level_index = self._nodes[node.level]
        if node.code in level_index:
            raise InvalidTaxonomyError(
                f"Duplicate {node.level.label} code '{node.code}'",
                details={"level": node.level.value, "code": node.code},
            )
        if node.level != TaxonomyLevel.MAJOR_HEAD and not node.parent_code:
            raise InvalidTaxonomyError(
                f"{node.level.label} '{node.code}' has no parent code",
                details={"level": node.level.value, "code": node.code},
            )

        level_index[node.code] = node
        if node.parent_code:
            key = (node.level.parent_level, node.parent_code)
            self._children.setdefault(key, []).append(node)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaxonomyService":
        """
        Build a taxonomy from the four flat lists of the taxonomy source.

        Args:
            data: Mapping with ``majorHeads``, ``minorHeads``, ``groupings``
                and ``lineItems`` lists; entries carry ``code``, ``name`` and
                the parent code key of their level.

        Returns:
            TaxonomyService instance.
        """
        if not isinstance(data, Mapping):
            raise InvalidTaxonomyError("Taxonomy data must be a mapping")

        nodes = []
        for level in TaxonomyLevel:
            entries = data.get(LEVEL_COLLECTION_KEYS[level]) or []
            if not isinstance(entries, list):
                raise InvalidTaxonomyError(
                    f"'{LEVEL_COLLECTION_KEYS[level]}' must be a list"
                )
            parent_key = PARENT_CODE_KEYS.get(level)
            for entry in entries:
                if not isinstance(entry, Mapping) or "code" not in entry:
                    raise InvalidTaxonomyError(
                        f"Malformed {level.label} entry",
                        details={"entry": str(entry)[:200]},
                    )
                parent_code = entry.get(parent_key) if parent_key else None
                nodes.append(TaxonomyNode(
                    code=str(entry["code"]),
                    name=str(entry.get("name", "")),
                    level=level,
                    parent_code=str(parent_code) if parent_code else None,
                ))

        return cls(nodes)

    @classmethod
    def from_yaml(cls, path: Path) -> "TaxonomyService":
        """
        Load a taxonomy from a YAML file.

        Args:
            path: Path to taxonomy YAML file.

        Returns:
            TaxonomyService instance.
        """
        logger.info("Loading taxonomy", path=str(path))

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load taxonomy", path=str(path), error=str(e))
            raise TaxonomyError(
                f"Failed to load taxonomy from {path}",
                details={"path": str(path), "error": str(e)},
            ) from e

        taxonomy = cls.from_dict(data)
        logger.info("Taxonomy loaded", path=str(path), **taxonomy.counts())
        return taxonomy

    def get(self, level: TaxonomyLevel, code: Optional[str]) -> Optional[TaxonomyNode]:
        """
        Get node by level and code.

        Returns:
            TaxonomyNode if found, None otherwise.
        """
        if not code:
            return None
        return self._nodes[level].get(code)

    def require(self, level: TaxonomyLevel, code: str) -> TaxonomyNode:
        """
        Get node by level and code, raising if it does not exist.

        Raises:
            TaxonomyNodeNotFoundError: If no node has this code at this level.
        """
        node = self.get(level, code)
        if node is None:
            raise TaxonomyNodeNotFoundError(level.label, code)
        return node

    def nodes(self, level: TaxonomyLevel) -> List[TaxonomyNode]:
        """Get all nodes of a level in source order."""
        return list(self._nodes[level].values())

    def children(self, node: TaxonomyNode) -> List[TaxonomyNode]:
        """Get direct children of a node in source order."""
        return list(self._children.get((node.level, node.code), []))

    def parent(self, node: TaxonomyNode) -> Optional[TaxonomyNode]:
        """Get a node's parent, None for Major Heads and dangling references."""
        if node.level.parent_level is None:
            return None
        return self.get(node.level.parent_level, node.parent_code)

    def ancestors(self, node: TaxonomyNode) -> Optional[Dict[TaxonomyLevel, TaxonomyNode]]:
        """
        Resolve the full chain from a node up to its Major Head.

        Args:
            node: Starting node (included in the result).

        Returns:
            Mapping of level to node for the node and every ancestor, or None
            if any link of the chain points at a missing parent.
        """
        chain = {node.level: node}
        current = node
        while current.level.parent_level is not None:
            parent = self.parent(current)
            if parent is None:
                return None
            chain[parent.level] = parent
            current = parent
        return chain

    def is_child_of(self, child: TaxonomyNode, parent: TaxonomyNode) -> bool:
        return (
            child.level.parent_level == parent.level
            and child.parent_code == parent.code
        )

    def dangling_nodes(self) -> List[TaxonomyNode]:
        """Nodes whose declared parent does not exist."""
        return [
            node
            for level in TaxonomyLevel
            if level.parent_level is not None
            for node in self._nodes[level].values()
            if self.parent(node) is None
        ]

    def counts(self) -> Dict[str, int]:
        return {level.value: len(self._nodes[level]) for level in TaxonomyLevel}

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Snapshot in the taxonomy source's flat-list shape."""
        return {
            LEVEL_COLLECTION_KEYS[level]: [n.to_dict() for n in self._nodes[level].values()]
            for level in TaxonomyLevel
        }

    @property
    def node_count(self) -> int:
        return sum(len(index) for index in self._nodes.values())


# Singleton instance
_taxonomy_instance: Optional[TaxonomyService] = None


def get_taxonomy_service() -> TaxonomyService:
    """Get singleton TaxonomyService loaded from the configured YAML file."""
    global _taxonomy_instance
    if _taxonomy_instance is None:
        from ledgermap.config import get_settings

        _taxonomy_instance = TaxonomyService.from_yaml(get_settings().taxonomy_path)
    return _taxonomy_instance
