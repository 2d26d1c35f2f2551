"""Per-run state of a taxonomy clone.

A CloneContext is created at the start of every run and owned by the cloner
for the duration of that run. It carries the source to target term id map and
the statistics, and is handed explicitly to the meta and relationship cloners.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Iterator

from deriva_clonetax.core.definitions import ROOT_TERM_ID, TermId


class TermIdMap:
    """Maps source term ids to the ids of their clones in the target taxonomy."""

    def __init__(self):
        self._map: dict[TermId, TermId] = {}

    def add(self, source_id: TermId, target_id: TermId) -> None:
        self._map[source_id] = target_id

    def resolve_parent(self, source_parent: TermId) -> TermId:
        """Target id for a source parent id, or the root id if the parent has not been cloned."""
        return self._map.get(source_parent, ROOT_TERM_ID)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._map

    def __getitem__(self, source_id: TermId) -> TermId:
        return self._map[source_id]

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[TermId]:
        return iter(self._map)

    def items(self):
        return self._map.items()


@dataclass
class CloneStats:
    """Counters of a clone run. They only ever go up.

    Attributes:
        terms: Terms cloned.
        meta_pairs: Meta keys processed, skipped ones included.
        meta_values: Meta values copied.
        meta_values_skipped: Meta values not copied because their key is skipped.
        post_relationships: Post relationships added to target terms.
    """

    terms: int = 0
    meta_pairs: int = 0
    meta_values: int = 0
    meta_values_skipped: int = 0
    post_relationships: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Return the statistics as a formatted JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def summary(self) -> str:
        return (
            f"Done! Cloned {self.terms} terms, with {self.meta_values} meta values copied "
            f"and {self.meta_values_skipped} skipped (total {self.meta_pairs}) "
            f"and {self.post_relationships} post relationships duplicated."
        )

    def __str__(self) -> str:
        return self.summary()


@dataclass
class CloneContext:
    """Everything one clone run reads and accumulates."""

    source_taxonomy: str
    target_taxonomy: str
    post_type: str
    skip_meta_keys: frozenset[str] = frozenset()
    term_map: TermIdMap = field(default_factory=TermIdMap)
    stats: CloneStats = field(default_factory=CloneStats)

    def describe(self) -> dict[str, Any]:
        return {
            "source_taxonomy": self.source_taxonomy,
            "target_taxonomy": self.target_taxonomy,
            "post_type": self.post_type,
            "skip_meta_keys": sorted(self.skip_meta_keys),
            "terms_mapped": len(self.term_map),
        }
