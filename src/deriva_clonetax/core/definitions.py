"""Shared definitions for deriva-clonetax modules.

This module holds the data models and enums that travel between the
taxonomy stores and the cloning code:

    - Term: a term read from a taxonomy
    - InsertedTerm: identifiers assigned to a newly inserted term
    - TraversalOrder: order in which source terms are cloned
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Term identifier used by all stores. Zero means "no parent".
TermId = int
ROOT_TERM_ID: TermId = 0


class BaseStrEnum(str, Enum):
    """Base class for string enums in Python 3.10"""

    pass


class TraversalOrder(BaseStrEnum):
    """Order in which the source terms are visited.

    Attributes:
        hierarchy: Breadth-first from the root terms, siblings by ascending
            term id. Every parent is cloned before its children.
        term_id: Ascending source term id. A child whose id is lower than its
            parent's is cloned before the parent and therefore lands at the root.
    """

    hierarchy = "hierarchy"
    term_id = "term_id"


class Term(BaseModel):
    """A term in a taxonomy.

    Attributes:
        term_id: Identifier of the term, unique within the store.
        name: Display name of the term.
        slug: URL-safe name, unique within the taxonomy.
        description: Free text description.
        parent: term_id of the parent term, 0 for root terms.
        taxonomy: Name of the taxonomy the term belongs to.
        term_taxonomy_id: Identifier of the term within its taxonomy, if the store has one.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    term_id: TermId
    name: str
    slug: str
    description: str = ""
    parent: TermId = ROOT_TERM_ID
    taxonomy: str
    term_taxonomy_id: int | None = Field(default=None)

    @property
    def is_root(self) -> bool:
        return self.parent == ROOT_TERM_ID


class InsertedTerm(BaseModel):
    """Identifiers assigned by a store to a newly inserted term."""

    model_config = ConfigDict(frozen=True)

    term_id: TermId
    term_taxonomy_id: int


__all__ = [
    "TermId",
    "ROOT_TERM_ID",
    "BaseStrEnum",
    "TraversalOrder",
    "Term",
    "InsertedTerm",
]
