"""The TaxonomyStore protocol consumed by the cloning code.

A TaxonomyStore is the narrow set of operations the cloner needs from the
content store holding taxonomies, terms, term meta, posts and the relationships
between posts and terms. Every call is a blocking, self-contained operation;
the cloner does not manage transactions across calls.

Implementations:

- InMemoryTaxonomyStore: dictionaries, for tests and scripted runs
- SQLTaxonomyStore: WordPress-style relational database via SQLAlchemy
- CatalogTaxonomyStore: Deriva ERMrest catalog via datapath
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol, runtime_checkable

from deriva_clonetax.core.definitions import InsertedTerm, Term, TermId


@runtime_checkable
class TaxonomyStore(Protocol):
    """Protocol for stores that hold taxonomies, term meta and post relationships."""

    def taxonomy_exists(self, taxonomy: str) -> bool:
        """Check whether a taxonomy is known to the store."""
        ...

    def post_type_exists(self, post_type: str) -> bool:
        """Check whether a post type is known to the store."""
        ...

    def count_terms(self, taxonomy: str, hide_empty: bool = False) -> int:
        """Count the terms of a taxonomy.

        Args:
            taxonomy: Taxonomy name.
            hide_empty: If True, terms without any post relationship are not counted.
        """
        ...

    def get_terms(self, taxonomy: str, hide_empty: bool = False) -> list[Term]:
        """List the terms of a taxonomy ordered by ascending term_id.

        Args:
            taxonomy: Taxonomy name.
            hide_empty: If True, terms without any post relationship are left out.
        """
        ...

    def insert_term(
        self,
        name: str,
        taxonomy: str,
        *,
        description: str = "",
        slug: str = "",
        parent: TermId = 0,
    ) -> InsertedTerm:
        """Insert a term into a taxonomy.

        Raises:
            TermInsertError: If the store rejects the term (duplicate slug, unknown parent, ...).
        """
        ...

    def get_term_meta(self, term_id: TermId) -> dict[str, list[Any]]:
        """Return all meta of a term as key -> values, values in insertion order.

        The SQL store keeps values as text: a number or structure reads back as
        the JSON text it was stored as.
        """
        ...

    def add_term_meta(self, term_id: TermId, key: str, value: Any, unique: bool = False) -> int:
        """Add one meta value to a term and return the new meta id.

        With unique=False an existing value under the same key is kept, so a key
        can hold several values.
        """
        ...

    def get_posts(
        self,
        post_type: str,
        taxonomy: str,
        term_id: TermId,
        include_children: bool = False,
    ) -> list[int]:
        """Return the ids of posts of post_type related to a term.

        Args:
            post_type: Only posts of this type are returned.
            taxonomy: Taxonomy of the term.
            term_id: Term to match.
            include_children: If True, posts related to descendants of the term match too.
        """
        ...

    def set_post_terms(
        self,
        post_id: int,
        term_ids: Iterable[TermId],
        taxonomy: str,
        append: bool = True,
    ) -> list[int]:
        """Relate a post to terms of a taxonomy.

        With append=True relationships the post already has are kept and adding
        an existing relationship is a no-op. Returns the term_taxonomy ids set.
        """
        ...
