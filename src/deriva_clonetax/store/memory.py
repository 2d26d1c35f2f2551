"""In-memory TaxonomyStore.

InMemoryTaxonomyStore keeps taxonomies, terms, term meta, posts and post
relationships in plain dictionaries. It applies the same insert rules as the
database backed stores, so clone runs against it behave like real runs.

Example:
    store = InMemoryTaxonomyStore(taxonomies=["category", "topic"], post_types=["post"])
    news = store.add_term("News", "category")
    post_id = store.add_post("post", "Hello")
    store.set_post_terms(post_id, [news.term_id], "category")
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from itertools import count
from typing import Any, Iterable

from deriva_clonetax.core.definitions import ROOT_TERM_ID, InsertedTerm, Term, TermId
from deriva_clonetax.core.exceptions import CloneTaxStoreError, TermInsertError
from deriva_clonetax.core.validation import slugify

logger = logging.getLogger(__name__)


class InMemoryTaxonomyStore:
    """TaxonomyStore implementation backed by dictionaries."""

    def __init__(
        self,
        taxonomies: Iterable[str] = (),
        post_types: Iterable[str] = (),
    ):
        self._taxonomies: set[str] = set(taxonomies)
        self._post_types: set[str] = set(post_types)
        self._terms: dict[TermId, Term] = {}
        self._meta: dict[TermId, list[tuple[int, str, Any]]] = defaultdict(list)
        self._posts: dict[int, str] = {}
        self._relationships: dict[int, list[TermId]] = defaultdict(list)
        self._term_ids = count(1)
        self._term_taxonomy_ids = count(1)
        self._meta_ids = count(1)

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def register_taxonomy(self, taxonomy: str) -> None:
        self._taxonomies.add(taxonomy)

    def register_post_type(self, post_type: str) -> None:
        self._post_types.add(post_type)

    def add_term(
        self,
        name: str,
        taxonomy: str,
        parent: TermId = ROOT_TERM_ID,
        slug: str = "",
        description: str = "",
        term_id: TermId | None = None,
        meta: dict[str, list[Any]] | None = None,
    ) -> Term:
        """Add a term without the insert checks, optionally with a fixed term_id.

        Fixed ids allow building hierarchies where a child has a lower id than
        its parent, or where the parent is added after the child.
        """
        self._taxonomies.add(taxonomy)
        if term_id is None:
            term_id = next(self._term_ids)
            while term_id in self._terms:
                term_id = next(self._term_ids)
        elif term_id in self._terms:
            raise CloneTaxStoreError(f"Term id {term_id} already in use")
        term = Term(
            term_id=term_id,
            name=name,
            slug=slug or slugify(name),
            description=description,
            parent=parent,
            taxonomy=taxonomy,
            term_taxonomy_id=next(self._term_taxonomy_ids),
        )
        self._terms[term_id] = term
        for key, values in (meta or {}).items():
            for value in values:
                self.add_term_meta(term_id, key, value)
        return term

    def add_post(self, post_type: str, title: str = "", post_id: int | None = None) -> int:
        """Add a post and return its id."""
        if post_id is None:
            post_id = max(self._posts, default=0) + 1
        elif post_id in self._posts:
            raise CloneTaxStoreError(f"Post id {post_id} already in use")
        self._post_types.add(post_type)
        self._posts[post_id] = post_type
        return post_id

    def get_term(self, term_id: TermId) -> Term:
        try:
            return self._terms[term_id]
        except KeyError:
            raise CloneTaxStoreError(f"Term {term_id} does not exist") from None

    def get_post_terms(self, post_id: int, taxonomy: str | None = None) -> list[TermId]:
        """Term ids related to a post, optionally limited to one taxonomy."""
        return [
            t for t in self._relationships.get(post_id, []) if taxonomy is None or self._terms[t].taxonomy == taxonomy
        ]

    # ------------------------------------------------------------------
    # TaxonomyStore protocol
    # ------------------------------------------------------------------

    def taxonomy_exists(self, taxonomy: str) -> bool:
        return taxonomy in self._taxonomies

    def post_type_exists(self, post_type: str) -> bool:
        return post_type in self._post_types

    def count_terms(self, taxonomy: str, hide_empty: bool = False) -> int:
        return len(self.get_terms(taxonomy, hide_empty=hide_empty))

    def get_terms(self, taxonomy: str, hide_empty: bool = False) -> list[Term]:
        used = {t for term_ids in self._relationships.values() for t in term_ids} if hide_empty else set()
        return [
            term
            for term_id, term in sorted(self._terms.items())
            if term.taxonomy == taxonomy and (not hide_empty or term_id in used)
        ]

    def insert_term(
        self,
        name: str,
        taxonomy: str,
        *,
        description: str = "",
        slug: str = "",
        parent: TermId = ROOT_TERM_ID,
    ) -> InsertedTerm:
        if not self.taxonomy_exists(taxonomy):
            raise TermInsertError("invalid_taxonomy", name, taxonomy, "taxonomy does not exist")
        if not name.strip():
            raise TermInsertError("empty_term_name", name, taxonomy, "a name is required for this term")
        slug = slug or slugify(name)
        if any(t.taxonomy == taxonomy and t.slug == slug for t in self._terms.values()):
            raise TermInsertError("term_exists", name, taxonomy, f"a term with slug {slug} already exists")
        if parent != ROOT_TERM_ID and (parent not in self._terms or self._terms[parent].taxonomy != taxonomy):
            raise TermInsertError("missing_parent", name, taxonomy, f"parent term {parent} does not exist")
        term = self.add_term(name, taxonomy, parent=parent, slug=slug, description=description)
        logger.debug(f"Inserted term {term.term_id} ({name}) into {taxonomy}")
        return InsertedTerm(term_id=term.term_id, term_taxonomy_id=term.term_taxonomy_id)

    def get_term_meta(self, term_id: TermId) -> dict[str, list[Any]]:
        meta: dict[str, list[Any]] = {}
        for _, key, value in self._meta.get(term_id, []):
            meta.setdefault(key, []).append(copy.deepcopy(value))
        return meta

    def add_term_meta(self, term_id: TermId, key: str, value: Any, unique: bool = False) -> int:
        if term_id not in self._terms:
            raise CloneTaxStoreError(f"Cannot add meta {key}: term {term_id} does not exist")
        if unique and any(k == key for _, k, _ in self._meta[term_id]):
            raise CloneTaxStoreError(f"Term {term_id} already has meta {key}")
        meta_id = next(self._meta_ids)
        self._meta[term_id].append((meta_id, key, copy.deepcopy(value)))
        return meta_id

    def get_posts(
        self,
        post_type: str,
        taxonomy: str,
        term_id: TermId,
        include_children: bool = False,
    ) -> list[int]:
        wanted = {term_id}
        if include_children:
            wanted |= self._descendants(term_id, taxonomy)
        return [
            post_id
            for post_id in sorted(self._posts)
            if self._posts[post_id] == post_type and wanted.intersection(self.get_post_terms(post_id, taxonomy))
        ]

    def set_post_terms(
        self,
        post_id: int,
        term_ids: Iterable[TermId],
        taxonomy: str,
        append: bool = True,
    ) -> list[int]:
        if post_id not in self._posts:
            raise CloneTaxStoreError(f"Post {post_id} does not exist")
        terms = [self.get_term(t) for t in term_ids]
        if bad := [t.term_id for t in terms if t.taxonomy != taxonomy]:
            raise CloneTaxStoreError(f"Terms {bad} are not in taxonomy {taxonomy}")
        current = self._relationships[post_id]
        if not append:
            current[:] = [t for t in current if self._terms[t].taxonomy != taxonomy]
        for term in terms:
            if term.term_id not in current:
                current.append(term.term_id)
        return [t.term_taxonomy_id for t in terms]

    def _descendants(self, term_id: TermId, taxonomy: str) -> set[TermId]:
        found: set[TermId] = set()
        frontier = [term_id]
        while frontier:
            parent = frontier.pop()
            for term in self._terms.values():
                if term.taxonomy == taxonomy and term.parent == parent and term.term_id not in found:
                    found.add(term.term_id)
                    frontier.append(term.term_id)
        return found
