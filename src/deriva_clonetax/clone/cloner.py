"""Cloning a taxonomy into an empty taxonomy.

TaxonomyCloner copies every term of a source taxonomy, with its term meta and
its relationships to posts of one post type, into a target taxonomy that must
be empty. The run is a single sequential pass: one failing term ends the run
and leaves the terms cloned so far in place. There is no rollback and no
resume, and a second run against the same target fails its emptiness check.

Example:
    cloner = TaxonomyCloner(store, "product_cat", "new_product_cat", post_type="product",
                            skip_meta_keys=["thumbnail_id"])
    terms = cloner.plan()
    stats = cloner.run(terms, progress_callback=lambda term, done, total: print(done, total))
    print(stats.summary())
"""

from __future__ import annotations

from typing import Callable, Iterable

from pydantic import validate_call

from deriva_clonetax.clone.context import CloneContext, CloneStats
from deriva_clonetax.clone.meta import clone_term_meta
from deriva_clonetax.clone.ordering import order_terms
from deriva_clonetax.clone.preconditions import check_preconditions
from deriva_clonetax.clone.relationships import clone_post_relationships
from deriva_clonetax.core.definitions import ROOT_TERM_ID, Term, TraversalOrder
from deriva_clonetax.core.logging_config import LoggerMixin
from deriva_clonetax.core.validation import VALIDATION_CONFIG, parse_key_list
from deriva_clonetax.store.base import TaxonomyStore

# Called after each cloned term with (source term, terms done, total terms)
ProgressCallback = Callable[[Term, int, int], None]


class TaxonomyCloner(LoggerMixin):
    """Clones the terms, term meta and post relationships of one taxonomy into another.

    Attributes:
        store: Store holding both taxonomies.
        source_taxonomy: Taxonomy to copy from.
        target_taxonomy: Taxonomy to copy into. Must exist and be empty.
        post_type: Post type whose relationships are copied.
        skip_meta_keys: Sanitized term meta keys that are not copied.
        order: Order in which source terms are visited.
        context: State of the most recent run, None before the first run.
    """

    def __init__(
        self,
        store: TaxonomyStore,
        source_taxonomy: str,
        target_taxonomy: str,
        post_type: str = "post",
        skip_meta_keys: Iterable[str] | str | None = None,
        order: TraversalOrder | str = TraversalOrder.hierarchy,
    ):
        self.store = store
        self.source_taxonomy = source_taxonomy
        self.target_taxonomy = target_taxonomy
        self.post_type = post_type
        self.skip_meta_keys = frozenset(parse_key_list(skip_meta_keys))
        self.order = TraversalOrder(order)
        self.context: CloneContext | None = None

    def plan(self) -> list[Term]:
        """Check the preconditions and return the source terms in clone order.

        Nothing is written to the store.

        Raises:
            CloneTaxPreconditionError: If a taxonomy or the post type is missing, or the
                target taxonomy is not empty.
        """
        check_preconditions(self.store, self.source_taxonomy, self.target_taxonomy, self.post_type)
        terms = self.store.get_terms(self.source_taxonomy, hide_empty=False)
        return order_terms(terms, self.order)

    def run(self, terms: list[Term] | None = None, progress_callback: ProgressCallback | None = None) -> CloneStats:
        """Clone the source taxonomy into the target taxonomy.

        Args:
            terms: Terms returned by plan(). If None, plan() is called first.
            progress_callback: Optional callback(term, completed, total) called after
                each term has been cloned together with its meta and relationships.

        Returns:
            Statistics of the run.

        Raises:
            CloneTaxPreconditionError: If plan() fails.
            TermInsertError: If a term cannot be inserted into the target taxonomy.
            CloneTaxStoreError: If any other store operation fails.
        """
        if terms is None:
            terms = self.plan()
        context = CloneContext(
            source_taxonomy=self.source_taxonomy,
            target_taxonomy=self.target_taxonomy,
            post_type=self.post_type,
            skip_meta_keys=self.skip_meta_keys,
        )
        self.context = context
        total = len(terms)
        self._logger.info(
            f"Cloning {total} terms from taxonomy {self.source_taxonomy} to taxonomy {self.target_taxonomy}"
        )

        for completed, source_term in enumerate(terms, start=1):
            self._clone_term(context, source_term)
            if progress_callback:
                progress_callback(source_term, completed, total)

        self._logger.info(context.stats.summary())
        return context.stats

    def _clone_term(self, context: CloneContext, source_term: Term) -> None:
        self._logger.debug(f"== Processing source term id {source_term.term_id}, name: {source_term.name}")
        self._logger.debug(f"-- Inserting term {source_term.name} in taxonomy {self.target_taxonomy}")

        parent = context.term_map.resolve_parent(source_term.parent)
        if not source_term.is_root and parent == ROOT_TERM_ID:
            self._logger.warning(
                f"Parent {source_term.parent} of term {source_term.term_id} has not been cloned, "
                "cloning the term as a root"
            )
        target = self.store.insert_term(
            source_term.name,
            self.target_taxonomy,
            description=source_term.description,
            slug=source_term.slug,
            parent=parent,
        )
        context.stats.terms += 1
        self._logger.debug(f" - term id: {target.term_id}, tax term id: {target.term_taxonomy_id}")

        context.term_map.add(source_term.term_id, target.term_id)
        clone_term_meta(self.store, context, source_term.term_id, target.term_id)
        clone_post_relationships(self.store, context, source_term.term_id, target.term_id)


@validate_call(config=VALIDATION_CONFIG)
def clone_taxonomy(
    store: TaxonomyStore,
    source_taxonomy: str,
    target_taxonomy: str,
    post_type: str = "post",
    skip_meta_keys: list[str] | str | None = None,
    order: TraversalOrder = TraversalOrder.hierarchy,
    progress_callback: ProgressCallback | None = None,
) -> CloneStats:
    """Clone source_taxonomy into the empty target_taxonomy and return the statistics.

    Examples:
        >>> stats = clone_taxonomy(store, "category", "topic", skip_meta_keys="color,icon")
        >>> stats.terms
        12
    """
    cloner = TaxonomyCloner(store, source_taxonomy, target_taxonomy, post_type, skip_meta_keys, order)
    return cloner.run(progress_callback=progress_callback)
