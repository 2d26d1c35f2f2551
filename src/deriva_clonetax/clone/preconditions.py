"""Checks that must pass before a clone touches the target taxonomy."""

from __future__ import annotations

from deriva_clonetax.core.exceptions import (
    MissingPostType,
    MissingSourceTaxonomy,
    MissingTargetTaxonomy,
    TargetTaxonomyNotEmpty,
)
from deriva_clonetax.store.base import TaxonomyStore


def check_preconditions(store: TaxonomyStore, source_taxonomy: str, target_taxonomy: str, post_type: str) -> None:
    """Fail fast if the clone cannot start.

    Raises:
        MissingSourceTaxonomy: The source taxonomy does not exist.
        MissingTargetTaxonomy: The target taxonomy does not exist.
        MissingPostType: The post type does not exist.
        TargetTaxonomyNotEmpty: The target taxonomy already holds terms, empty ones included.
    """
    if not store.taxonomy_exists(source_taxonomy):
        raise MissingSourceTaxonomy(source_taxonomy)
    if not store.taxonomy_exists(target_taxonomy):
        raise MissingTargetTaxonomy(target_taxonomy)
    if not store.post_type_exists(post_type):
        raise MissingPostType(post_type)
    if (term_count := store.count_terms(target_taxonomy, hide_empty=False)) > 0:
        raise TargetTaxonomyNotEmpty(target_taxonomy, term_count)
