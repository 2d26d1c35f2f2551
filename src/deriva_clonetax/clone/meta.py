"""Copying term meta from a source term to its clone."""

from __future__ import annotations

import logging

from deriva_clonetax.clone.context import CloneContext
from deriva_clonetax.core.definitions import TermId
from deriva_clonetax.store.base import TaxonomyStore

logger = logging.getLogger(__name__)


def clone_term_meta(store: TaxonomyStore, context: CloneContext, source_id: TermId, target_id: TermId) -> None:
    """Copy every meta value of the source term to the target term.

    Values are added, never replaced, so a key holding several values keeps all
    of them in their original order. Keys in context.skip_meta_keys are not
    copied at all; their values are counted as skipped. Every key counts once
    towards stats.meta_pairs whether it was skipped or not.

    Store failures propagate and end the run.
    """
    stats = context.stats
    for key, values in store.get_term_meta(source_id).items():
        if key in context.skip_meta_keys:
            for value in values:
                logger.debug(f" - Skipping term meta, key: {key}, value: {value!r}")
            stats.meta_values_skipped += len(values)
        else:
            for value in values:
                logger.debug(f" - Inserting term meta, key: {key}, value: {value!r}")
                store.add_term_meta(target_id, key, value, unique=False)
                stats.meta_values += 1
        stats.meta_pairs += 1
