"""Copying post relationships from a source term to its clone."""

from __future__ import annotations

import logging

from deriva_clonetax.clone.context import CloneContext
from deriva_clonetax.core.definitions import TermId
from deriva_clonetax.store.base import TaxonomyStore

logger = logging.getLogger(__name__)


def clone_post_relationships(
    store: TaxonomyStore, context: CloneContext, source_id: TermId, target_id: TermId
) -> None:
    """Relate the target term to every post of context.post_type related to the source term.

    Only direct relationships count; posts filed under descendants of the source
    term are left to those descendants. The target term is appended to each
    post, keeping whatever terms the post already has in any taxonomy.
    stats.post_relationships goes up once per post even if the relationship was
    already there.
    """
    post_ids = store.get_posts(context.post_type, context.source_taxonomy, source_id, include_children=False)
    for post_id in post_ids:
        logger.debug(f" - Adding term to post {post_id}")
        store.set_post_terms(post_id, [target_id], context.target_taxonomy, append=True)
        context.stats.post_relationships += 1
