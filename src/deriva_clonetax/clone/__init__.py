"""The taxonomy cloning algorithm."""

from deriva_clonetax.clone.cloner import ProgressCallback, TaxonomyCloner, clone_taxonomy
from deriva_clonetax.clone.context import CloneContext, CloneStats, TermIdMap
from deriva_clonetax.clone.meta import clone_term_meta
from deriva_clonetax.clone.ordering import order_terms
from deriva_clonetax.clone.preconditions import check_preconditions
from deriva_clonetax.clone.relationships import clone_post_relationships

__all__ = [
    "CloneContext",
    "CloneStats",
    "ProgressCallback",
    "TaxonomyCloner",
    "TermIdMap",
    "check_preconditions",
    "clone_post_relationships",
    "clone_taxonomy",
    "clone_term_meta",
    "order_terms",
]
