from deriva_clonetax.core.definitions import ROOT_TERM_ID, InsertedTerm, Term, TermId, TraversalOrder
from deriva_clonetax.core.exceptions import (
    CloneTaxConfigurationError,
    CloneTaxException,
    CloneTaxPreconditionError,
    CloneTaxStoreError,
    MissingPostType,
    MissingSourceTaxonomy,
    MissingTargetTaxonomy,
    TargetTaxonomyNotEmpty,
    TermInsertError,
)

__all__ = [
    "ROOT_TERM_ID",
    "InsertedTerm",
    "Term",
    "TermId",
    "TraversalOrder",
    "CloneTaxConfigurationError",
    "CloneTaxException",
    "CloneTaxPreconditionError",
    "CloneTaxStoreError",
    "MissingPostType",
    "MissingSourceTaxonomy",
    "MissingTargetTaxonomy",
    "TargetTaxonomyNotEmpty",
    "TermInsertError",
]
