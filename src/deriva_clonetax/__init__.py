from deriva_clonetax.clone import CloneStats, TaxonomyCloner, clone_taxonomy
from deriva_clonetax.core import (
    CloneTaxConfigurationError,
    CloneTaxException,
    CloneTaxPreconditionError,
    CloneTaxStoreError,
    InsertedTerm,
    MissingPostType,
    MissingSourceTaxonomy,
    MissingTargetTaxonomy,
    TargetTaxonomyNotEmpty,
    Term,
    TermInsertError,
    TraversalOrder,
)
from deriva_clonetax.store import CatalogTaxonomyStore, InMemoryTaxonomyStore, SQLTaxonomyStore, TaxonomyStore

__all__ = [
    "CloneStats",
    "TaxonomyCloner",
    "clone_taxonomy",
    "CloneTaxConfigurationError",
    "CloneTaxException",
    "CloneTaxPreconditionError",
    "CloneTaxStoreError",
    "InsertedTerm",
    "MissingPostType",
    "MissingSourceTaxonomy",
    "MissingTargetTaxonomy",
    "TargetTaxonomyNotEmpty",
    "Term",
    "TermInsertError",
    "TraversalOrder",
    "CatalogTaxonomyStore",
    "InMemoryTaxonomyStore",
    "SQLTaxonomyStore",
    "TaxonomyStore",
]
