"""Taxonomy stores: the content stores a taxonomy can be cloned within."""

from deriva_clonetax.store.base import TaxonomyStore
from deriva_clonetax.store.catalog import CatalogTaxonomyStore, create_taxonomy_schema, define_taxonomy_schema
from deriva_clonetax.store.memory import InMemoryTaxonomyStore
from deriva_clonetax.store.sql import SQLTaxonomyStore, define_tables

__all__ = [
    "TaxonomyStore",
    "CatalogTaxonomyStore",
    "InMemoryTaxonomyStore",
    "SQLTaxonomyStore",
    "create_taxonomy_schema",
    "define_taxonomy_schema",
    "define_tables",
]
