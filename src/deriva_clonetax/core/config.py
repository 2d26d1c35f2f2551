"""Configuration management for deriva-clonetax.

This module provides the CloneTaxConfig class describing one clone run and the
store it runs against. It integrates with hydra-zen so that runs can be composed
from structured configs, and with OmegaConf so that defaults can be kept in a
YAML file.

The configuration handles:
    - The taxonomy pair and post type to clone
    - Term meta keys to skip
    - The traversal order of the source terms
    - Store connection settings (SQL database URL or Deriva catalog)
    - Logging levels for clonetax and the store libraries

Example:
    Programmatic configuration:
        >>> config = CloneTaxConfig(
        ...     source_taxonomy="product_cat",
        ...     target_taxonomy="new_product_cat",
        ...     post_type="product",
        ...     skip_meta_keys="thumbnail_id,order",
        ...     database_url="sqlite:///wordpress.db",
        ... )
        >>> store = make_store(config)

    From a YAML file with command line overrides:
        >>> config = load_config("clonetax.yaml", source_taxonomy="category", target_taxonomy="topic")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from hydra_zen import builds
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from deriva_clonetax.core.definitions import TraversalOrder
from deriva_clonetax.core.exceptions import CloneTaxConfigurationError
from deriva_clonetax.core.validation import parse_key_list
from deriva_clonetax.store.base import TaxonomyStore
from deriva_clonetax.store.catalog import CatalogTaxonomyStore
from deriva_clonetax.store.sql import SQLTaxonomyStore

DEFAULT_POST_TYPE = "post"
DEFAULT_TABLE_PREFIX = "wp_"
DEFAULT_CATALOG_SCHEMA = "Taxonomy"


class CloneTaxConfig(BaseModel):
    """Configuration model for a taxonomy clone run.

    Attributes:
        source_taxonomy: Taxonomy to copy terms from.
        target_taxonomy: Taxonomy to copy terms into. Must be empty.
        post_type: Post type whose term relationships are copied. Defaults to 'post'.
        skip_meta_keys: Term meta keys that are not copied. A comma separated string
            or a list; keys are sanitized on validation.
        order: Traversal order of the source terms. Defaults to hierarchy order.
        database_url: SQLAlchemy URL of a WordPress-style database.
        table_prefix: Table prefix of the WordPress-style database. Defaults to 'wp_'.
        taxonomies: Taxonomy names registered with the SQL store.
        post_types: Post type names registered with the SQL store.
        hostname: Hostname of a Deriva server holding the taxonomy schema.
        catalog_id: Catalog identifier on the Deriva server.
        schema_name: Catalog schema holding the taxonomy tables.
        credential: Deriva credential. If None, retrieved automatically.
        logging_level: Logging level for clonetax. Defaults to WARNING.
        store_logging_level: Logging level for deriva and sqlalchemy. Defaults to WARNING.
    """

    # Runs the skip_meta_keys validator on its default too
    model_config = ConfigDict(validate_default=True)

    source_taxonomy: str
    target_taxonomy: str
    post_type: str = DEFAULT_POST_TYPE
    skip_meta_keys: list[str] | None = None
    order: TraversalOrder = TraversalOrder.hierarchy
    database_url: str | None = None
    table_prefix: str = DEFAULT_TABLE_PREFIX
    taxonomies: list[str] | None = None
    post_types: list[str] | None = None
    hostname: str | None = None
    catalog_id: str | int = 1
    schema_name: str = DEFAULT_CATALOG_SCHEMA
    credential: Any = None
    logging_level: Any = logging.WARNING
    store_logging_level: Any = logging.WARNING

    @field_validator("skip_meta_keys", mode="before")
    @classmethod
    def normalize_skip_meta_keys(cls, value: Any) -> list[str]:
        return parse_key_list(value)

    @model_validator(mode="after")
    def check_backend(self) -> "CloneTaxConfig":
        """Exactly one of database_url and hostname selects the store."""
        if bool(self.database_url) == bool(self.hostname):
            raise ValueError("exactly one of database_url or hostname must be given")
        return self


def build_config(**values: Any) -> CloneTaxConfig:
    """Validate configuration values, reporting problems as CloneTaxConfigurationError."""
    try:
        return CloneTaxConfig.model_validate(values)
    except ValidationError as e:
        raise CloneTaxConfigurationError(f"Invalid configuration: {e}") from e


def load_config(path: str | Path, **overrides: Any) -> CloneTaxConfig:
    """Load a configuration from a YAML file and apply overrides.

    Overrides that are None are ignored so that unset command line options keep
    the file's values. Interpolations in the file are resolved.

    Args:
        path: YAML file to read.
        **overrides: Values that replace the file's values.

    Returns:
        The validated configuration.

    Raises:
        CloneTaxConfigurationError: If the file is missing, is not valid YAML, does
            not hold a mapping or fails validation.
    """
    path = Path(path)
    if not path.exists():
        raise CloneTaxConfigurationError(f"Configuration file {path} does not exist.")
    try:
        file_conf = OmegaConf.load(path)
        if not OmegaConf.is_dict(file_conf):
            raise CloneTaxConfigurationError(f"Configuration file {path} must hold a mapping of settings.")
        override_conf = OmegaConf.create({k: v for k, v in overrides.items() if v is not None})
        values = OmegaConf.to_container(OmegaConf.merge(file_conf, override_conf), resolve=True)
    except (yaml.YAMLError, OmegaConfBaseException) as e:
        raise CloneTaxConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    return build_config(**values)


def make_store(config: CloneTaxConfig) -> TaxonomyStore:
    """Create the taxonomy store selected by the configuration."""
    if config.database_url:
        return SQLTaxonomyStore.from_url(
            config.database_url,
            table_prefix=config.table_prefix,
            taxonomies=config.taxonomies,
            post_types=config.post_types,
        )
    return CatalogTaxonomyStore.connect(
        config.hostname,
        config.catalog_id,
        schema_name=config.schema_name,
        credential=config.credential,
    )


# =============================================================================
# hydra-zen Integration
# =============================================================================

# Structured config for composing clone runs with hydra-zen; instantiate() yields a CloneTaxConfig.
CloneTaxConf = builds(CloneTaxConfig, populate_full_signature=True)


__all__ = [
    "CloneTaxConfig",
    "CloneTaxConf",
    "build_config",
    "load_config",
    "make_store",
]
