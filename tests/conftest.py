"""Shared fixtures for deriva-clonetax tests.

Every seeded store holds the same sample data:

    category (source)                      tag
      News       meta color, icon            Featured
        World    meta a=[1, 2], b=[3]
      Sports
        Football
    topic (target, registered, empty)

    post 10 -> News, World, Featured
    post 20 -> World
    post 30 -> World
    page 40 -> World
    post 50 -> Football
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pytest

from deriva_clonetax.core.logging_config import LOGGER_NAME, RELATED_LOGGERS
from deriva_clonetax.store.memory import InMemoryTaxonomyStore
from deriva_clonetax.store.sql import SQLTaxonomyStore

TAXONOMIES = ["category", "topic", "tag"]
POST_TYPES = ["post", "page"]


@dataclass
class Sample:
    """Term ids of the seeded sample data."""

    news: int
    world: int
    sports: int
    football: int
    featured: int


def seed_sample(store) -> Sample:
    """Seed a store with the sample taxonomy through the store's public API."""
    news = store.insert_term("News", "category", description="All the news").term_id
    world = store.insert_term("World", "category", parent=news).term_id
    sports = store.insert_term("Sports", "category").term_id
    football = store.insert_term("Football", "category", parent=sports).term_id
    featured = store.insert_term("Featured", "tag").term_id

    store.add_term_meta(news, "color", "red")
    store.add_term_meta(news, "icon", "news.png")
    for key, value in [("a", 1), ("a", 2), ("b", 3)]:
        store.add_term_meta(world, key, value)

    for post_id, post_type, term_ids in [
        (10, "post", [news, world]),
        (20, "post", [world]),
        (30, "post", [world]),
        (40, "page", [world]),
        (50, "post", [football]),
    ]:
        store.add_post(post_type, f"Post {post_id}", post_id=post_id)
        store.set_post_terms(post_id, term_ids, "category")
    store.set_post_terms(10, [featured], "tag")
    return Sample(news=news, world=world, sports=sports, football=football, featured=featured)


@pytest.fixture(autouse=True)
def reset_clonetax_logger():
    """Undo configure_logging so handlers don't outlive the streams captured for a test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    for name in RELATED_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.fixture
def memory_store() -> InMemoryTaxonomyStore:
    return InMemoryTaxonomyStore(taxonomies=TAXONOMIES, post_types=POST_TYPES)


@pytest.fixture
def sql_store(tmp_path):
    store = SQLTaxonomyStore.from_url(f"sqlite:///{tmp_path / 'wp.db'}", taxonomies=TAXONOMIES, post_types=POST_TYPES)
    store.create_schema()
    yield store
    store.engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each store backend in turn, empty."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def sample(store) -> Sample:
    return seed_sample(store)


@pytest.fixture
def memory_sample(memory_store) -> Sample:
    return seed_sample(memory_store)


@pytest.fixture
def sql_sample(sql_store) -> Sample:
    return seed_sample(sql_store)
