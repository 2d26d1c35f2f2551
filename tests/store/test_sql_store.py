"""Tests for SQLTaxonomyStore on SQLite."""

import pytest
from sqlalchemy import inspect, select

from deriva_clonetax.core.exceptions import CloneTaxStoreError, TermInsertError
from deriva_clonetax.store.base import TaxonomyStore
from deriva_clonetax.store.sql import SQLTaxonomyStore


def test_satisfies_protocol(sql_store):
    assert isinstance(sql_store, TaxonomyStore)


def test_create_schema_uses_prefix(tmp_path):
    store = SQLTaxonomyStore.from_url(f"sqlite:///{tmp_path / 'blog.db'}", table_prefix="blog_")
    store.create_schema()

    assert set(inspect(store.engine).get_table_names()) == {
        "blog_terms",
        "blog_term_taxonomy",
        "blog_termmeta",
        "blog_posts",
        "blog_term_relationships",
    }


def test_from_url_invalid():
    with pytest.raises(CloneTaxStoreError, match="Cannot connect"):
        SQLTaxonomyStore.from_url("not a database url")


class TestRegistration:
    def test_registered_names(self, sql_store):
        assert sql_store.taxonomy_exists("topic")
        assert sql_store.post_type_exists("page")
        assert not sql_store.taxonomy_exists("unknown")
        assert not sql_store.post_type_exists("product")

    def test_existing_rows_are_discovered(self, sql_store):
        sql_store.insert_term("Shirts", "category")
        sql_store.register_taxonomy("product_cat")
        sql_store.insert_term("Shoes", "product_cat")
        sql_store.add_post("product")

        fresh = SQLTaxonomyStore(sql_store.engine)
        assert fresh.taxonomy_exists("product_cat")
        assert fresh.post_type_exists("product")
        assert not fresh.taxonomy_exists("topic")


class TestInsertTerm:
    def test_insert_writes_both_tables(self, sql_store):
        inserted = sql_store.insert_term("Red Wine", "category", description="Reds")

        with sql_store.engine.connect() as conn:
            term = conn.execute(select(sql_store.terms)).one()
            tt = conn.execute(select(sql_store.term_taxonomy)).one()
        assert (term.term_id, term.name, term.slug) == (inserted.term_id, "Red Wine", "red-wine")
        assert tt.term_taxonomy_id == inserted.term_taxonomy_id
        assert (tt.taxonomy, tt.description, tt.parent, tt.count) == ("category", "Reds", 0, 0)

    def test_get_terms(self, sql_store):
        news = sql_store.insert_term("News", "category").term_id
        world = sql_store.insert_term("World", "category", parent=news).term_id
        sql_store.insert_term("Featured", "tag")

        terms = sql_store.get_terms("category")
        assert [(t.term_id, t.name, t.parent) for t in terms] == [(news, "News", 0), (world, "World", news)]
        assert sql_store.count_terms("category") == 2

    @pytest.mark.parametrize(
        "kwargs, code",
        [
            ({"name": "News", "taxonomy": "unknown"}, "invalid_taxonomy"),
            ({"name": "", "taxonomy": "category"}, "empty_term_name"),
            ({"name": "World", "taxonomy": "category", "parent": 42}, "missing_parent"),
        ],
    )
    def test_insert_failures(self, sql_store, kwargs, code):
        with pytest.raises(TermInsertError) as exc_info:
            sql_store.insert_term(**kwargs)
        assert exc_info.value.code == code
        assert sql_store.count_terms("category") == 0

    def test_same_slug(self, sql_store):
        sql_store.insert_term("News", "category")
        with pytest.raises(TermInsertError) as exc_info:
            sql_store.insert_term("Breaking", "category", slug="news")
        assert exc_info.value.code == "term_exists"
        sql_store.insert_term("News", "topic")


class TestTermMeta:
    def test_strings_stored_verbatim(self, sql_store):
        term_id = sql_store.insert_term("News", "category").term_id
        sql_store.add_term_meta(term_id, "color", "red")
        sql_store.add_term_meta(term_id, "color", "blue")
        assert sql_store.get_term_meta(term_id) == {"color": ["red", "blue"]}

    def test_structured_values_stored_as_json(self, sql_store):
        term_id = sql_store.insert_term("News", "category").term_id
        sql_store.add_term_meta(term_id, "order", 3)
        sql_store.add_term_meta(term_id, "thumb", {"id": 7})
        assert sql_store.get_term_meta(term_id) == {"order": ["3"], "thumb": ['{"id": 7}']}

    def test_copied_values_compare_equal(self, sql_store):
        source = sql_store.insert_term("News", "category").term_id
        target = sql_store.insert_term("News", "topic").term_id
        sql_store.add_term_meta(source, "thumb", {"id": 7})
        for key, values in sql_store.get_term_meta(source).items():
            for value in values:
                sql_store.add_term_meta(target, key, value)
        assert sql_store.get_term_meta(target) == sql_store.get_term_meta(source)

    def test_unique(self, sql_store):
        term_id = sql_store.insert_term("News", "category").term_id
        sql_store.add_term_meta(term_id, "color", "red", unique=True)
        with pytest.raises(CloneTaxStoreError, match="already has meta color"):
            sql_store.add_term_meta(term_id, "color", "blue", unique=True)

    def test_unserializable_value(self, sql_store):
        term_id = sql_store.insert_term("News", "category").term_id
        with pytest.raises(CloneTaxStoreError):
            sql_store.add_term_meta(term_id, "bad", object())


class TestPosts:
    def test_get_posts(self, sql_store, sql_sample):
        assert sql_store.get_posts("post", "category", sql_sample.world) == [10, 20, 30]
        assert sql_store.get_posts("page", "category", sql_sample.world) == [40]
        assert sql_store.get_posts("post", "category", sql_sample.sports) == []
        assert sql_store.get_posts("post", "category", sql_sample.sports, include_children=True) == [50]

    def test_hide_empty(self, sql_store, sql_sample):
        assert sql_store.count_terms("category") == 4
        assert sql_store.count_terms("category", hide_empty=True) == 3
        assert [t.term_id for t in sql_store.get_terms("category", hide_empty=True)] == [
            sql_sample.news,
            sql_sample.world,
            sql_sample.football,
        ]

    def test_set_post_terms_keeps_other_terms(self, sql_store, sql_sample):
        new = sql_store.insert_term("Global", "topic").term_id
        sql_store.set_post_terms(10, [new], "topic")

        assert sql_store.get_post_terms(10, "topic") == [new]
        assert sql_store.get_post_terms(10, "category") == [sql_sample.news, sql_sample.world]
        assert sql_store.get_post_terms(10, "tag") == [sql_sample.featured]

    def test_set_post_terms_is_idempotent(self, sql_store, sql_sample):
        sql_store.set_post_terms(20, [sql_sample.world], "category")
        assert sql_store.get_post_terms(20, "category") == [sql_sample.world]

    def test_set_post_terms_replaces(self, sql_store, sql_sample):
        sql_store.set_post_terms(10, [sql_sample.sports], "category", append=False)

        assert sql_store.get_post_terms(10, "category") == [sql_sample.sports]
        assert sql_store.get_post_terms(10, "tag") == [sql_sample.featured]

    def test_term_counts_updated(self, sql_store, sql_sample):
        sql_store.set_post_terms(10, [sql_sample.sports], "category", append=False)

        tt = sql_store.term_taxonomy
        with sql_store.engine.connect() as conn:
            counts = dict(conn.execute(select(tt.c.term_id, tt.c.count).where(tt.c.taxonomy == "category")).all())
        assert counts == {sql_sample.news: 0, sql_sample.world: 3, sql_sample.sports: 1, sql_sample.football: 1}

    def test_set_post_terms_wrong_taxonomy(self, sql_store, sql_sample):
        with pytest.raises(CloneTaxStoreError, match="not in taxonomy category"):
            sql_store.set_post_terms(10, [sql_sample.featured], "category")

    def test_set_post_terms_missing_post(self, sql_store, sql_sample):
        with pytest.raises(CloneTaxStoreError, match="Post 99 does not exist"):
            sql_store.set_post_terms(99, [sql_sample.news], "category")
