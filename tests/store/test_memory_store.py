"""Tests for InMemoryTaxonomyStore."""

import pytest

from deriva_clonetax.core.exceptions import CloneTaxStoreError, TermInsertError
from deriva_clonetax.store.base import TaxonomyStore
from deriva_clonetax.store.memory import InMemoryTaxonomyStore


def test_satisfies_protocol(memory_store):
    assert isinstance(memory_store, TaxonomyStore)


class TestSeeding:
    def test_add_term_registers_taxonomy(self):
        store = InMemoryTaxonomyStore()
        term = store.add_term("News", "category")

        assert store.taxonomy_exists("category")
        assert term.slug == "news"
        assert store.get_term(term.term_id) == term

    def test_add_term_with_fixed_id(self, memory_store):
        child = memory_store.add_term("Child", "category", parent=5, term_id=1)
        parent = memory_store.add_term("Parent", "category", term_id=5)

        assert [t.term_id for t in memory_store.get_terms("category")] == [child.term_id, parent.term_id]
        assert child.parent == parent.term_id

    def test_add_term_duplicate_id(self, memory_store):
        memory_store.add_term("News", "category", term_id=3)
        with pytest.raises(CloneTaxStoreError, match="already in use"):
            memory_store.add_term("Sports", "category", term_id=3)

    def test_auto_ids_skip_fixed_ids(self, memory_store):
        memory_store.add_term("Fixed", "category", term_id=1)
        assert memory_store.add_term("Auto", "category").term_id == 2

    def test_add_term_with_meta(self, memory_store):
        term = memory_store.add_term("News", "category", meta={"color": ["red", "blue"]})
        assert memory_store.get_term_meta(term.term_id) == {"color": ["red", "blue"]}

    def test_add_post_assigns_ids(self, memory_store):
        assert memory_store.add_post("post") == 1
        assert memory_store.add_post("post", post_id=10) == 10
        assert memory_store.add_post("page") == 11
        with pytest.raises(CloneTaxStoreError):
            memory_store.add_post("post", post_id=10)

    def test_get_missing_term(self, memory_store):
        with pytest.raises(CloneTaxStoreError, match="does not exist"):
            memory_store.get_term(99)


class TestInsertTerm:
    def test_insert(self, memory_store):
        inserted = memory_store.insert_term("Red Wine", "category", description="Reds")
        term = memory_store.get_term(inserted.term_id)

        assert term.slug == "red-wine"
        assert term.description == "Reds"
        assert term.term_taxonomy_id == inserted.term_taxonomy_id
        assert term.is_root

    def test_insert_with_parent(self, memory_store):
        parent = memory_store.insert_term("News", "category")
        child = memory_store.insert_term("World", "category", parent=parent.term_id)
        assert memory_store.get_term(child.term_id).parent == parent.term_id

    @pytest.mark.parametrize(
        "kwargs, code",
        [
            ({"name": "News", "taxonomy": "unknown"}, "invalid_taxonomy"),
            ({"name": "  ", "taxonomy": "category"}, "empty_term_name"),
            ({"name": "World", "taxonomy": "category", "parent": 42}, "missing_parent"),
        ],
    )
    def test_insert_failures(self, memory_store, kwargs, code):
        with pytest.raises(TermInsertError) as exc_info:
            memory_store.insert_term(**kwargs)
        assert exc_info.value.code == code

    def test_same_slug_in_taxonomy(self, memory_store):
        memory_store.insert_term("News", "category")
        with pytest.raises(TermInsertError) as exc_info:
            memory_store.insert_term("NEWS", "category")
        assert exc_info.value.code == "term_exists"

    def test_same_slug_in_other_taxonomy(self, memory_store):
        memory_store.insert_term("News", "category")
        memory_store.insert_term("News", "topic")
        assert memory_store.count_terms("topic") == 1

    def test_parent_in_other_taxonomy(self, memory_store):
        other = memory_store.insert_term("News", "tag")
        with pytest.raises(TermInsertError) as exc_info:
            memory_store.insert_term("World", "category", parent=other.term_id)
        assert exc_info.value.code == "missing_parent"


class TestReads:
    def test_get_terms_ordered_by_id(self, memory_store):
        memory_store.add_term("B", "category", term_id=7)
        memory_store.add_term("A", "category", term_id=3)
        memory_store.add_term("C", "tag", term_id=5)
        assert [t.name for t in memory_store.get_terms("category")] == ["A", "B"]

    def test_hide_empty(self, memory_store):
        used = memory_store.insert_term("Used", "category").term_id
        memory_store.insert_term("Unused", "category")
        post_id = memory_store.add_post("post")
        memory_store.set_post_terms(post_id, [used], "category")

        assert memory_store.count_terms("category") == 2
        assert memory_store.count_terms("category", hide_empty=True) == 1
        assert [t.term_id for t in memory_store.get_terms("category", hide_empty=True)] == [used]

    def test_meta_values_are_copies(self, memory_store):
        term_id = memory_store.insert_term("News", "category").term_id
        value = {"sizes": [1, 2]}
        memory_store.add_term_meta(term_id, "thumb", value)
        value["sizes"].append(3)
        memory_store.get_term_meta(term_id)["thumb"][0]["sizes"].append(4)

        assert memory_store.get_term_meta(term_id) == {"thumb": [{"sizes": [1, 2]}]}

    def test_meta_keeps_order_and_duplicates(self, memory_store):
        term_id = memory_store.insert_term("News", "category").term_id
        for key, value in [("a", 1), ("b", 3), ("a", 2), ("a", 2)]:
            memory_store.add_term_meta(term_id, key, value)
        assert memory_store.get_term_meta(term_id) == {"a": [1, 2, 2], "b": [3]}

    def test_unique_meta(self, memory_store):
        term_id = memory_store.insert_term("News", "category").term_id
        memory_store.add_term_meta(term_id, "a", 1, unique=True)
        with pytest.raises(CloneTaxStoreError):
            memory_store.add_term_meta(term_id, "a", 2, unique=True)

    def test_meta_on_missing_term(self, memory_store):
        with pytest.raises(CloneTaxStoreError):
            memory_store.add_term_meta(99, "a", 1)


class TestPosts:
    def test_get_posts_filters_post_type(self, memory_store):
        term_id = memory_store.insert_term("News", "category").term_id
        for post_type in ["post", "page", "post"]:
            memory_store.set_post_terms(memory_store.add_post(post_type), [term_id], "category")
        assert memory_store.get_posts("post", "category", term_id) == [1, 3]

    def test_get_posts_include_children(self, memory_store):
        news = memory_store.insert_term("News", "category").term_id
        world = memory_store.insert_term("World", "category", parent=news).term_id
        europe = memory_store.insert_term("Europe", "category", parent=world).term_id
        memory_store.set_post_terms(memory_store.add_post("post", post_id=5), [europe], "category")

        assert memory_store.get_posts("post", "category", news) == []
        assert memory_store.get_posts("post", "category", news, include_children=True) == [5]

    def test_set_post_terms_appends(self, memory_store):
        a = memory_store.insert_term("A", "category").term_id
        b = memory_store.insert_term("B", "category").term_id
        tag = memory_store.insert_term("T", "tag").term_id
        post_id = memory_store.add_post("post")
        memory_store.set_post_terms(post_id, [a], "category")
        memory_store.set_post_terms(post_id, [tag], "tag")
        memory_store.set_post_terms(post_id, [b, a], "category")

        assert memory_store.get_post_terms(post_id) == [a, tag, b]
        assert memory_store.get_post_terms(post_id, "category") == [a, b]

    def test_set_post_terms_replaces(self, memory_store):
        a = memory_store.insert_term("A", "category").term_id
        b = memory_store.insert_term("B", "category").term_id
        tag = memory_store.insert_term("T", "tag").term_id
        post_id = memory_store.add_post("post")
        memory_store.set_post_terms(post_id, [a], "category")
        memory_store.set_post_terms(post_id, [tag], "tag")

        memory_store.set_post_terms(post_id, [b], "category", append=False)

        assert memory_store.get_post_terms(post_id) == [tag, b]

    def test_set_post_terms_returns_term_taxonomy_ids(self, memory_store):
        term = memory_store.add_term("A", "category")
        post_id = memory_store.add_post("post")
        assert memory_store.set_post_terms(post_id, [term.term_id], "category") == [term.term_taxonomy_id]

    def test_set_post_terms_wrong_taxonomy(self, memory_store):
        tag = memory_store.insert_term("T", "tag").term_id
        post_id = memory_store.add_post("post")
        with pytest.raises(CloneTaxStoreError, match="not in taxonomy category"):
            memory_store.set_post_terms(post_id, [tag], "category")

    def test_set_post_terms_missing_post(self, memory_store):
        term_id = memory_store.insert_term("A", "category").term_id
        with pytest.raises(CloneTaxStoreError, match="Post 99 does not exist"):
            memory_store.set_post_terms(99, [term_id], "category")
