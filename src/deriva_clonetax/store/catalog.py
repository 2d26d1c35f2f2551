"""TaxonomyStore on a Deriva ERMrest catalog.

CatalogTaxonomyStore keeps taxonomies in a catalog schema with the tables
produced by define_taxonomy_schema():

    Taxonomy    Name
    Post_Type   Name
    Term        Term_ID (serial), Name, Slug, Description, Parent, Taxonomy
    Term_Meta   Meta_ID (serial), Term, Meta_Key, Meta_Value (jsonb)
    Post        Post_ID (serial), Post_Type, Title
    Post_Term   Post, Term

Term ids are the serial Term_ID column, so parents and relationships use
integers exactly like the SQL store. All access goes through datapath; every
call is one ERMrest request (or a short sequence of them) with no transaction
spanning calls.

Example:
    store = CatalogTaxonomyStore.connect("deriva.example.org", "52", schema_name="Taxonomy")
    store.get_terms("Anatomy")
"""

from __future__ import annotations

import logging
from functools import reduce
from typing import Any, Iterable

from deriva.core import DerivaServer, ErmrestCatalog, get_credential
from deriva.core.datapath import DataPathException
from deriva.core.ermrest_model import Column, ForeignKey, Key, Model, Schema, Table, builtin_types
from requests.exceptions import HTTPError, RequestException

from deriva_clonetax.core.definitions import ROOT_TERM_ID, InsertedTerm, Term, TermId
from deriva_clonetax.core.exceptions import CloneTaxStoreError, TermInsertError
from deriva_clonetax.core.validation import slugify

logger = logging.getLogger(__name__)

# Failures raised by datapath requests
CATALOG_ERRORS = (DataPathException, HTTPError)

# Values per disjunctive filter, keeping ERMrest URLs short
FILTER_BATCH_SIZE = 100


def define_taxonomy_schema(schema_name: str) -> list[dict]:
    """Return ERMrest table definitions for the taxonomy tables, referenced tables first."""
    return [
        Table.define(
            "Taxonomy",
            column_defs=[Column.define("Name", builtin_types.text, nullok=False)],
            key_defs=[Key.define(["Name"])],
            comment="Registered taxonomies",
        ),
        Table.define(
            "Post_Type",
            column_defs=[Column.define("Name", builtin_types.text, nullok=False)],
            key_defs=[Key.define(["Name"])],
            comment="Registered post types",
        ),
        Table.define(
            "Term",
            column_defs=[
                Column.define("Term_ID", builtin_types.serial4, nullok=False),
                Column.define("Name", builtin_types.text, nullok=False),
                Column.define("Slug", builtin_types.text, nullok=False),
                Column.define("Description", builtin_types.markdown),
                Column.define("Parent", builtin_types.int4, default=0, comment="Term_ID of the parent, 0 for roots"),
                Column.define("Taxonomy", builtin_types.text, nullok=False),
            ],
            key_defs=[Key.define(["Term_ID"]), Key.define(["Taxonomy", "Slug"])],
            fkey_defs=[ForeignKey.define(["Taxonomy"], schema_name, "Taxonomy", ["Name"])],
        ),
        Table.define(
            "Term_Meta",
            column_defs=[
                Column.define("Meta_ID", builtin_types.serial4, nullok=False),
                Column.define("Term", builtin_types.int4, nullok=False),
                Column.define("Meta_Key", builtin_types.text, nullok=False),
                Column.define("Meta_Value", builtin_types.jsonb),
            ],
            key_defs=[Key.define(["Meta_ID"])],
            fkey_defs=[ForeignKey.define(["Term"], schema_name, "Term", ["Term_ID"])],
        ),
        Table.define(
            "Post",
            column_defs=[
                Column.define("Post_ID", builtin_types.serial4, nullok=False),
                Column.define("Post_Type", builtin_types.text, nullok=False),
                Column.define("Title", builtin_types.text),
            ],
            key_defs=[Key.define(["Post_ID"])],
            fkey_defs=[ForeignKey.define(["Post_Type"], schema_name, "Post_Type", ["Name"])],
        ),
        Table.define(
            "Post_Term",
            column_defs=[
                Column.define("Post", builtin_types.int4, nullok=False),
                Column.define("Term", builtin_types.int4, nullok=False),
            ],
            key_defs=[Key.define(["Post", "Term"])],
            fkey_defs=[
                ForeignKey.define(["Post"], schema_name, "Post", ["Post_ID"]),
                ForeignKey.define(["Term"], schema_name, "Term", ["Term_ID"]),
            ],
        ),
    ]


def create_taxonomy_schema(model: Model, schema_name: str) -> Schema:
    """Create the taxonomy schema and its tables in a catalog model."""
    schema = model.create_schema(Schema.define(schema_name, comment="Taxonomies, terms and post relationships"))
    for table_def in define_taxonomy_schema(schema_name):
        schema.create_table(table_def)
    return schema


class CatalogTaxonomyStore:
    """TaxonomyStore implementation for a Deriva catalog.

    Attributes:
        catalog: ERMrest catalog connection.
        schema_name: Schema holding the taxonomy tables.
    """

    def __init__(self, catalog: ErmrestCatalog, schema_name: str = "Taxonomy"):
        self.catalog = catalog
        self.schema_name = schema_name
        self._pb = catalog.getPathBuilder()

    @classmethod
    def connect(
        cls,
        hostname: str,
        catalog_id: str | int = 1,
        schema_name: str = "Taxonomy",
        credential: Any = None,
    ) -> "CatalogTaxonomyStore":
        """Connect to a catalog on a Deriva server."""
        try:
            credential = credential or get_credential(hostname)
            server = DerivaServer("https", hostname, credentials=credential)
            return cls(server.connect_ermrest(catalog_id), schema_name)
        except RequestException as e:
            raise CloneTaxStoreError(f"Cannot connect to catalog {catalog_id} on {hostname}: {e}") from e

    def _table(self, table_name: str):
        return self._pb.schemas[self.schema_name].tables[table_name]

    def _fetch(self, table_name: str, *conditions, sort_by: str | None = None) -> list[dict[str, Any]]:
        table = self._table(table_name)
        path = table
        for condition in conditions:
            path = path.filter(condition)
        entities = path.entities()
        if sort_by:
            entities = entities.sort(getattr(table, sort_by))
        try:
            return [dict(e) for e in entities.fetch()]
        except CATALOG_ERRORS as e:
            raise CloneTaxStoreError(f"Failed to read {self.schema_name}:{table_name}: {e}") from e

    def _fetch_in(
        self, table_name: str, column_name: str, values: Iterable[Any], condition=None
    ) -> list[dict[str, Any]]:
        """Fetch rows whose column holds one of values, one request per batch."""
        table = self._table(table_name)
        column = getattr(table, column_name)
        values = sorted(set(values))
        rows: list[dict[str, Any]] = []
        for start in range(0, len(values), FILTER_BATCH_SIZE):
            batch = values[start : start + FILTER_BATCH_SIZE]
            any_of = reduce(lambda left, right: left | right, (column == v for v in batch))
            rows.extend(self._fetch(table_name, any_of if condition is None else condition & any_of))
        return rows

    def _insert(self, table_name: str, rows: list[dict[str, Any]], defaults: set[str]) -> list[dict[str, Any]]:
        try:
            return [dict(e) for e in self._table(table_name).insert(rows, defaults=defaults)]
        except CATALOG_ERRORS as e:
            raise CloneTaxStoreError(f"Failed to insert into {self.schema_name}:{table_name}: {e}") from e

    @staticmethod
    def _to_term(row: dict[str, Any]) -> Term:
        return Term(
            term_id=row["Term_ID"],
            name=row["Name"],
            slug=row["Slug"],
            description=row.get("Description") or "",
            parent=row.get("Parent") or ROOT_TERM_ID,
            taxonomy=row["Taxonomy"],
            term_taxonomy_id=row["Term_ID"],
        )

    # ------------------------------------------------------------------
    # TaxonomyStore protocol
    # ------------------------------------------------------------------

    def taxonomy_exists(self, taxonomy: str) -> bool:
        table = self._table("Taxonomy")
        return bool(self._fetch("Taxonomy", table.Name == taxonomy))

    def post_type_exists(self, post_type: str) -> bool:
        table = self._table("Post_Type")
        return bool(self._fetch("Post_Type", table.Name == post_type))

    def count_terms(self, taxonomy: str, hide_empty: bool = False) -> int:
        if hide_empty:
            return len(self.get_terms(taxonomy, hide_empty=True))
        table = self._table("Term")
        try:
            result = table.filter(table.Taxonomy == taxonomy).aggregates(table.Term_ID.cnt.alias("count")).fetch()
        except CATALOG_ERRORS as e:
            raise CloneTaxStoreError(f"Failed to count terms of {taxonomy}: {e}") from e
        return result[0]["count"] if result else 0

    def get_terms(self, taxonomy: str, hide_empty: bool = False) -> list[Term]:
        table = self._table("Term")
        terms = [self._to_term(row) for row in self._fetch("Term", table.Taxonomy == taxonomy, sort_by="Term_ID")]
        if hide_empty:
            used = {row["Term"] for row in self._fetch("Post_Term")}
            terms = [t for t in terms if t.term_id in used]
        return terms

    def insert_term(
        self,
        name: str,
        taxonomy: str,
        *,
        description: str = "",
        slug: str = "",
        parent: TermId = ROOT_TERM_ID,
    ) -> InsertedTerm:
        if not self.taxonomy_exists(taxonomy):
            raise TermInsertError("invalid_taxonomy", name, taxonomy, "taxonomy does not exist")
        if not name.strip():
            raise TermInsertError("empty_term_name", name, taxonomy, "a name is required for this term")
        slug = slug or slugify(name)
        table = self._table("Term")
        if self._fetch("Term", (table.Taxonomy == taxonomy) & (table.Slug == slug)):
            raise TermInsertError("term_exists", name, taxonomy, f"a term with slug {slug} already exists")
        if parent != ROOT_TERM_ID and not self._fetch("Term", (table.Taxonomy == taxonomy) & (table.Term_ID == parent)):
            raise TermInsertError("missing_parent", name, taxonomy, f"parent term {parent} does not exist")
        row = {"Name": name, "Slug": slug, "Description": description, "Parent": parent, "Taxonomy": taxonomy}
        try:
            inserted = self._insert("Term", [row], defaults={"Term_ID"})[0]
        except CloneTaxStoreError as e:
            raise TermInsertError("db_insert_error", name, taxonomy, str(e)) from e
        logger.debug(f"Inserted term {inserted['Term_ID']} ({name}) into {taxonomy}")
        return InsertedTerm(term_id=inserted["Term_ID"], term_taxonomy_id=inserted["Term_ID"])

    def get_term_meta(self, term_id: TermId) -> dict[str, list[Any]]:
        table = self._table("Term_Meta")
        meta: dict[str, list[Any]] = {}
        for row in self._fetch("Term_Meta", table.Term == term_id, sort_by="Meta_ID"):
            meta.setdefault(row["Meta_Key"], []).append(row["Meta_Value"])
        return meta

    def add_term_meta(self, term_id: TermId, key: str, value: Any, unique: bool = False) -> int:
        if unique:
            table = self._table("Term_Meta")
            if self._fetch("Term_Meta", (table.Term == term_id) & (table.Meta_Key == key)):
                raise CloneTaxStoreError(f"Term {term_id} already has meta {key}")
        row = {"Term": term_id, "Meta_Key": key, "Meta_Value": value}
        return self._insert("Term_Meta", [row], defaults={"Meta_ID"})[0]["Meta_ID"]

    def get_posts(
        self,
        post_type: str,
        taxonomy: str,
        term_id: TermId,
        include_children: bool = False,
    ) -> list[int]:
        wanted = {term_id}
        if include_children:
            children: dict[TermId, list[TermId]] = {}
            for term in self.get_terms(taxonomy):
                children.setdefault(term.parent, []).append(term.term_id)
            frontier = [term_id]
            while frontier:
                for child in children.get(frontier.pop(), []):
                    if child not in wanted:
                        wanted.add(child)
                        frontier.append(child)
        related = {row["Post"] for row in self._fetch_in("Post_Term", "Term", wanted)}
        post = self._table("Post")
        of_type = self._fetch_in("Post", "Post_ID", related, post.Post_Type == post_type)
        return sorted({row["Post_ID"] for row in of_type})

    def set_post_terms(
        self,
        post_id: int,
        term_ids: Iterable[TermId],
        taxonomy: str,
        append: bool = True,
    ) -> list[int]:
        term_ids = list(term_ids)
        post_term = self._table("Post_Term")
        existing = {row["Term"] for row in self._fetch("Post_Term", post_term.Post == post_id)}
        term = self._table("Term")
        wanted = existing | set(term_ids)
        in_taxonomy = {row["Term_ID"] for row in self._fetch_in("Term", "Term_ID", wanted, term.Taxonomy == taxonomy)}
        if missing := [t for t in term_ids if t not in in_taxonomy]:
            raise CloneTaxStoreError(f"Terms {missing} are not in taxonomy {taxonomy}")
        if not append:
            for stale in sorted((existing & in_taxonomy) - set(term_ids)):
                try:
                    post_term.filter((post_term.Post == post_id) & (post_term.Term == stale)).delete()
                except CATALOG_ERRORS as e:
                    raise CloneTaxStoreError(f"Failed to unlink post {post_id} from term {stale}: {e}") from e
        new_rows = [{"Post": post_id, "Term": t} for t in dict.fromkeys(term_ids) if t not in existing]
        if new_rows:
            self._insert("Post_Term", new_rows, defaults=set())
        return term_ids
