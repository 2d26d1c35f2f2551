"""TaxonomyStore on a WordPress-style relational database.

SQLTaxonomyStore drives the classic WordPress term tables through SQLAlchemy Core:

    {prefix}terms               term_id, name, slug, term_group
    {prefix}term_taxonomy       term_taxonomy_id, term_id, taxonomy, description, parent, count
    {prefix}termmeta            meta_id, term_id, meta_key, meta_value
    {prefix}term_relationships  object_id, term_taxonomy_id, term_order
    {prefix}posts               ID, post_type, post_title, post_status

Each store call runs in its own transaction. Nothing spans calls, so an
interrupted clone leaves whatever was committed so far.

WordPress registers taxonomies and post types in code rather than in the
database. The store therefore knows a taxonomy (post type) if it was passed to
the constructor or if rows for it already exist.

Example:
    store = SQLTaxonomyStore.from_url("mysql+pymysql://wp@localhost/wordpress", taxonomies=["topic"])
    store.count_terms("topic")
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from sqlalchemy import (
    Column,
    Engine,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    exists,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeDecorator

from deriva_clonetax.core.definitions import ROOT_TERM_ID, InsertedTerm, Term, TermId
from deriva_clonetax.core.exceptions import CloneTaxStoreError, TermInsertError
from deriva_clonetax.core.validation import slugify

logger = logging.getLogger(__name__)


class MetaValue(TypeDecorator):
    """Meta values are text. Strings are stored verbatim, anything else as JSON."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value)


def define_tables(metadata: MetaData, prefix: str = "wp_") -> dict[str, Table]:
    """Define the term tables on metadata and return them by unprefixed name."""
    terms = Table(
        f"{prefix}terms",
        metadata,
        Column("term_id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(200), nullable=False, default=""),
        Column("slug", String(200), nullable=False, default="", index=True),
        Column("term_group", Integer, nullable=False, default=0),
    )
    term_taxonomy = Table(
        f"{prefix}term_taxonomy",
        metadata,
        Column("term_taxonomy_id", Integer, primary_key=True, autoincrement=True),
        Column("term_id", Integer, ForeignKey(terms.c.term_id), nullable=False),
        Column("taxonomy", String(32), nullable=False, default="", index=True),
        Column("description", Text, nullable=False, default=""),
        Column("parent", Integer, nullable=False, default=0),
        Column("count", Integer, nullable=False, default=0),
        UniqueConstraint("term_id", "taxonomy"),
    )
    termmeta = Table(
        f"{prefix}termmeta",
        metadata,
        Column("meta_id", Integer, primary_key=True, autoincrement=True),
        Column("term_id", Integer, nullable=False, default=0, index=True),
        Column("meta_key", String(255), index=True),
        Column("meta_value", MetaValue),
    )
    posts = Table(
        f"{prefix}posts",
        metadata,
        Column("ID", Integer, primary_key=True, autoincrement=True),
        Column("post_type", String(20), nullable=False, default="post", index=True),
        Column("post_title", Text, nullable=False, default=""),
        Column("post_status", String(20), nullable=False, default="publish"),
    )
    term_relationships = Table(
        f"{prefix}term_relationships",
        metadata,
        Column("object_id", Integer, primary_key=True, default=0),
        Column("term_taxonomy_id", Integer, primary_key=True, default=0, index=True),
        Column("term_order", Integer, nullable=False, default=0),
    )
    return {
        "terms": terms,
        "term_taxonomy": term_taxonomy,
        "termmeta": termmeta,
        "posts": posts,
        "term_relationships": term_relationships,
    }


class SQLTaxonomyStore:
    """TaxonomyStore implementation for WordPress-style SQL databases.

    Attributes:
        engine: SQLAlchemy engine the store talks to.
        table_prefix: Prefix of the WordPress tables.
        metadata: SQLAlchemy MetaData holding the table definitions.
    """

    def __init__(
        self,
        engine: Engine,
        table_prefix: str = "wp_",
        taxonomies: Iterable[str] | None = None,
        post_types: Iterable[str] | None = None,
    ):
        self.engine = engine
        self.table_prefix = table_prefix
        self.metadata = MetaData()
        tables = define_tables(self.metadata, table_prefix)
        self.terms = tables["terms"]
        self.term_taxonomy = tables["term_taxonomy"]
        self.termmeta = tables["termmeta"]
        self.posts = tables["posts"]
        self.term_relationships = tables["term_relationships"]
        self._taxonomies = set(taxonomies or [])
        self._post_types = set(post_types or [])

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "SQLTaxonomyStore":
        """Create a store for a SQLAlchemy database URL."""
        try:
            engine = create_engine(url, future=True)
        except (SQLAlchemyError, ImportError) as e:
            raise CloneTaxStoreError(f"Cannot connect to {url}: {e}") from e
        return cls(engine, **kwargs)

    def create_schema(self) -> None:
        """Create the term tables if they do not exist yet."""
        self.metadata.create_all(self.engine)

    def register_taxonomy(self, taxonomy: str) -> None:
        self._taxonomies.add(taxonomy)

    def register_post_type(self, post_type: str) -> None:
        self._post_types.add(post_type)

    def add_post(self, post_type: str, title: str = "", post_id: int | None = None) -> int:
        """Insert a post row and return its ID."""
        values: dict[str, Any] = {"post_type": post_type, "post_title": title}
        if post_id is not None:
            values["ID"] = post_id
        with self.engine.begin() as conn:
            result = conn.execute(insert(self.posts).values(**values))
            return result.inserted_primary_key[0]

    def get_post_terms(self, post_id: int, taxonomy: str) -> list[TermId]:
        """Term ids of a taxonomy related to a post."""
        tt = self.term_taxonomy
        tr = self.term_relationships
        stmt = (
            select(tt.c.term_id)
            .join(tr, tr.c.term_taxonomy_id == tt.c.term_taxonomy_id)
            .where(tr.c.object_id == post_id, tt.c.taxonomy == taxonomy)
            .order_by(tt.c.term_id)
        )
        with self.engine.connect() as conn:
            return list(conn.scalars(stmt))

    # ------------------------------------------------------------------
    # TaxonomyStore protocol
    # ------------------------------------------------------------------

    def taxonomy_exists(self, taxonomy: str) -> bool:
        if taxonomy in self._taxonomies:
            return True
        stmt = select(exists().where(self.term_taxonomy.c.taxonomy == taxonomy))
        return bool(self._scalar(stmt))

    def post_type_exists(self, post_type: str) -> bool:
        if post_type in self._post_types:
            return True
        stmt = select(exists().where(self.posts.c.post_type == post_type))
        return bool(self._scalar(stmt))

    def count_terms(self, taxonomy: str, hide_empty: bool = False) -> int:
        stmt = select(func.count()).select_from(self.term_taxonomy).where(self._taxonomy_clause(taxonomy, hide_empty))
        return int(self._scalar(stmt))

    def get_terms(self, taxonomy: str, hide_empty: bool = False) -> list[Term]:
        t = self.terms
        tt = self.term_taxonomy
        stmt = (
            select(
                t.c.term_id,
                t.c.name,
                t.c.slug,
                tt.c.description,
                tt.c.parent,
                tt.c.taxonomy,
                tt.c.term_taxonomy_id,
            )
            .join(tt, tt.c.term_id == t.c.term_id)
            .where(self._taxonomy_clause(taxonomy, hide_empty))
            .order_by(t.c.term_id)
        )
        try:
            with self.engine.connect() as conn:
                return [Term.model_validate(dict(row._mapping)) for row in conn.execute(stmt)]
        except SQLAlchemyError as e:
            raise CloneTaxStoreError(f"Failed to read terms of {taxonomy}: {e}") from e

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
        t = self.terms
        tt = self.term_taxonomy
        try:
            with self.engine.begin() as conn:
                duplicate = conn.scalar(
                    select(exists().where(t.c.slug == slug, tt.c.term_id == t.c.term_id, tt.c.taxonomy == taxonomy))
                )
                if duplicate:
                    raise TermInsertError("term_exists", name, taxonomy, f"a term with slug {slug} already exists")
                if parent != ROOT_TERM_ID and not conn.scalar(
                    select(exists().where(tt.c.term_id == parent, tt.c.taxonomy == taxonomy))
                ):
                    raise TermInsertError("missing_parent", name, taxonomy, f"parent term {parent} does not exist")
                term_id = conn.execute(insert(t).values(name=name, slug=slug)).inserted_primary_key[0]
                term_taxonomy_id = conn.execute(
                    insert(tt).values(term_id=term_id, taxonomy=taxonomy, description=description, parent=parent)
                ).inserted_primary_key[0]
        except SQLAlchemyError as e:
            raise TermInsertError("db_insert_error", name, taxonomy, str(e)) from e
        logger.debug(f"Inserted term {term_id} ({name}) into {taxonomy}")
        return InsertedTerm(term_id=term_id, term_taxonomy_id=term_taxonomy_id)

    def get_term_meta(self, term_id: TermId) -> dict[str, list[Any]]:
        tm = self.termmeta
        stmt = select(tm.c.meta_key, tm.c.meta_value).where(tm.c.term_id == term_id).order_by(tm.c.meta_id)
        meta: dict[str, list[Any]] = {}
        try:
            with self.engine.connect() as conn:
                for key, value in conn.execute(stmt):
                    meta.setdefault(key, []).append(value)
        except SQLAlchemyError as e:
            raise CloneTaxStoreError(f"Failed to read meta of term {term_id}: {e}") from e
        return meta

    def add_term_meta(self, term_id: TermId, key: str, value: Any, unique: bool = False) -> int:
        tm = self.termmeta
        try:
            with self.engine.begin() as conn:
                if unique and conn.scalar(select(exists().where(tm.c.term_id == term_id, tm.c.meta_key == key))):
                    raise CloneTaxStoreError(f"Term {term_id} already has meta {key}")
                result = conn.execute(insert(tm).values(term_id=term_id, meta_key=key, meta_value=value))
                return result.inserted_primary_key[0]
        except (SQLAlchemyError, TypeError, ValueError) as e:
            raise CloneTaxStoreError(f"Failed to add meta {key} to term {term_id}: {e}") from e

    def get_posts(
        self,
        post_type: str,
        taxonomy: str,
        term_id: TermId,
        include_children: bool = False,
    ) -> list[int]:
        p = self.posts
        tt = self.term_taxonomy
        tr = self.term_relationships
        try:
            with self.engine.connect() as conn:
                wanted = {term_id}
                if include_children:
                    frontier = {term_id}
                    while frontier:
                        children = set(
                            conn.scalars(select(tt.c.term_id).where(tt.c.taxonomy == taxonomy, tt.c.parent.in_(frontier)))
                        )
                        frontier = children - wanted
                        wanted |= frontier
                stmt = (
                    select(p.c.ID)
                    .distinct()
                    .join(tr, tr.c.object_id == p.c.ID)
                    .join(tt, tt.c.term_taxonomy_id == tr.c.term_taxonomy_id)
                    .where(p.c.post_type == post_type, tt.c.taxonomy == taxonomy, tt.c.term_id.in_(wanted))
                    .order_by(p.c.ID)
                )
                return list(conn.scalars(stmt))
        except SQLAlchemyError as e:
            raise CloneTaxStoreError(f"Failed to query posts for term {term_id}: {e}") from e

    def set_post_terms(
        self,
        post_id: int,
        term_ids: Iterable[TermId],
        taxonomy: str,
        append: bool = True,
    ) -> list[int]:
        term_ids = list(term_ids)
        tt = self.term_taxonomy
        tr = self.term_relationships
        try:
            with self.engine.begin() as conn:
                if not conn.scalar(select(exists().where(self.posts.c.ID == post_id))):
                    raise CloneTaxStoreError(f"Post {post_id} does not exist")
                tt_ids = dict(
                    conn.execute(
                        select(tt.c.term_id, tt.c.term_taxonomy_id).where(
                            tt.c.taxonomy == taxonomy, tt.c.term_id.in_(term_ids)
                        )
                    ).all()
                )
                if missing := [t for t in term_ids if t not in tt_ids]:
                    raise CloneTaxStoreError(f"Terms {missing} are not in taxonomy {taxonomy}")
                taxonomy_tt_ids = select(tt.c.term_taxonomy_id).where(tt.c.taxonomy == taxonomy)
                affected = set(tt_ids.values())
                if not append:
                    affected |= set(
                        conn.scalars(
                            select(tr.c.term_taxonomy_id).where(
                                tr.c.object_id == post_id, tr.c.term_taxonomy_id.in_(taxonomy_tt_ids)
                            )
                        )
                    )
                    conn.execute(
                        delete(tr).where(tr.c.object_id == post_id, tr.c.term_taxonomy_id.in_(taxonomy_tt_ids))
                    )
                existing = set(conn.scalars(select(tr.c.term_taxonomy_id).where(tr.c.object_id == post_id)))
                new_rows = [
                    {"object_id": post_id, "term_taxonomy_id": tt_id}
                    for tt_id in dict.fromkeys(tt_ids[t] for t in term_ids)
                    if tt_id not in existing
                ]
                if new_rows:
                    conn.execute(insert(tr), new_rows)
                self._update_term_counts(conn, affected)
        except SQLAlchemyError as e:
            raise CloneTaxStoreError(f"Failed to relate post {post_id} to terms {term_ids}: {e}") from e
        return [tt_ids[t] for t in term_ids]

    # ------------------------------------------------------------------

    def _taxonomy_clause(self, taxonomy: str, hide_empty: bool):
        tt = self.term_taxonomy
        clause = tt.c.taxonomy == taxonomy
        if hide_empty:
            tr = self.term_relationships
            clause = clause & exists().where(tr.c.term_taxonomy_id == tt.c.term_taxonomy_id)
        return clause

    def _update_term_counts(self, conn, term_taxonomy_ids: set[int]) -> None:
        if not term_taxonomy_ids:
            return
        tt = self.term_taxonomy
        tr = self.term_relationships
        related = (
            select(func.count())
            .select_from(tr)
            .where(tr.c.term_taxonomy_id == tt.c.term_taxonomy_id)
            .correlate(tt)
            .scalar_subquery()
        )
        conn.execute(update(tt).where(tt.c.term_taxonomy_id.in_(term_taxonomy_ids)).values(count=related))

    def _scalar(self, stmt) -> Any:
        try:
            with self.engine.connect() as conn:
                return conn.scalar(stmt)
        except SQLAlchemyError as e:
            raise CloneTaxStoreError(f"Store query failed: {e}") from e
