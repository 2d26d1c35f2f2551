"""Command-line interface for cloning a taxonomy.

Clones taxonomy data (terms, term meta and post relationships) from one
taxonomy to another, empty, taxonomy.

Usage:
    clonetax product_cat new_product_cat --post_type=product \\
        --skip_meta_keys=category_alt_name,category_colour --database-url sqlite:///wordpress.db
    clonetax Anatomy Anatomy_v2 --hostname deriva.example.org --catalog 52
    clonetax category topic --config clonetax.yaml

Options given on the command line override the values of a --config file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import IO, Any

from deriva_clonetax.clone.cloner import TaxonomyCloner
from deriva_clonetax.core.config import build_config, load_config, make_store
from deriva_clonetax.core.definitions import Term, TraversalOrder
from deriva_clonetax.core.exceptions import CloneTaxException
from deriva_clonetax.core.logging_config import configure_logging


class ProgressBar:
    """Progress indicator on stderr, one tick per cloned term.

    On a terminal the line is redrawn on every tick; otherwise a line is written
    every `interval` ticks and at the end.
    """

    def __init__(self, label: str, total: int, interval: int = 100, stream: IO[str] | None = None):
        self.label = label
        self.total = total
        self.interval = max(interval, 1)
        self.stream = stream if stream is not None else sys.stderr
        self.completed = 0
        self._interactive = hasattr(self.stream, "isatty") and self.stream.isatty()

    def tick(self, term: Term | None = None, completed: int | None = None, total: int | None = None) -> None:
        self.completed = completed if completed is not None else self.completed + 1
        if total is not None:
            self.total = total
        if self._interactive:
            self._draw("\r")
        elif self.completed % self.interval == 0 or self.completed == self.total:
            self._draw("", "\n")

    def finish(self) -> None:
        if self._interactive:
            self._draw("\r", "\n")

    def _draw(self, prefix: str, suffix: str = "") -> None:
        percent = 100 * self.completed // self.total if self.total else 100
        self.stream.write(f"{prefix}{self.label}  {percent:3d}% ({self.completed}/{self.total}){suffix}")
        self.stream.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clonetax",
        description="Clone taxonomy data (terms, term meta and post relationships) from one taxonomy to another.",
        epilog=(
            "Example:\n"
            "  clonetax product_cat new_product_cat --post_type=product "
            "--skip_meta_keys=category_alt_name,category_colour --database-url sqlite:///wordpress.db\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("source_taxonomy", help="The source taxonomy to copy data from.")
    parser.add_argument(
        "target_taxonomy",
        help="The target taxonomy to copy data in to. This taxonomy cannot contain any existing terms.",
    )
    parser.add_argument(
        "--content_kind",
        "--post_type",
        dest="post_type",
        metavar="POST_TYPE",
        help="Name of the post type to copy term relationships for (default: post).",
    )
    parser.add_argument(
        "--skip_meta_keys",
        metavar="KEY1,KEY2",
        help="Comma separated list of term meta keys that should not be copied (default: none).",
    )
    parser.add_argument(
        "--order",
        choices=[o.value for o in TraversalOrder],
        help="Order in which source terms are cloned (default: hierarchy).",
    )
    parser.add_argument("--config", metavar="FILE", help="YAML file with default settings.")

    sql = parser.add_argument_group("SQL database")
    sql.add_argument("--database-url", dest="database_url", help="SQLAlchemy URL of a WordPress-style database.")
    sql.add_argument("--table-prefix", dest="table_prefix", help="Table prefix (default: wp_).")
    sql.add_argument(
        "--taxonomy",
        dest="taxonomies",
        action="append",
        metavar="NAME",
        help="Register a taxonomy that has no terms yet. May be repeated.",
    )
    sql.add_argument(
        "--post-type-name",
        dest="post_types",
        action="append",
        metavar="NAME",
        help="Register a post type that has no posts yet. May be repeated.",
    )

    catalog = parser.add_argument_group("Deriva catalog")
    catalog.add_argument("--hostname", help="Hostname of the Deriva server.")
    catalog.add_argument("--catalog", dest="catalog_id", metavar="ID", help="Catalog number. Default: 1")
    catalog.add_argument("--schema", dest="schema_name", help="Schema holding the taxonomy tables.")

    output = parser.add_mutually_exclusive_group()
    output.add_argument("--debug", action="store_true", help="Log every term, meta value and post relationship.")
    output.add_argument("--quiet", action="store_true", help="Only print errors and the final summary.")
    parser.add_argument("--json", action="store_true", help="Print the statistics as JSON.")
    return parser


def _settings(args: argparse.Namespace) -> dict[str, Any]:
    """Configuration values given on the command line; None means not given."""
    settings = {
        key: getattr(args, key)
        for key in (
            "source_taxonomy",
            "target_taxonomy",
            "post_type",
            "skip_meta_keys",
            "order",
            "database_url",
            "table_prefix",
            "taxonomies",
            "post_types",
            "hostname",
            "catalog_id",
            "schema_name",
        )
    }
    if args.debug:
        settings["logging_level"] = logging.DEBUG
    elif args.quiet:
        settings["logging_level"] = logging.ERROR
    return settings


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the clonetax CLI.

    Returns:
        Exit code (0 for success, 1 for failure). Usage errors exit with 2.
    """
    args = build_parser().parse_args(argv)
    settings = _settings(args)

    try:
        if args.config:
            config = load_config(args.config, **settings)
        else:
            config = build_config(**{k: v for k, v in settings.items() if v is not None})
        configure_logging(level=config.logging_level, store_level=config.store_logging_level)

        store = make_store(config)
        cloner = TaxonomyCloner(
            store,
            config.source_taxonomy,
            config.target_taxonomy,
            post_type=config.post_type,
            skip_meta_keys=config.skip_meta_keys,
            order=config.order,
        )
        terms = cloner.plan()
        if not args.quiet and not args.json:
            print(
                f"Cloning {len(terms)} terms from taxonomy {config.source_taxonomy} "
                f"to taxonomy {config.target_taxonomy}"
            )
        progress = ProgressBar("Cloning terms", len(terms))
        stats = cloner.run(terms, progress_callback=None if args.quiet else progress.tick)
        if not args.quiet:
            progress.finish()
    except CloneTaxException as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps({**cloner.context.describe(), "stats": stats.to_dict()}, indent=2))
    else:
        print(f"Success: {stats.summary()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
