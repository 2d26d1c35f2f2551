"""Order in which source terms are cloned.

Cloning a term needs the clone of its parent, so parents have to be visited
before their children. Term ids say nothing about that: a term can be moved
under a parent that was created after it. order_terms() therefore walks the
hierarchy breadth-first from the roots unless the legacy ascending id order is
requested.

Example:
    ordered = order_terms(store.get_terms("category"), TraversalOrder.hierarchy)
"""

from __future__ import annotations

import logging
from collections import deque

from deriva_clonetax.core.definitions import ROOT_TERM_ID, Term, TermId, TraversalOrder

logger = logging.getLogger(__name__)


def order_terms(terms: list[Term], order: TraversalOrder | str = TraversalOrder.hierarchy) -> list[Term]:
    """Return terms in the order they should be cloned.

    Args:
        terms: Terms of one taxonomy.
        order: TraversalOrder.hierarchy visits roots first and then each level of
            children, siblings by ascending term id. TraversalOrder.term_id sorts by
            ascending term id only.

    Returns:
        A new list holding every term exactly once.
    """
    by_id = sorted(terms, key=lambda t: t.term_id)
    if TraversalOrder(order) == TraversalOrder.term_id:
        return by_id

    known = {t.term_id for t in by_id}
    children: dict[TermId, list[Term]] = {}
    roots: list[Term] = []
    for term in by_id:
        if term.parent == ROOT_TERM_ID or term.parent not in known or term.parent == term.term_id:
            if term.parent not in (ROOT_TERM_ID, term.term_id):
                logger.debug(f"Term {term.term_id} has parent {term.parent} outside the taxonomy, treating as root")
            roots.append(term)
        else:
            children.setdefault(term.parent, []).append(term)

    ordered: list[Term] = []
    visited: set[TermId] = set()

    def visit(start: list[Term]) -> None:
        queue = deque(start)
        while queue:
            term = queue.popleft()
            if term.term_id in visited:
                continue
            visited.add(term.term_id)
            ordered.append(term)
            queue.extend(children.get(term.term_id, []))

    visit(roots)

    # Terms left over hang off a parent cycle. Walk up from the lowest remaining
    # id until the walk repeats; the term reached is on the cycle and becomes a root.
    by_term = {t.term_id: t for t in by_id}
    while remaining := [t for t in by_id if t.term_id not in visited]:
        start, seen = remaining[0], set()
        while start.term_id not in seen:
            seen.add(start.term_id)
            start = by_term[start.parent]
        logger.warning(f"Term {start.term_id} is part of a parent cycle and will be cloned as a root")
        visit([start])
    return ordered
