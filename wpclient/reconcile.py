"""Bring a post's terms and metadata in line with a desired state.

The REST API only exposes single-item mutations (assign one term, delete
one metadata entry, ...), so replacing a whole set means diffing the
current state against the desired one and issuing one call per
difference. Calls are made one at a time. The first failing call aborts
the rest and its error propagates; mutations already issued are not rolled
back.

Every function returns the number of mutating calls it issued. Zero means
the server already matched the desired state.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

TermCall = Callable[[int, int], Any]


def reconcile_terms(
    entity_id: int,
    current_ids: Iterable[int],
    desired_ids: Optional[Iterable[int]],
    assign: TermCall,
    unassign: TermCall,
) -> int:
    """Assign missing and unassign extra term IDs.

    Order and duplicates in both inputs are ignored. ``desired_ids=None``
    leaves the terms untouched, while an empty iterable clears them.

    Every error from ``assign`` or ``unassign`` propagates, including a
    server report that the term was already assigned or already absent.
    Such conflicts only arise from a concurrent writer, and the status code
    alone cannot tell them apart from a missing post.
    """
    if desired_ids is None:
        return 0

    current = set(current_ids)
    desired = set(desired_ids)
    to_add = sorted(desired - current)
    to_remove = sorted(current - desired)

    for term_id in to_add:
        logger.debug("Assigning term %s to %s", term_id, entity_id)
        assign(entity_id, term_id)
    for term_id in to_remove:
        logger.debug("Removing term %s from %s", term_id, entity_id)
        unassign(entity_id, term_id)

    return len(to_add) + len(to_remove)


def same_value(a: Any, b: Any) -> bool:
    """Deep value equality that keeps booleans apart from numbers."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(same_value(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(same_value(x, y) for x, y in zip(a, b))
    return a == b


def reconcile_metadata(
    entity_id: int,
    current_meta: Mapping[str, Tuple[Any, int]],
    desired_meta: Optional[Mapping[str, Any]],
    create: Callable[[int, str, Any], Any],
    update: Callable[[int, int, Any], Any],
    delete: Callable[[int, int], Any],
) -> int:
    """Create, update and delete metadata entries until they match ``desired_meta``.

    ``current_meta`` maps each key to ``(value, entry id)``; the entry ID is
    what the server needs to update or delete it.
    """
    if desired_meta is None:
        return 0

    calls = 0
    for key in sorted(set(current_meta) | set(desired_meta)):
        if key not in current_meta:
            logger.debug("Creating meta %r on %s", key, entity_id)
            create(entity_id, key, desired_meta[key])
        elif key not in desired_meta:
            logger.debug("Deleting meta %r from %s", key, entity_id)
            delete(entity_id, current_meta[key][1])
        else:
            value, meta_id = current_meta[key]
            if same_value(value, desired_meta[key]):
                continue
            logger.debug("Updating meta %r on %s", key, entity_id)
            update(entity_id, meta_id, desired_meta[key])
        calls += 1
    return calls


# Bound to a Connection ---------------------------------------------------
def _term_calls(connection, taxonomy: str) -> Tuple[TermCall, TermCall]:
    def assign(post_id: int, term_id: int) -> bool:
        return connection.create_without_response(f"posts/{post_id}/terms/{taxonomy}/{term_id}", {})

    def unassign(post_id: int, term_id: int) -> bool:
        return connection.delete(f"posts/{post_id}/terms/{taxonomy}/{term_id}", {"force": True})

    return assign, unassign


def apply_categories(connection, post, category_ids: Optional[Iterable[int]]) -> int:
    assign, unassign = _term_calls(connection, "category")
    return reconcile_terms(post.id, post.category_ids, category_ids, assign, unassign)


def apply_tags(connection, post, tag_ids: Optional[Iterable[int]]) -> int:
    assign, unassign = _term_calls(connection, "tag")
    return reconcile_terms(post.id, post.tag_ids, tag_ids, assign, unassign)


def apply_metadata(connection, post, meta: Optional[Mapping[str, Any]]) -> int:
    def create(post_id: int, key: str, value: Any) -> bool:
        return connection.create_without_response(f"posts/{post_id}/meta", {"key": key, "value": value})

    def update(post_id: int, meta_id: int, value: Any) -> bool:
        return connection.patch_without_response(f"posts/{post_id}/meta/{meta_id}", {"value": value})

    def delete(post_id: int, meta_id: int) -> bool:
        return connection.delete(f"posts/{post_id}/meta/{meta_id}", {"force": True})

    return reconcile_metadata(post.id, post.meta_entries(), meta, create, update, delete)
