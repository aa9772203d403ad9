"""
Dot/index path access over JSON-like trees.

A path such as ``people.0.name.first`` walks mappings by key and sequences by
integer index. Writes are copy-on-write: only the containers along the path
are copied, everything else is shared with the input tree.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def split_path(path: str | None) -> list[str]:
    if not path or not path.strip():
        return []
    return [token for token in path.strip().split(".") if token]


def _as_index(token: str) -> int | None:
    try:
        index = int(token)
    except ValueError:
        return None
    return index if index >= 0 else None


def get_value_by_path(root: Any, path: str | None) -> Any:
    """Read the value at ``path``; ``None`` when any segment is missing."""
    tokens = split_path(path)
    if not tokens:
        return None

    current = root
    for token in tokens:
        if isinstance(current, Mapping):
            if token not in current:
                return None
            current = current[token]
        elif isinstance(current, list):
            index = _as_index(token)
            if index is None or index >= len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def _assign(container: Any, token: str, value: Any) -> Any | None:
    """Return a copy of ``container`` with ``token`` set, or ``None`` if the slot is invalid."""
    if isinstance(container, Mapping):
        updated = dict(container)
        updated[token] = value
        return updated
    if isinstance(container, list):
        index = _as_index(token)
        if index is None or index > len(container):
            return None
        updated_list = list(container)
        if index == len(updated_list):
            updated_list.append(value)
        else:
            updated_list[index] = value
        return updated_list
    return None


def _child(container: Any, token: str) -> tuple[bool, Any]:
    if isinstance(container, Mapping):
        child = container.get(token)
        if not isinstance(child, (Mapping, list)):
            # Missing or scalar intermediate mapping nodes are created empty.
            return True, {}
        return True, child
    if isinstance(container, list):
        index = _as_index(token)
        if index is None or index >= len(container):
            return False, None
        child = container[index]
        if not isinstance(child, (Mapping, list)):
            return False, None
        return True, child
    return False, None


def set_value_by_path(root: Any, path: str | None, value: Any) -> Any:
    """
    Return a new tree with ``value`` stored at ``path``.

    The input tree is never mutated. An empty path, a missing sequence slot
    along the way, or an index past the end of the final sequence leaves the
    tree untouched and returns ``root`` itself; callers detect the no-op with
    an identity check. Writing at index ``len(seq)`` appends.
    """
    tokens = split_path(path)
    if not tokens:
        return root

    chain: list[Any] = [root]
    for token in tokens[:-1]:
        ok, child = _child(chain[-1], token)
        if not ok:
            return root
        chain.append(child)

    updated = _assign(chain[-1], tokens[-1], value)
    if updated is None:
        return root

    for container, token in zip(reversed(chain[:-1]), reversed(tokens[:-1])):
        updated = _assign(container, token, updated)
        if updated is None:
            return root
    return updated


def path_has_prefix(path: str, prefix: str) -> bool:
    """Token-boundary prefix test: ``people`` matches ``people.0`` but not ``peopleCount``."""
    return path == prefix or path.startswith(f"{prefix}.")
