"""Dotted-path access to parsed JSON documents.

Paths are dot separated keys, e.g. ``imdata.0.l1PhysIf.attributes.id``:

- numeric segments index arrays (and create arrays when writing into a
  missing node)
- ``-1`` appends to an array when writing
- ``#`` yields the length of an array when reading, and ``#.rest`` maps the
  remaining path over every element
- ``\\.`` escapes a literal dot inside a key
"""

from typing import Any, List

MISSING = object()


class PathError(ValueError):
    """Raised when a path cannot be applied to a document."""


def split_path(path: str) -> List[str]:
    """Split a dotted path into its keys, honouring ``\\.`` escapes."""
    if not path:
        return []
    keys = []
    current = []
    escaped = False
    for char in path:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ".":
            keys.append("".join(current))
            current = []
        else:
            current.append(char)
    if escaped:
        current.append("\\")
    keys.append("".join(current))
    return keys


def _is_index(key: str) -> bool:
    return key.isdigit()


def get_path(node: Any, keys: List[str]) -> Any:
    """Return the value at ``keys`` or ``MISSING``."""
    for position, key in enumerate(keys):
        if isinstance(node, list):
            if key == "#":
                rest = keys[position + 1:]
                if not rest:
                    return len(node)
                found = [get_path(item, rest) for item in node]
                return [item for item in found if item is not MISSING]
            if not _is_index(key):
                return MISSING
            index = int(key)
            if index >= len(node):
                return MISSING
            node = node[index]
        elif isinstance(node, dict):
            if key not in node:
                return MISSING
            node = node[key]
        else:
            return MISSING
    return node


def _container_for(key: str) -> Any:
    if _is_index(key) or key == "-1":
        return []
    return {}


def set_path(node: Any, keys: List[str], value: Any) -> Any:
    """Write ``value`` at ``keys`` and return the (possibly new) root node.

    Missing intermediate nodes are created: arrays for numeric keys, objects
    otherwise. Scalars standing in the way are replaced.
    """
    if not keys:
        raise PathError("empty path")
    key, rest = keys[0], keys[1:]

    if not isinstance(node, (dict, list)):
        node = _container_for(key)

    if isinstance(node, list):
        if key == "-1":
            index = len(node)
        elif _is_index(key):
            index = int(key)
        else:
            raise PathError(f"cannot set key {key!r} on an array")
        while len(node) <= index:
            node.append(None)
        node[index] = set_path(node[index], rest, value) if rest else value
        return node

    node[key] = set_path(node.get(key), rest, value) if rest else value
    return node


def delete_path(node: Any, keys: List[str]) -> bool:
    """Remove the value at ``keys`` in place. Returns False when absent."""
    if not keys:
        return False
    parent = get_path(node, keys[:-1])
    key = keys[-1]
    if isinstance(parent, dict):
        if key not in parent:
            return False
        del parent[key]
        return True
    if isinstance(parent, list) and _is_index(key) and int(key) < len(parent):
        del parent[int(key)]
        return True
    return False
