"""
DeepKeySearch: depth-first search over an arbitrary parsed-JSON tree.

Nodes are one of three shapes: object (dict), array (list) or scalar.
Traversal is iterative so the depth bound, not the interpreter's
recursion limit, decides how deep the search goes; hitting the bound
means "not found".
"""

from typing import Any, Callable, Optional, Sequence, Union

DEFAULT_MAX_DEPTH = 1000

Predicate = Callable[[Any], bool]
KeyPath = Union[str, Sequence[Union[str, int]]]

_MISSING = object()


def _split_path(path: KeyPath) -> Sequence[Union[str, int]]:
    if isinstance(path, str):
        return [part for part in path.split(".") if part]
    return list(path)


def get_path(node: Any, path: KeyPath, default: Any = None) -> Any:
    """
    Explicit path access: get_path(data, "a.b.0.c").

    String parts index dicts; int parts (or digit strings) index lists.
    Any miss returns `default`.
    """
    current = node
    for part in _split_path(path):
        if isinstance(current, dict):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, list):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return default
        else:
            return default
    return current


def has_key_path(path: KeyPath) -> Predicate:
    """Predicate: the node is an object on which `path` resolves."""
    parts = _split_path(path)

    def predicate(node: Any) -> bool:
        return isinstance(node, dict) and get_path(node, parts, _MISSING) is not _MISSING

    return predicate


def find_first(root: Any, predicate: Predicate, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[Any]:
    """
    First node (pre-order, insertion/array order) satisfying `predicate`.

    Args:
        root: Parsed JSON value
        predicate: Called on every object, array and scalar
        max_depth: Nodes deeper than this are never visited

    Returns:
        The matching node, or None if nothing matches within the bound
    """
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if predicate(node):
            return node
        if depth >= max_depth:
            continue
        if isinstance(node, dict):
            children = list(node.values())
        elif isinstance(node, list):
            children = node
        else:
            continue
        # Reversed so the first child is popped first
        for child in reversed(children):
            stack.append((child, depth + 1))
    return None


def find_value(root: Any, path: KeyPath, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[Any]:
    """Value at `path` under the first object anywhere in `root` that carries it."""
    node = find_first(root, has_key_path(path), max_depth=max_depth)
    if node is None:
        return None
    return get_path(node, path)
