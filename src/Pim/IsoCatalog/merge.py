"""Layered merge for configuration trees.

Catalog fragments, runtime settings, and profiles are all assembled from
several YAML layers.  Each layer is merged over the previous one with the same
rule: the overlay wins key by key, nested mappings merge recursively, and an
explicit ``None`` in the overlay never erases a value from the base.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

__all__ = ["deep_merge", "merge_layers"]


def deep_merge(
    base: Optional[Mapping[str, Any]],
    overlay: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """Return a new mapping combining ``base`` with ``overlay``.

    Args:
        base: Lower-precedence layer; ``None`` is treated as absent.
        overlay: Higher-precedence layer; ``None`` is treated as absent.

    Returns:
        Fresh dictionary holding the union of keys.  Neither input is mutated;
        nested mappings in the result are fresh copies as well.

    Examples:
        >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}, "b": None})
        {'a': {'x': 1, 'y': 3}, 'b': None}
        >>> deep_merge({"a": 1}, {"a": None})
        {'a': 1}
    """

    if base is None:
        return _copy_tree(overlay or {})
    if overlay is None:
        return _copy_tree(base)

    merged = _copy_tree(base)
    for key, new_value in overlay.items():
        if key not in merged:
            merged[key] = _copy_value(new_value)
            continue
        old_value = merged[key]
        if new_value is None:
            continue
        if isinstance(old_value, Mapping) and isinstance(new_value, Mapping):
            merged[key] = deep_merge(old_value, new_value)
        else:
            merged[key] = _copy_value(new_value)
    return merged


def merge_layers(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Fold ``layers`` left to right with :func:`deep_merge`."""

    merged: Dict[str, Any] = {}
    for layer in layers:
        merged = deep_merge(merged, layer)
    return merged


def _copy_tree(tree: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: _copy_value(value) for key, value in tree.items()}


def _copy_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return _copy_tree(value)
    if isinstance(value, list):
        return [_copy_value(item) for item in value]
    return value
