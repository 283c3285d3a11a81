"""Construcción del resumen legible de un delta.

Traduce la codificación de jsondiffpatch a cambios por nodo (added, removed,
moved, modified) identificados semánticamente, para la tabla de la CLI y la
cabecera de la visualización HTML.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from core.domain.models import (
    CollectionChanges,
    Delta,
    DeltaReport,
    NodeChange,
    SchemaDocument,
)
from core.services.semantic_differ import ARRAY_MARKER, ARRAY_MOVE, IdentityStrategy


def _node_label(node: Any, index: int, identity: IdentityStrategy) -> str:
    value = identity(node)
    if value is not None:
        return value
    if isinstance(node, (Mapping, list)):
        return f"#{index}"
    return str(node)


def _changed_fields(nested: Any) -> list[str]:
    if isinstance(nested, dict):
        return sorted(k for k in nested if k != ARRAY_MARKER)
    return []


def _at(items: Any, index: int) -> Any:
    if isinstance(items, Sequence) and not isinstance(items, str) and 0 <= index < len(items):
        return items[index]
    return None


def _array_changes(
    left_items: Any,
    right_items: Any,
    delta: Mapping[str, Any],
    identity: IdentityStrategy,
) -> list[NodeChange]:
    changes: list[NodeChange] = []
    moved_to: set[str] = set()

    old_keys = sorted((k for k in delta if k.startswith("_") and k != ARRAY_MARKER), key=lambda k: int(k[1:]))
    for key in old_keys:
        old_index = int(key[1:])
        entry = delta[key]
        node = _at(left_items, old_index)
        if len(entry) == 3 and entry[2] == ARRAY_MOVE:
            new_index = int(entry[1])
            moved_to.add(str(new_index))
            changes.append(
                NodeChange(
                    identity=_node_label(node, old_index, identity),
                    kind="moved",
                    index=new_index,
                    changed_fields=_changed_fields(delta.get(str(new_index))),
                )
            )
        else:
            changes.append(
                NodeChange(
                    identity=_node_label(entry[0], old_index, identity),
                    kind="removed",
                    index=old_index,
                )
            )

    new_keys = sorted((k for k in delta if not k.startswith("_") and k not in moved_to), key=int)
    for key in new_keys:
        new_index = int(key)
        entry = delta[key]
        if isinstance(entry, list) and len(entry) == 1:
            changes.append(
                NodeChange(identity=_node_label(entry[0], new_index, identity), kind="added", index=new_index)
            )
            continue
        node = _at(right_items, new_index)
        changes.append(
            NodeChange(
                identity=_node_label(node, new_index, identity),
                kind="modified",
                index=new_index,
                changed_fields=_changed_fields(entry),
            )
        )
    return changes


def _value_change(name: str, entry: Any) -> NodeChange:
    if isinstance(entry, list) and len(entry) == 1:
        return NodeChange(identity=name, kind="added")
    if isinstance(entry, list) and len(entry) == 3 and entry[1:] == [0, 0]:
        return NodeChange(identity=name, kind="removed")
    return NodeChange(identity=name, kind="modified", changed_fields=_changed_fields(entry))


def build_delta_report(
    left: SchemaDocument,
    right: SchemaDocument,
    delta: Delta,
    identity: IdentityStrategy | None = None,
) -> DeltaReport:
    """Resume `delta` por colección de primer nivel."""

    identity = identity or IdentityStrategy()
    collections: list[CollectionChanges] = []
    for name in sorted(delta):
        entry = delta[name]
        if isinstance(entry, dict) and entry.get(ARRAY_MARKER) == "a":
            changes = _array_changes(left.get(name), right.get(name), entry, identity)
        else:
            changes = [_value_change(name, entry)]
        collections.append(CollectionChanges(name=name, changes=changes))
    return DeltaReport(collections=collections)
