"""Diff semántico entre documentos de schemas.

Produce deltas con la codificación de jsondiffpatch para que cualquier
consumidor compatible (el formatter HTML incluido) pueda reproducirlos:

- añadido: ``[new]``
- modificado: ``[old, new]``
- eliminado: ``[old, 0, 0]``
- array: ``{"_t": "a", "<idx nuevo>": ..., "_<idx viejo>": ...}``
- movido: ``"_<idx viejo>": ["", <idx nuevo>, 3]``

Reglas del dominio:
- Los nodos de un array se emparejan por identidad (``IdentityStrategy``),
  no por posición: el orden de las colecciones no tiene significado.
- Las propiedades excluidas (``href``, ``apiEndpoint``) dependen del host del
  servidor y se ignoran a cualquier profundidad.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence

from core.domain.models import Delta, SchemaDocument

ARRAY_MOVE = 3
ARRAY_MARKER = "_t"


@dataclass(frozen=True)
class IdentityStrategy:
    """Resuelve la identidad de un nodo a partir de campos candidatos.

    Se usa el primer campo presente con un valor escalar no vacío. Un nodo sin
    ninguno de esos campos no tiene identidad y se empareja por igualdad
    estructural.
    """

    fields: tuple[str, ...] = ("singular", "singularName", "type")

    def __call__(self, node: Any) -> str | None:
        if not isinstance(node, Mapping):
            return None
        for field in self.fields:
            value = node.get(field)
            if isinstance(value, bool) or value is None or value == "":
                continue
            if isinstance(value, (str, int, float)):
                return str(value)
        return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same_scalar(a: Any, b: Any) -> bool:
    if _is_number(a) and _is_number(b):
        return a == b
    return type(a) is type(b) and a == b


class SemanticDiffer:
    """Calcula deltas con identidad semántica y filtro de propiedades."""

    def __init__(
        self,
        identity: IdentityStrategy | None = None,
        excluded_properties: Iterable[str] = ("href", "apiEndpoint"),
    ) -> None:
        self._identity = identity or IdentityStrategy()
        self._excluded = frozenset(excluded_properties)

    @property
    def identity(self) -> IdentityStrategy:
        return self._identity

    def diff(self, left: SchemaDocument, right: SchemaDocument) -> Delta:
        """Delta entre dos documentos; ``{}`` si no hay cambios semánticos."""

        delta = self.diff_values(left, right)
        return delta if delta is not None else {}

    def diff_values(self, left: Any, right: Any) -> Any | None:
        """Delta entre dos valores JSON arbitrarios; ``None`` si son equivalentes."""

        if isinstance(left, Mapping) and isinstance(right, Mapping):
            return self._diff_objects(left, right)
        if isinstance(left, list) and isinstance(right, list):
            return self._diff_arrays(left, right)
        if isinstance(left, (Mapping, list)) or isinstance(right, (Mapping, list)):
            return [left, right]
        if _same_scalar(left, right):
            return None
        return [left, right]

    def _diff_objects(self, left: Mapping[str, Any], right: Mapping[str, Any]) -> Delta | None:
        result: Delta = {}
        for key, value in left.items():
            if key in self._excluded:
                continue
            if key in right:
                child = self.diff_values(value, right[key])
                if child is not None:
                    result[key] = child
            else:
                result[key] = [value, 0, 0]
        for key, value in right.items():
            if key in self._excluded or key in left:
                continue
            result[key] = [value]
        return result or None

    def _diff_arrays(self, left: Sequence[Any], right: Sequence[Any]) -> Delta | None:
        result: Delta = {ARRAY_MARKER: "a"}
        match = self._matcher(left, right)
        len1, len2 = len(left), len(right)

        head = 0
        while head < len1 and head < len2 and match(head, head):
            self._nest(result, head, left[head], right[head])
            head += 1

        tail = 0
        while head + tail < len1 and head + tail < len2 and match(len1 - 1 - tail, len2 - 1 - tail):
            index1 = len1 - 1 - tail
            index2 = len2 - 1 - tail
            self._nest(result, index2, left[index1], right[index2])
            tail += 1

        if head + tail == len1:
            for index in range(head, len2 - tail):
                result[str(index)] = [right[index]]
        elif head + tail == len2:
            for index in range(head, len1 - tail):
                result[f"_{index}"] = [left[index], 0, 0]
        else:
            pairs = _lcs(list(range(head, len1 - tail)), list(range(head, len2 - tail)), match)
            matched_left = {index1 for index1, _ in pairs}
            matched_right = {index2: index1 for index1, index2 in pairs}

            removed: list[int] = []
            for index in range(head, len1 - tail):
                if index not in matched_left:
                    result[f"_{index}"] = [left[index], 0, 0]
                    removed.append(index)

            for index in range(head, len2 - tail):
                if index in matched_right:
                    self._nest(result, index, left[matched_right[index]], right[index])
                    continue
                for position, index1 in enumerate(removed):
                    if match(index1, index):
                        result[f"_{index1}"] = ["", index, ARRAY_MOVE]
                        self._nest(result, index, left[index1], right[index])
                        del removed[position]
                        break
                else:
                    result[str(index)] = [right[index]]

        return result if len(result) > 1 else None

    def _nest(self, result: Delta, index: int, left: Any, right: Any) -> None:
        child = self.diff_values(left, right)
        if child is not None:
            result[str(index)] = child

    def _matcher(self, left: Sequence[Any], right: Sequence[Any]) -> Callable[[int, int], bool]:
        cache: dict[tuple[int, int], bool] = {}

        def match(index1: int, index2: int) -> bool:
            key = (index1, index2)
            if key not in cache:
                cache[key] = self._items_match(left[index1], right[index2])
            return cache[key]

        return match

    def _items_match(self, a: Any, b: Any) -> bool:
        a_is_container = isinstance(a, (Mapping, list))
        b_is_container = isinstance(b, (Mapping, list))
        if not a_is_container and not b_is_container:
            return _same_scalar(a, b)
        if a_is_container != b_is_container:
            return False
        if isinstance(a, Mapping) and isinstance(b, Mapping):
            hash_a = self._identity(a)
            hash_b = self._identity(b)
            if hash_a is not None or hash_b is not None:
                return hash_a == hash_b
        return self.diff_values(a, b) is None


def _lcs(
    indices1: list[int],
    indices2: list[int],
    match: Callable[[int, int], bool],
) -> list[tuple[int, int]]:
    """Longest common subsequence sobre índices; devuelve pares emparejados."""

    n, m = len(indices1), len(indices2)
    matrix = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        for j in range(1, m + 1):
            if match(indices1[i - 1], indices2[j - 1]):
                matrix[i][j] = matrix[i - 1][j - 1] + 1
            else:
                matrix[i][j] = max(matrix[i - 1][j], matrix[i][j - 1])

    pairs: list[tuple[int, int]] = []
    i, j = n, m
    while i and j:
        if match(indices1[i - 1], indices2[j - 1]):
            pairs.append((indices1[i - 1], indices2[j - 1]))
            i -= 1
            j -= 1
        elif matrix[i][j - 1] > matrix[i - 1][j]:
            j -= 1
        else:
            i -= 1
    pairs.reverse()
    return pairs
