from __future__ import annotations

import copy

from conftest import make_schema

from core.services.delta_report import build_delta_report
from core.services.semantic_differ import SemanticDiffer


def _report(left, right):
    differ = SemanticDiffer()
    delta = differ.diff(left, right)
    return build_delta_report(left, right, delta, differ.identity)


def test_empty_delta_gives_empty_report(schema_document):
    report = _report(schema_document, copy.deepcopy(schema_document))

    assert report.is_empty
    assert report.collections == []


def test_report_lists_changes_by_identity(schema_document):
    right = copy.deepcopy(schema_document)
    right["schemas"].pop(1)  # indicator
    right["schemas"][0]["shareable"] = False  # dataElement
    right["schemas"].append(make_schema("program"))

    report = _report(schema_document, right)

    changes = {(c.identity, c.kind) for c in report.collections[0].changes}
    assert changes == {
        ("indicator", "removed"),
        ("dataElement", "modified"),
        ("program", "added"),
    }
    modified = next(c for c in report.collections[0].changes if c.kind == "modified")
    assert modified.changed_fields == ["shareable"]
    assert report.totals() == {"added": 1, "removed": 1, "moved": 0, "modified": 1}


def test_moves_are_not_reported_twice(schema_document):
    left = schema_document
    moved = copy.deepcopy(left["schemas"][0])
    moved["plural"] = "dataElementz"
    right = {"schemas": [left["schemas"][1], left["schemas"][2], moved]}

    report = _report(left, right)

    changes = report.collections[0].changes
    assert [(c.identity, c.kind, c.index) for c in changes] == [("dataElement", "moved", 2)]
    assert changes[0].changed_fields == ["plural"]


def test_non_array_collections():
    report = _report({"meta2": {"a": 1}, "old": 1}, {"meta2": {"a": 2}, "new": 1})

    kinds = {c.name: c.changes[0].kind for c in report.collections}
    assert kinds == {"meta2": "modified", "old": "removed", "new": "added"}
