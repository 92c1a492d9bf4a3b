# -*- coding: utf-8 -*-
from collections import Counter

from gtfs_loader.processors.transform import (
    has_self_reference,
    reorder_rows,
    self_reference_index,
)

STOPS_HEADER = ["stop_id", "stop_name", "parent_station"]


def test_other_tables_pass_through_untouched():
    rows = iter([("1", "Acme")])
    assert reorder_rows("agency", ["agency_id", "agency_name"], rows) is rows


def test_stops_without_parent_column_pass_through():
    rows = [("B", "Stop B"), ("A", "Stop A")]
    assert reorder_rows("stops", ["stop_id", "stop_name"], rows) is rows


def test_parents_come_before_children_in_stable_order():
    rows = [
        ("C1", "Child 1", "P1"),
        ("P1", "Parent 1", None),
        ("C2", "Child 2", "P2"),
        ("P2", "Parent 2", ""),
        ("S", "Standalone", None),
    ]
    result = reorder_rows("stops", STOPS_HEADER, rows)
    assert [row[0] for row in result] == ["P1", "P2", "S", "C1", "C2"]


def test_reorder_is_idempotent_and_keeps_rows():
    rows = [
        ("C1", "Child 1", "P1"),
        ("P1", "Parent 1", None),
        ("C2", "Child 2", "P1"),
        ("P2", "Parent 2", None),
    ]
    once = reorder_rows("stops", STOPS_HEADER, rows)
    twice = reorder_rows("stops", STOPS_HEADER, once)
    assert twice == once
    assert Counter(once) == Counter(rows)


def test_parent_column_position_is_taken_from_header():
    header = ["parent_station", "stop_id"]
    rows = [("A", "B"), (None, "A")]
    assert reorder_rows("stops", header, rows) == [(None, "A"), ("A", "B")]


def test_short_rows_count_as_parents():
    rows = [("B", "Stop B", "A"), ("A", "Stop A")]
    assert reorder_rows("stops", STOPS_HEADER, rows) == [("A", "Stop A"), ("B", "Stop B", "A")]


def test_reorder_accepts_a_generator():
    rows = (row for row in [("B", "Stop B", "A"), ("A", "Stop A", None)])
    assert [row[0] for row in reorder_rows("stops", STOPS_HEADER, rows)] == ["A", "B"]


def test_self_reference_helpers():
    assert self_reference_index("stops", STOPS_HEADER) == 2
    assert self_reference_index("stops", ["stop_id"]) is None
    assert self_reference_index("routes", ["parent_station"]) is None
    assert has_self_reference(("B", "Stop B", "A"), 2) is True
    assert has_self_reference(("A", "Stop A", ""), 2) is False
    assert has_self_reference(("A",), 2) is False
