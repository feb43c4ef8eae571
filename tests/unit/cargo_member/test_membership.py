"""Tests for membership delta ordering and set rules."""

from __future__ import annotations

from cargo_member.membership import MembershipDelta, apply_to_lists


def test_include_appends_and_drops_from_exclude() -> None:
    members, exclude, effective = apply_to_lists(["a", "b"], ["c", "d"], MembershipDelta.include(["c", "a"]))

    assert members == ["a", "b", "c"]
    assert exclude == ["d"]
    assert effective.add_members == ["c"]
    assert effective.remove_exclude == ["c"]


def test_exclude_removes_in_place_and_appends_to_exclude() -> None:
    members, exclude, _ = apply_to_lists(["a", "b", "c"], ["z"], MembershipDelta.exclude(["b"]))

    assert members == ["a", "c"]
    assert exclude == ["z", "b"]


def test_deactivate_removes_from_both_lists() -> None:
    members, exclude, effective = apply_to_lists(["a", "b"], ["c"], MembershipDelta.deactivate(["b", "c"]))

    assert members == ["a"]
    assert exclude == []
    assert effective.remove_members == ["b"]
    assert effective.remove_exclude == ["c"]


def test_applying_twice_is_idempotent() -> None:
    delta = MembershipDelta.include(["x", "x", "y"])
    once = apply_to_lists(["a"], ["x"], delta)
    twice = apply_to_lists(once[0], once[1], delta)

    assert once[:2] == twice[:2] == (["a", "x", "y"], [])
    assert twice[2].is_empty()


def test_include_then_deactivate_round_trips() -> None:
    members, exclude = ["a", "b"], ["c"]
    included = apply_to_lists(members, exclude, MembershipDelta.include(["new"]))
    restored = apply_to_lists(included[0], included[1], MembershipDelta.deactivate(["new"]))

    assert restored[:2] == (members, exclude)


def test_inputs_are_not_mutated() -> None:
    members, exclude = ["a"], ["b"]
    apply_to_lists(members, exclude, MembershipDelta.include(["b"]))

    assert members == ["a"]
    assert exclude == ["b"]


def test_merge_keeps_first_seen_order() -> None:
    merged = MembershipDelta.include(["t"]).merge(MembershipDelta.exclude(["a", "b"]))

    assert merged.add_members == ["t"]
    assert merged.remove_exclude == ["t"]
    assert merged.remove_members == ["a", "b"]
    assert merged.add_exclude == ["a", "b"]
    assert not merged.is_empty()
    assert MembershipDelta().is_empty()
