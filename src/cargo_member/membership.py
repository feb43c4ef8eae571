"""Membership deltas against `workspace.members` and `workspace.exclude`."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


def _unique(entries: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(entries))


@dataclass
class MembershipDelta:
    """Entries to add to / remove from the two workspace lists.

    Removals are applied before additions. Additions append at the end and
    skip entries already present, removals drop exact string matches, so
    applying a delta twice leaves the lists as applying it once.
    """

    add_members: list[str] = field(default_factory=list)
    remove_members: list[str] = field(default_factory=list)
    add_exclude: list[str] = field(default_factory=list)
    remove_exclude: list[str] = field(default_factory=list)

    @classmethod
    def include(cls, entries: Iterable[str]) -> MembershipDelta:
        entries = _unique(entries)
        return cls(add_members=entries, remove_exclude=list(entries))

    @classmethod
    def exclude(cls, entries: Iterable[str]) -> MembershipDelta:
        entries = _unique(entries)
        return cls(remove_members=entries, add_exclude=list(entries))

    @classmethod
    def deactivate(cls, entries: Iterable[str]) -> MembershipDelta:
        entries = _unique(entries)
        return cls(remove_members=entries, remove_exclude=list(entries))

    def merge(self, other: MembershipDelta) -> MembershipDelta:
        return MembershipDelta(
            add_members=_unique([*self.add_members, *other.add_members]),
            remove_members=_unique([*self.remove_members, *other.remove_members]),
            add_exclude=_unique([*self.add_exclude, *other.add_exclude]),
            remove_exclude=_unique([*self.remove_exclude, *other.remove_exclude]),
        )

    def is_empty(self) -> bool:
        return not (self.add_members or self.remove_members or self.add_exclude or self.remove_exclude)


def apply_to_lists(
    members: list[str],
    exclude: list[str],
    delta: MembershipDelta,
) -> tuple[list[str], list[str], MembershipDelta]:
    """Compute new lists and the effective delta (entries that actually changed).

    Pure function: the inputs are not modified.
    """
    new_members = list(members)
    new_exclude = list(exclude)
    effective = MembershipDelta()

    for entry in delta.remove_members:
        if entry in new_members:
            new_members = [m for m in new_members if m != entry]
            effective.remove_members.append(entry)
    for entry in delta.remove_exclude:
        if entry in new_exclude:
            new_exclude = [e for e in new_exclude if e != entry]
            effective.remove_exclude.append(entry)
    for entry in delta.add_members:
        if entry not in new_members:
            new_members.append(entry)
            effective.add_members.append(entry)
    for entry in delta.add_exclude:
        if entry not in new_exclude:
            new_exclude.append(entry)
            effective.add_exclude.append(entry)

    return new_members, new_exclude, effective
