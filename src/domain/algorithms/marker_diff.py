from __future__ import annotations

from typing import Iterable, Mapping

from src.domain.models import MarkerDiff, MarkerState, MemberPresence


def renderable_members(
    members: Iterable[MemberPresence],
) -> dict[str, MemberPresence]:
    """Members that can be placed on the map, keyed by member id.

    A member without both coordinates is never rendered; later duplicates of
    the same id win.
    """

    out: dict[str, MemberPresence] = {}
    for m in members:
        if m.has_position:
            out[m.member_id] = m
    return out


def diff_markers(
    current: Mapping[str, MarkerState], members: Iterable[MemberPresence]
) -> MarkerDiff:
    """Minimal create/update/remove set turning `current` into `members`.

    Updates are only emitted when the position or the status changed, so
    diffing an unchanged roster yields an empty diff.
    """

    wanted = renderable_members(members)

    created: list[MemberPresence] = []
    updated: list[MemberPresence] = []
    for member_id, member in wanted.items():
        state = current.get(member_id)
        if state is None:
            created.append(member)
            continue
        if state.position != member.position or state.status != member.status:
            updated.append(member)

    removed = tuple(mid for mid in current if mid not in wanted)

    return MarkerDiff(created=tuple(created), updated=tuple(updated), removed=removed)
