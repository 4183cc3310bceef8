# domain/groups.py
from __future__ import annotations

from typing import Sequence

from domain.league import round_robin_rounds
from domain.models import MatchSlot, ScheduledMatch
from domain.slots import SlotAllocator, SlotPolicy


def generate_group_stage_schedule(
    groups: Sequence[tuple[int, Sequence[int]]],
    policy: SlotPolicy,
    *,
    allocator: SlotAllocator | None = None,
) -> list[ScheduledMatch]:
    """
    Round-robin inside every group, then one merged timetable: round 1 of each
    group (in the given group order), then round 2 of each group, and so on.
    Teams never meet across groups here; advancement to a knockout stage is
    left to the operator.
    """
    per_group = [(group_id, round_robin_rounds(team_ids)) for group_id, team_ids in groups]
    max_rounds = max((len(rounds) for _, rounds in per_group), default=0)

    alloc = allocator or SlotAllocator(policy)
    out: list[ScheduledMatch] = []
    match_no = 1
    for r in range(max_rounds):
        for group_id, rounds in per_group:
            if r >= len(rounds):
                continue
            for home, away in rounds[r]:
                when, venue = alloc.next_slot()
                out.append(
                    ScheduledMatch(
                        round_no=r + 1,
                        match_no=match_no,
                        group_id=group_id,
                        home=MatchSlot(team_id=home),
                        away=MatchSlot(team_id=away),
                        scheduled_at=when,
                        venue=venue,
                    )
                )
                match_no += 1
    return out
