# domain/league.py
from __future__ import annotations

from typing import Optional, Sequence

from domain.models import MatchSlot, ScheduledMatch
from domain.slots import SlotAllocator, SlotPolicy


def round_robin_rounds(team_ids: Sequence[int]) -> list[list[tuple[int, int]]]:
    """
    Circle method: the last entrant stays fixed, everyone else rotates one
    position per round. Odd counts get a phantom entrant; whoever meets it
    sits that round out. The fixed entrant alternates home/away.

    Returns rounds of (home, away) pairs; every unordered pair appears once.
    """
    entrants: list[Optional[int]] = list(team_ids)
    if len(entrants) < 2:
        return []
    if len(entrants) % 2:
        entrants.append(None)

    n = len(entrants)
    fixed = n - 1
    rounds: list[list[tuple[int, int]]] = []
    for r in range(n - 1):
        pairs: list[tuple[int, int]] = []
        for i in range(n // 2):
            home = (r + i) % fixed
            away = fixed if i == 0 else (fixed - i + r) % fixed
            if i == 0 and r % 2 == 1:
                home, away = away, home
            h, a = entrants[home], entrants[away]
            if h is None or a is None:
                continue
            pairs.append((h, a))
        rounds.append(pairs)
    return rounds


def generate_league_schedule(
    team_ids: Sequence[int],
    policy: SlotPolicy,
    *,
    allocator: SlotAllocator | None = None,
) -> list[ScheduledMatch]:
    """
    Single round-robin: every pair meets once. Matches are numbered in round
    order and placed on the calendar in that order.
    """
    alloc = allocator or SlotAllocator(policy)
    out: list[ScheduledMatch] = []
    match_no = 1
    for round_no, pairs in enumerate(round_robin_rounds(team_ids), start=1):
        for home, away in pairs:
            when, venue = alloc.next_slot()
            out.append(
                ScheduledMatch(
                    round_no=round_no,
                    match_no=match_no,
                    home=MatchSlot(team_id=home),
                    away=MatchSlot(team_id=away),
                    scheduled_at=when,
                    venue=venue,
                )
            )
            match_no += 1
    return out
