# domain/bracket.py
from __future__ import annotations

import logging
from typing import Optional, Sequence

from domain.enums import SlotOutcome
from domain.models import MatchSlot, ScheduledMatch, SlotRef, next_power_of_two, seeded_positions
from domain.slots import SlotAllocator, SlotPolicy

log = logging.getLogger(__name__)

THIRD_PLACE_LABEL = "Third place"
PRELIMINARY_LABEL = "Preliminary round"


def round_label(teams_in_round: int) -> str:
    if teams_in_round <= 2:
        return "Final"
    if teams_in_round == 4:
        return "Semifinal"
    if teams_in_round == 8:
        return "Quarterfinal"
    return f"Round of {teams_in_round}"


def build_bracket(
    team_ids: Sequence[int],
    policy: SlotPolicy,
    *,
    third_place: bool = False,
    allocator: SlotAllocator | None = None,
) -> list[ScheduledMatch]:
    """
    Single-elimination skeleton.

    `team_ids` is in seed order (index 0 = seed 1). The bracket is padded to the
    next power of two; first-round pairs follow the mirrored seeding table so
    the top two seeds sit in opposite halves. A pair without an opponent is a
    bye: it is returned with is_bye=True (no match_no) and its team is placed
    straight into the next round's slot.

    Later slots reference the winner of their feeding match. With
    third_place=True (and two real semifinals) a match between the semifinal
    losers is appended after the final, in the final round.

    Real matches are numbered in round order and time-slotted in that order.
    """
    n = len(team_ids)
    if n < 2:
        return []

    size = next_power_of_two(n)
    rounds = size.bit_length() - 1
    positions = seeded_positions(size)
    has_byes = size > n

    out: list[ScheduledMatch] = []
    match_no = 0

    # what each first-round pair hands to the next round, in bracket order
    feeders: list[MatchSlot] = []

    label = PRELIMINARY_LABEL if has_byes else round_label(size)
    for k in range(size // 2):
        s1, s2 = positions[2 * k], positions[2 * k + 1]
        t1: Optional[int] = team_ids[s1 - 1] if s1 <= n else None
        t2: Optional[int] = team_ids[s2 - 1] if s2 <= n else None

        if t1 is not None and t2 is not None:
            match_no += 1
            out.append(
                ScheduledMatch(
                    round_no=1,
                    match_no=match_no,
                    round_label=label,
                    home=MatchSlot(team_id=t1),
                    away=MatchSlot(team_id=t2),
                )
            )
            feeders.append(MatchSlot(source=SlotRef(match_no, SlotOutcome.WINNER)))
        else:
            # mirrored seeding never pairs two padding positions
            survivor = t1 if t1 is not None else t2
            out.append(
                ScheduledMatch(
                    round_no=1,
                    round_label=label,
                    home=MatchSlot(team_id=survivor),
                    away=MatchSlot(),
                    is_bye=True,
                )
            )
            feeders.append(MatchSlot(team_id=survivor))

    for r in range(2, rounds + 1):
        teams_in_round = size >> (r - 1)
        nxt: list[MatchSlot] = []
        for j in range(len(feeders) // 2):
            match_no += 1
            out.append(
                ScheduledMatch(
                    round_no=r,
                    match_no=match_no,
                    round_label=round_label(teams_in_round),
                    home=feeders[2 * j],
                    away=feeders[2 * j + 1],
                )
            )
            nxt.append(MatchSlot(source=SlotRef(match_no, SlotOutcome.WINNER)))
        feeders = nxt

    semifinals = [m.match_no for m in out if m.round_no == rounds - 1 and not m.is_bye and m.match_no]

    if third_place:
        if len(semifinals) == 2:
            match_no += 1
            out.append(
                ScheduledMatch(
                    round_no=rounds,
                    match_no=match_no,
                    round_label=THIRD_PLACE_LABEL,
                    home=MatchSlot(source=SlotRef(semifinals[0], SlotOutcome.LOSER)),
                    away=MatchSlot(source=SlotRef(semifinals[1], SlotOutcome.LOSER)),
                )
            )
        else:
            log.info("Third-place match skipped: %d team(s) give no two real semifinals", n)

    alloc = allocator or SlotAllocator(policy)
    for m in sorted((m for m in out if not m.is_bye), key=lambda m: m.match_no or 0):
        m.scheduled_at, m.venue = alloc.next_slot()

    return out
