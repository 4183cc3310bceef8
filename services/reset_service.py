# services/reset_service.py
from __future__ import annotations

import logging
from typing import Any, Optional

from domain.enums import CompetitionFormat, CompetitionStatus
from domain.errors import BracketIntegrityError
from domain.models import Competition, Match, MatchSlot
from repositories.competition_repo import CompetitionRepo
from repositories.match_repo import MatchRepo
from services.common import load_competition, require_enabled
from services.notifications import COMPETITION_RESET, Notifier, fire_and_forget

log = logging.getLogger(__name__)


def restored_slots(match: Match, *, first_round: Optional[int], known: set[int]) -> tuple[MatchSlot, MatchSlot]:
    """
    Generation-time slots of a knockout match. Slots fed by another match go
    back to their placeholder; bye-filled slots and first-round teams stay.
    """
    for slot in (match.home, match.away):
        if slot.source is not None and slot.source.match_no not in known:
            raise BracketIntegrityError(
                f"Match {match.match_no} refers to match {slot.source.match_no}, which does not exist."
            )
    if match.round_no == first_round:
        return match.home, match.away
    return match.home.restored(), match.away.restored()


class ResetService:
    """
    Returns a competition to `draft`: every match back to `scheduled` with all
    result data cleared, knockout slots back to their placeholders, team
    records zeroed. Running it twice leaves the same state as running it once.
    """

    def __init__(
        self,
        competition_repo: CompetitionRepo,
        match_repo: MatchRepo,
        *,
        enabled: bool = True,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self._competitions = competition_repo
        self._matches = match_repo
        self._enabled = enabled
        self._notify = notifier

    async def reset(self, *, guild_id: int, competition_id: int) -> int:
        """Returns the number of matches restored."""
        require_enabled(self._enabled)

        async def _tx(_conn: Any, cur: Any) -> tuple[Competition, int]:
            comp = await load_competition(
                self._competitions, guild_id=guild_id, competition_id=competition_id, lock="update", cur=cur
            )
            matches = [
                Match.from_row(r) for r in await self._matches.list_matches(competition_id=competition_id, cur=cur)
            ]

            known = {m.match_no for m in matches}
            knockout = comp.format is CompetitionFormat.TOURNAMENT
            first_round = min((m.round_no for m in matches if m.group_id is None), default=None)

            for m in matches:
                if knockout and m.group_id is None:
                    home, away = restored_slots(m, first_round=first_round, known=known)
                else:
                    home, away = m.home, m.away
                await self._matches.restore_match(
                    match_id=m.match_id, home_team_id=home.team_id, away_team_id=away.team_id, cur=cur
                )

            await self._competitions.reset_team_stats(competition_id=competition_id, cur=cur)
            await self._competitions.set_status(
                competition_id=competition_id, status=CompetitionStatus.DRAFT.value, cur=cur
            )
            return comp, len(matches)

        comp, count = await self._competitions.in_tx(_tx)
        log.info("Reset competition %s (guild %s): %d matches restored", competition_id, guild_id, count)
        fire_and_forget(
            self._notify,
            COMPETITION_RESET,
            {"guild_id": guild_id, "competition_id": competition_id, "name": comp.name, "match_count": count},
        )
        return count
