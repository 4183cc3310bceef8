# services/result_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence, Union

from domain.enums import MATCH_TRANSITIONS, CompetitionFormat, CompetitionStatus, MatchStatus, Side, SlotOutcome
from domain.errors import BracketIntegrityError, NotFoundError, StateConflictError, ValidationError
from domain.models import Competition, Match, ScorePair
from domain.stats import Decision, decide, result_delta
from repositories.competition_repo import CompetitionRepo
from repositories.match_repo import MatchRepo
from services.common import load_competition, require_enabled
from services.notifications import RESULT_RECORDED, Notifier, fire_and_forget

log = logging.getLogger(__name__)

ScoreInput = Union[ScorePair, Sequence[int]]

RESULT_STATUSES = (MatchStatus.LIVE, MatchStatus.COMPLETED, MatchStatus.CANCELLED)


def _utcnow() -> datetime:
    # DATETIME columns hold naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_score(value: Optional[ScoreInput], what: str = "score") -> Optional[ScorePair]:
    if value is None or isinstance(value, ScorePair):
        return value
    if isinstance(value, str):
        return ScorePair.parse(value)
    pair = tuple(value)
    if len(pair) != 2:
        raise ValidationError(f"{what} must be a pair of integers, got {value!r}")
    return ScorePair(pair[0], pair[1])


def _as_status(value: Union[MatchStatus, str]) -> MatchStatus:
    try:
        return MatchStatus(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown match status: {value!r}") from None


class ResultService:
    """
    Records match results and keeps everything derived from them in step:

      - scores, winner / draw flag, status and timestamps on the match row
      - both teams' records (completed matches only)
      - downstream knockout slots fed by the match (winner or loser)

    One transaction per call. A result that would break the bracket rolls
    back the whole call, including the score.
    """

    def __init__(
        self,
        competition_repo: CompetitionRepo,
        match_repo: MatchRepo,
        *,
        enabled: bool = True,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._competitions = competition_repo
        self._matches = match_repo
        self._enabled = enabled
        self._notify = notifier
        self._clock = clock

    async def record_result(
        self,
        *,
        guild_id: int,
        competition_id: int,
        match_id: int,
        score: Optional[ScoreInput],
        overtime: Optional[ScoreInput] = None,
        penalties: Optional[ScoreInput] = None,
        status: Union[MatchStatus, str] = MatchStatus.COMPLETED,
        notes: Optional[str] = None,
    ) -> Match:
        require_enabled(self._enabled)

        target = _as_status(status)
        if target not in RESULT_STATUSES:
            raise StateConflictError(
                f"A result cannot move a match to {target.value}.",
                required=[s.value for s in RESULT_STATUSES],
            )
        regular = as_score(score)
        ot = as_score(overtime, "overtime")
        pens = as_score(penalties, "penalties")
        if regular is None and target is not MatchStatus.CANCELLED:
            raise ValidationError("A score is required for live and completed matches.")

        async def _tx(_conn: Any, cur: Any) -> tuple[Competition, Match]:
            comp = await load_competition(
                self._competitions, guild_id=guild_id, competition_id=competition_id, lock="share", cur=cur
            )
            if comp.status is not CompetitionStatus.ACTIVE:
                raise StateConflictError(
                    f"Results can only be recorded while the competition is active (it is {comp.status.value}).",
                    required=[CompetitionStatus.ACTIVE],
                )
            if ot is not None and not comp.has_overtime:
                raise ValidationError("This competition does not use overtime.")
            if pens is not None and not comp.has_penalties:
                raise ValidationError("This competition does not use penalty shootouts.")

            row = await self._matches.get_match(
                competition_id=competition_id, match_id=match_id, lock="update", cur=cur
            )
            if not row:
                raise NotFoundError(f"Match not found: {match_id}")
            match = Match.from_row(row)

            if target not in MATCH_TRANSITIONS[match.status]:
                raise StateConflictError(
                    f"Match {match.match_no} is already {match.status.value}.",
                    required=[MatchStatus.SCHEDULED, MatchStatus.LIVE],
                )
            if target is not MatchStatus.CANCELLED and not match.is_startable:
                raise StateConflictError(
                    f"Match {match.match_no} is still waiting for "
                    f"{match.home.placeholder_text or match.away.placeholder_text}."
                )

            decision: Optional[Decision] = None
            if target is MatchStatus.COMPLETED and regular is not None:
                decision = decide(
                    regular.as_tuple(),
                    ot.as_tuple() if ot else None,
                    pens.as_tuple() if pens else None,
                )
            is_knockout = comp.format is CompetitionFormat.TOURNAMENT and match.group_id is None
            if decision is not None and decision.is_draw and is_knockout:
                raise ValidationError(
                    f"Match {match.match_no} is a knockout match and needs a winner: add overtime or penalties."
                )
            winner_id = match.team_for(decision.winner) if decision and decision.winner else None

            now = self._clock()
            started_at = match.started_at
            if target is MatchStatus.LIVE and started_at is None:
                started_at = now
            ended_at = now if target is MatchStatus.COMPLETED else match.ended_at

            await self._matches.update_result(
                match_id=match.match_id,
                status=target.value,
                score=regular,
                overtime=ot,
                penalties=pens,
                winner_team_id=winner_id,
                is_draw=bool(decision and decision.is_draw),
                started_at=started_at,
                ended_at=ended_at,
                notes=notes if notes is not None else match.notes,
                cur=cur,
            )

            if decision is not None and regular is not None:
                await self._apply_stats(comp, match, regular, ot, decision, cur=cur)
                if is_knockout:
                    await self._propagate(comp, match, decision, cur=cur)

            updated = await self._matches.get_match(competition_id=competition_id, match_id=match_id, cur=cur)
            return comp, Match.from_row(updated)

        comp, updated = await self._competitions.in_tx(_tx)
        log.info(
            "Competition %s match %s -> %s (%s)",
            competition_id,
            updated.match_no,
            updated.status.value,
            updated.score or "no score",
        )
        fire_and_forget(
            self._notify,
            RESULT_RECORDED,
            {
                "guild_id": guild_id,
                "competition_id": competition_id,
                "name": comp.name,
                "match_id": updated.match_id,
                "match_no": updated.match_no,
                "status": updated.status.value,
                "home": updated.home_team_name,
                "away": updated.away_team_name,
                "score": str(updated.score) if updated.score else None,
                "winner": updated.winner_team_name,
            },
        )
        return updated

    # -------------------------
    # Internals
    # -------------------------

    async def _apply_stats(
        self,
        comp: Competition,
        match: Match,
        regular: ScorePair,
        ot: Optional[ScorePair],
        decision: Decision,
        *,
        cur: Any,
    ) -> None:
        home_goals = regular.home + (ot.home if ot else 0)
        away_goals = regular.away + (ot.away if ot else 0)
        for side, gf, ga in ((Side.HOME, home_goals, away_goals), (Side.AWAY, away_goals, home_goals)):
            team_id = match.team_for(side)
            if team_id is None:
                continue
            delta = result_delta(
                goals_for=gf,
                goals_against=ga,
                outcome=decision.outcome_for(side),
                points=comp.points,
            )
            await self._competitions.increment_team_stats(team_id=team_id, delta=delta, cur=cur)

    async def _propagate(self, comp: Competition, match: Match, decision: Decision, *, cur: Any) -> None:
        winner_id = match.team_for(decision.winner)
        loser_id = match.team_for(Side.AWAY if decision.winner is Side.HOME else Side.HOME)

        dependants = await self._matches.list_dependants(
            competition_id=comp.competition_id, match_no=match.match_no, cur=cur
        )
        if not dependants:
            final_round = await self._matches.max_knockout_round(competition_id=comp.competition_id, cur=cur)
            if final_round is not None and match.round_no < final_round:
                raise BracketIntegrityError(
                    f"Match {match.match_no} (round {match.round_no}) feeds no later match."
                )
            return

        for dep_row in dependants:
            dep = Match.from_row(dep_row)
            for side in (Side.HOME, Side.AWAY):
                src = dep.slot(side).source
                if src is None or src.match_no != match.match_no:
                    continue
                team_id = winner_id if src.outcome is SlotOutcome.WINNER else loser_id
                await self._matches.set_slot_team(match_id=dep.match_id, side=side, team_id=team_id, cur=cur)
                log.debug("Match %s %s slot <- team %s (%s)", dep.match_no, side.value, team_id, src.label)
