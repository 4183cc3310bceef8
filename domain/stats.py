# domain/stats.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, TypeVar

from domain.enums import Outcome, Side


@dataclass(frozen=True)
class PointsTable:
    win: int = 3
    draw: int = 1
    loss: int = 0

    def for_outcome(self, outcome: Outcome) -> int:
        if outcome is Outcome.WIN:
            return self.win
        if outcome is Outcome.DRAW:
            return self.draw
        return self.loss


@dataclass(frozen=True)
class TeamRecord:
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TeamRecord":
        gf = int(row.get("goals_for") or 0)
        ga = int(row.get("goals_against") or 0)
        return cls(
            played=int(row.get("played") or 0),
            wins=int(row.get("wins") or 0),
            draws=int(row.get("draws") or 0),
            losses=int(row.get("losses") or 0),
            goals_for=gf,
            goals_against=ga,
            goal_difference=gf - ga,
            points=int(row.get("points") or 0),
        )


@dataclass(frozen=True)
class Decision:
    winner: Optional[Side]
    is_draw: bool

    def outcome_for(self, side: Side) -> Outcome:
        if self.is_draw or self.winner is None:
            return Outcome.DRAW
        return Outcome.WIN if self.winner is side else Outcome.LOSS


def _compare(home: int, away: int) -> Optional[Side]:
    if home > away:
        return Side.HOME
    if away > home:
        return Side.AWAY
    return None


def decide(
    score: tuple[int, int],
    overtime: Optional[tuple[int, int]] = None,
    penalties: Optional[tuple[int, int]] = None,
) -> Decision:
    """
    Regular time + overtime decide the match. A tie after that is broken by the
    penalty shootout alone; without a (decisive) shootout the tie stands.
    """
    home, away = score
    if overtime is not None:
        home += overtime[0]
        away += overtime[1]

    winner = _compare(home, away)
    if winner is None and penalties is not None:
        winner = _compare(penalties[0], penalties[1])

    return Decision(winner=winner, is_draw=winner is None)


def apply_result(
    record: TeamRecord,
    *,
    goals_for: int,
    goals_against: int,
    outcome: Outcome,
    points: PointsTable,
) -> TeamRecord:
    gf = record.goals_for + int(goals_for)
    ga = record.goals_against + int(goals_against)
    return TeamRecord(
        played=record.played + 1,
        wins=record.wins + (1 if outcome is Outcome.WIN else 0),
        draws=record.draws + (1 if outcome is Outcome.DRAW else 0),
        losses=record.losses + (1 if outcome is Outcome.LOSS else 0),
        goals_for=gf,
        goals_against=ga,
        goal_difference=gf - ga,
        points=record.points + points.for_outcome(outcome),
    )


def result_delta(*, goals_for: int, goals_against: int, outcome: Outcome, points: PointsTable) -> TeamRecord:
    """The change one match makes to a record (applied as increments in SQL)."""
    return apply_result(TeamRecord(), goals_for=goals_for, goals_against=goals_against, outcome=outcome, points=points)


T = TypeVar("T")


def sort_standings(teams: Sequence[T]) -> list[T]:
    """
    Table order: points, goal difference, goals scored (all descending),
    then name. Works on anything with `.record` and `.display_name`.
    """

    def key(t: Any) -> tuple:
        r: TeamRecord = t.record
        return (-r.points, -r.goal_difference, -r.goals_for, str(t.display_name).casefold())

    return sorted(teams, key=key)
