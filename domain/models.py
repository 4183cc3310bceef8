# domain/models.py
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from domain.enums import CompetitionFormat, CompetitionStatus, MatchStatus, Side, SlotOutcome
from domain.errors import ValidationError
from domain.slots import DEFAULT_DAY_START_MINUTE, SlotPolicy
from domain.stats import PointsTable, TeamRecord


def next_power_of_two(n: int) -> int:
    if n <= 1:
        return 1
    p = 1
    while p < n:
        p <<= 1
    return p


def seeded_positions(n: int) -> list[int]:
    """
    Standard tournament seeding positions list (length n, n is power of two).
    Example n=8 => [1,8,4,5,2,7,3,6]
    """
    if n <= 1:
        return [1]
    if n == 2:
        return [1, 2]
    prev = seeded_positions(n // 2)
    out: list[int] = []
    for s in prev:
        out.append(s)
        out.append(n + 1 - s)
    return out


def _int_or_none(v: Any) -> Optional[int]:
    return int(v) if v is not None else None


# -------------------------
# Scores
# -------------------------

_SCORE_RE = re.compile(r"^\s*(\d+)\s*[-:]\s*(\d+)\s*$")


@dataclass(frozen=True)
class ScorePair:
    home: int
    away: int

    def __post_init__(self) -> None:
        for v in (self.home, self.away):
            if isinstance(v, bool) or not isinstance(v, int) or v < 0:
                raise ValidationError(f"Scores must be non-negative integers, got {self.home!r}-{self.away!r}")

    @classmethod
    def parse(cls, text: str) -> "ScorePair":
        """Accepts `3-1` or `3:1`."""
        m = _SCORE_RE.match(text or "")
        if not m:
            raise ValidationError(f"Malformed score {text!r} (expected e.g. 3-1)")
        return cls(int(m.group(1)), int(m.group(2)))

    @classmethod
    def from_columns(cls, home: Any, away: Any) -> Optional["ScorePair"]:
        if home is None or away is None:
            return None
        return cls(int(home), int(away))

    def as_tuple(self) -> tuple[int, int]:
        return (self.home, self.away)

    def __str__(self) -> str:
        return f"{self.home}-{self.away}"


# -------------------------
# Match slots
# -------------------------


@dataclass(frozen=True)
class SlotRef:
    """Typed progression link: the winner (or loser) of match `match_no`."""

    match_no: int
    outcome: SlotOutcome = SlotOutcome.WINNER

    @property
    def label(self) -> str:
        return f"{self.outcome.value.capitalize()} of match {self.match_no}"


@dataclass(frozen=True)
class MatchSlot:
    team_id: Optional[int] = None
    source: Optional[SlotRef] = None

    @property
    def is_resolved(self) -> bool:
        return self.team_id is not None

    @property
    def placeholder(self) -> Optional[SlotRef]:
        if self.team_id is not None:
            return None
        return self.source

    @property
    def placeholder_text(self) -> Optional[str]:
        ph = self.placeholder
        return ph.label if ph else None

    def resolved(self, team_id: int) -> "MatchSlot":
        return replace(self, team_id=int(team_id))

    def restored(self) -> "MatchSlot":
        """Generation-time shape: placeholder-fed slots lose their team."""
        if self.source is None:
            return self
        return MatchSlot(source=self.source)

    @classmethod
    def from_columns(cls, team_id: Any, source_match_no: Any, source_outcome: Any) -> "MatchSlot":
        source = None
        if source_match_no is not None:
            source = SlotRef(int(source_match_no), SlotOutcome(str(source_outcome or "winner").lower()))
        return cls(team_id=_int_or_none(team_id), source=source)


@dataclass
class ScheduledMatch:
    """
    Generator output. Bye descriptors (is_bye=True) carry no match_no and are
    never persisted; their team is already placed in the next round.
    """

    round_no: int
    home: MatchSlot
    away: MatchSlot
    match_no: Optional[int] = None
    round_label: Optional[str] = None
    group_id: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    venue: Optional[str] = None
    is_bye: bool = False

    def slot(self, side: Side) -> MatchSlot:
        return self.home if side is Side.HOME else self.away


# -------------------------
# Persisted entities
# -------------------------


@dataclass(frozen=True)
class Competition:
    competition_id: int
    guild_id: int
    name: str
    format: CompetitionFormat
    status: CompetitionStatus
    starts_at: datetime
    match_duration_min: int = 60
    break_duration_min: int = 15
    matches_per_day: Optional[int] = None
    day_start_minute: int = DEFAULT_DAY_START_MINUTE
    day_end_minute: Optional[int] = None
    points_win: int = 3
    points_draw: int = 1
    points_loss: int = 0
    has_overtime: bool = False
    has_penalties: bool = False
    has_groups: bool = False
    third_place_match: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Competition":
        return cls(
            competition_id=int(row["competition_id"]),
            guild_id=int(row["guild_id"]),
            name=str(row.get("name") or ""),
            format=CompetitionFormat(str(row["format"]).lower()),
            status=CompetitionStatus(str(row["status"]).lower()),
            starts_at=row["starts_at"],
            match_duration_min=int(row.get("match_duration_min") or 60),
            break_duration_min=int(row.get("break_duration_min") if row.get("break_duration_min") is not None else 15),
            matches_per_day=_int_or_none(row.get("matches_per_day")),
            day_start_minute=int(
                row.get("day_start_minute") if row.get("day_start_minute") is not None else DEFAULT_DAY_START_MINUTE
            ),
            day_end_minute=_int_or_none(row.get("day_end_minute")),
            points_win=int(row.get("points_win") if row.get("points_win") is not None else 3),
            points_draw=int(row.get("points_draw") if row.get("points_draw") is not None else 1),
            points_loss=int(row.get("points_loss") or 0),
            has_overtime=bool(row.get("has_overtime")),
            has_penalties=bool(row.get("has_penalties")),
            has_groups=bool(row.get("has_groups")),
            third_place_match=bool(row.get("third_place_match")),
        )

    @property
    def points(self) -> PointsTable:
        return PointsTable(win=self.points_win, draw=self.points_draw, loss=self.points_loss)

    def slot_policy(self, venues: Sequence[str] | None = None, *, default_matches_per_day: Optional[int] = None) -> SlotPolicy:
        return SlotPolicy.build(
            starts_at=self.starts_at,
            match_duration=self.match_duration_min,
            break_duration=self.break_duration_min,
            matches_per_day=self.matches_per_day if self.matches_per_day is not None else default_matches_per_day,
            day_start_minute=self.day_start_minute,
            day_end_minute=self.day_end_minute,
            venues=venues,
        )


@dataclass(frozen=True)
class Group:
    group_id: int
    competition_id: int
    name: str
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Group":
        return cls(
            group_id=int(row["group_id"]),
            competition_id=int(row["competition_id"]),
            name=str(row.get("name") or ""),
            sort_order=int(row.get("sort_order") or 0),
        )


@dataclass(frozen=True)
class Team:
    team_id: int
    competition_id: int
    display_name: str
    seed: Optional[int] = None
    group_id: Optional[int] = None
    record: TeamRecord = field(default_factory=TeamRecord)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Team":
        return cls(
            team_id=int(row["team_id"]),
            competition_id=int(row["competition_id"]),
            display_name=str(row.get("display_name") or f"Team {row['team_id']}"),
            seed=_int_or_none(row.get("seed")),
            group_id=_int_or_none(row.get("group_id")),
            record=TeamRecord.from_row(row),
        )


def seed_order(teams: Iterable[Team]) -> list[Team]:
    """Seeded teams by ascending seed, then unseeded teams in registration order."""
    return sorted(teams, key=lambda t: (t.seed is None, t.seed or 0, t.team_id))


@dataclass(frozen=True)
class Match:
    match_id: int
    competition_id: int
    match_no: int
    round_no: int
    home: MatchSlot
    away: MatchSlot
    status: MatchStatus = MatchStatus.SCHEDULED
    round_label: Optional[str] = None
    group_id: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    venue: Optional[str] = None
    score: Optional[ScorePair] = None
    overtime: Optional[ScorePair] = None
    penalties: Optional[ScorePair] = None
    winner_team_id: Optional[int] = None
    is_draw: bool = False
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    notes: Optional[str] = None

    # display joins (present on schedule reads)
    home_team_name: Optional[str] = None
    away_team_name: Optional[str] = None
    winner_team_name: Optional[str] = None
    group_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Match":
        return cls(
            match_id=int(row["match_id"]),
            competition_id=int(row["competition_id"]),
            match_no=int(row["match_no"]),
            round_no=int(row["round_no"]),
            home=MatchSlot.from_columns(
                row.get("home_team_id"), row.get("home_source_match_no"), row.get("home_source_outcome")
            ),
            away=MatchSlot.from_columns(
                row.get("away_team_id"), row.get("away_source_match_no"), row.get("away_source_outcome")
            ),
            status=MatchStatus(str(row.get("status") or "scheduled").lower()),
            round_label=row.get("round_label"),
            group_id=_int_or_none(row.get("group_id")),
            scheduled_at=row.get("scheduled_at"),
            venue=row.get("venue"),
            score=ScorePair.from_columns(row.get("home_score"), row.get("away_score")),
            overtime=ScorePair.from_columns(row.get("home_ot_score"), row.get("away_ot_score")),
            penalties=ScorePair.from_columns(row.get("home_pen_score"), row.get("away_pen_score")),
            winner_team_id=_int_or_none(row.get("winner_team_id")),
            is_draw=bool(row.get("is_draw")),
            started_at=row.get("started_at"),
            ended_at=row.get("ended_at"),
            notes=row.get("notes"),
            home_team_name=row.get("home_team_name"),
            away_team_name=row.get("away_team_name"),
            winner_team_name=row.get("winner_team_name"),
            group_name=row.get("group_name"),
        )

    def slot(self, side: Side) -> MatchSlot:
        return self.home if side is Side.HOME else self.away

    def team_for(self, side: Side) -> Optional[int]:
        return self.slot(side).team_id

    @property
    def is_startable(self) -> bool:
        return self.home.is_resolved and self.away.is_resolved

    @property
    def loser_team_id(self) -> Optional[int]:
        if self.winner_team_id is None:
            return None
        if self.winner_team_id == self.home.team_id:
            return self.away.team_id
        return self.home.team_id
