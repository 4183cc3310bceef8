# domain/enums.py
from __future__ import annotations

from enum import Enum


class CompetitionFormat(str, Enum):
    LEAGUE = "league"
    TOURNAMENT = "tournament"


class CompetitionStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SlotOutcome(str, Enum):
    WINNER = "winner"
    LOSER = "loser"


class Side(str, Enum):
    HOME = "home"
    AWAY = "away"


class Outcome(str, Enum):
    WIN = "win"
    DRAW = "draw"
    LOSS = "loss"


# Settings are frozen while the competition is running or finished.
FROZEN_STATUSES = frozenset({CompetitionStatus.ACTIVE, CompetitionStatus.COMPLETED})

# generate() is allowed only from these.
REGENERABLE_STATUSES = frozenset({CompetitionStatus.DRAFT, CompetitionStatus.SCHEDULED})

# DRAFT -> SCHEDULED happens through generate(), never as a pure transition.
COMPETITION_TRANSITIONS: dict[CompetitionStatus, frozenset[CompetitionStatus]] = {
    CompetitionStatus.DRAFT: frozenset({CompetitionStatus.CANCELLED}),
    CompetitionStatus.SCHEDULED: frozenset({CompetitionStatus.ACTIVE, CompetitionStatus.CANCELLED}),
    CompetitionStatus.ACTIVE: frozenset({CompetitionStatus.COMPLETED, CompetitionStatus.CANCELLED}),
    CompetitionStatus.COMPLETED: frozenset(),
    CompetitionStatus.CANCELLED: frozenset(),
}

MATCH_TRANSITIONS: dict[MatchStatus, frozenset[MatchStatus]] = {
    MatchStatus.SCHEDULED: frozenset({MatchStatus.LIVE, MatchStatus.COMPLETED, MatchStatus.CANCELLED}),
    MatchStatus.LIVE: frozenset({MatchStatus.LIVE, MatchStatus.COMPLETED, MatchStatus.CANCELLED}),
    MatchStatus.COMPLETED: frozenset(),
    MatchStatus.CANCELLED: frozenset(),
}
