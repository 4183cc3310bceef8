"""
Shared fixtures: in-memory stand-ins for CompetitionRepo / MatchRepo.

The fakes keep rows as plain dicts shaped like the MySQL tables, honour the
same keyword-only method signatures, and run `in_tx` against a snapshot so a
failing operation leaves the store untouched (like a rolled-back
transaction).
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

import pytest

from domain.enums import Side
from domain.models import ScheduledMatch, ScorePair
from domain.stats import TeamRecord
from repositories.competition_repo import SETTINGS_COLUMNS, TEAM_COLUMNS

GUILD = 111
OTHER_GUILD = 222
STARTS_AT = datetime(2025, 3, 1, 8, 0)

_COMPETITION_DEFAULTS = {
    "status": "draft",
    "match_duration_min": 60,
    "break_duration_min": 15,
    "matches_per_day": None,
    "day_start_minute": 540,
    "day_end_minute": None,
    "points_win": 3,
    "points_draw": 1,
    "points_loss": 0,
    "has_overtime": 0,
    "has_penalties": 0,
    "has_groups": 0,
    "third_place_match": 0,
}

_TEAM_STATS = ("played", "wins", "draws", "losses", "goals_for", "goals_against", "goal_difference", "points")

_RESULT_RESET = {
    "status": "scheduled",
    "home_score": None,
    "away_score": None,
    "home_ot_score": None,
    "away_ot_score": None,
    "home_pen_score": None,
    "away_pen_score": None,
    "winner_team_id": None,
    "is_draw": 0,
    "started_at": None,
    "ended_at": None,
    "notes": None,
}


class FakeStore:
    def __init__(self) -> None:
        self.competitions: dict[int, dict] = {}
        self.groups: dict[int, dict] = {}
        self.teams: dict[int, dict] = {}
        self.matches: dict[int, dict] = {}
        self._ids = {"competition": 0, "group": 0, "team": 0, "match": 0}
        self.locks: list[tuple[str, int, str]] = []
        self.commits = 0
        self.rollbacks = 0

    def next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    def snapshot(self) -> dict:
        return copy.deepcopy(
            {
                "competitions": self.competitions,
                "groups": self.groups,
                "teams": self.teams,
                "matches": self.matches,
                "ids": self._ids,
            }
        )

    def restore(self, snap: dict) -> None:
        self.competitions = snap["competitions"]
        self.groups = snap["groups"]
        self.teams = snap["teams"]
        self.matches = snap["matches"]
        self._ids = snap["ids"]

    def matches_of(self, competition_id: int) -> list[dict]:
        return sorted(
            (m for m in self.matches.values() if m["competition_id"] == competition_id),
            key=lambda m: (m["round_no"], m["match_no"]),
        )

    def match_by_no(self, competition_id: int, match_no: int) -> dict:
        for m in self.matches.values():
            if m["competition_id"] == competition_id and m["match_no"] == match_no:
                return m
        raise KeyError(match_no)


class _FakeRepoBase:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def in_tx(self, fn):
        snap = self.store.snapshot()
        try:
            out = await fn(None, "cursor")
        except BaseException:
            self.store.restore(snap)
            self.store.rollbacks += 1
            raise
        self.store.commits += 1
        return out


class FakeCompetitionRepo(_FakeRepoBase):
    async def create_competition(
        self,
        *,
        guild_id: int,
        name: str,
        format: str,
        starts_at: datetime,
        settings: Mapping[str, Any] | None = None,
        cur: Any = None,
    ) -> int:
        cid = self.store.next_id("competition")
        row = {"competition_id": cid, "guild_id": guild_id, **_COMPETITION_DEFAULTS}
        row.update({k: v for k, v in (settings or {}).items() if k in SETTINGS_COLUMNS})
        row.update(name=name, format=format, starts_at=starts_at)
        self.store.competitions[cid] = row
        return cid

    async def get_competition(
        self,
        *,
        competition_id: int,
        guild_id: int | None = None,
        lock: Optional[str] = None,
        cur: Any = None,
    ):
        row = self.store.competitions.get(competition_id)
        if row is None or (guild_id is not None and row["guild_id"] != guild_id):
            return None
        if lock:
            self.store.locks.append(("competition", competition_id, lock))
        return dict(row)

    async def update_competition(self, *, competition_id: int, changes: Mapping[str, Any], cur: Any = None) -> int:
        row = self.store.competitions[competition_id]
        row.update({k: v for k, v in changes.items() if k in SETTINGS_COLUMNS})
        return 1

    async def set_status(self, *, competition_id: int, status: str, cur: Any = None) -> int:
        self.store.competitions[competition_id]["status"] = status
        return 1

    async def list_competitions(self, *, guild_id: int, status: Optional[str] = None, cur: Any = None):
        rows = [
            dict(c)
            for c in self.store.competitions.values()
            if c["guild_id"] == guild_id and (status is None or c["status"] == status)
        ]
        return sorted(rows, key=lambda c: c["competition_id"], reverse=True)

    async def delete_competition(self, *, competition_id: int, cur: Any = None) -> int:
        if self.store.competitions.pop(competition_id, None) is None:
            return 0
        for table in (self.store.groups, self.store.teams, self.store.matches):
            for key in [k for k, row in table.items() if row["competition_id"] == competition_id]:
                del table[key]
        return 1

    async def create_group(self, *, competition_id: int, name: str, sort_order: int = 0, cur: Any = None) -> int:
        gid = self.store.next_id("group")
        self.store.groups[gid] = {
            "group_id": gid,
            "competition_id": competition_id,
            "name": name,
            "sort_order": sort_order,
        }
        return gid

    async def list_groups(self, *, competition_id: int, cur: Any = None):
        rows = [dict(g) for g in self.store.groups.values() if g["competition_id"] == competition_id]
        return sorted(rows, key=lambda g: (g["sort_order"], g["group_id"]))

    async def add_team(
        self,
        *,
        competition_id: int,
        display_name: str,
        seed: int | None = None,
        group_id: int | None = None,
        cur: Any = None,
    ) -> int:
        tid = self.store.next_id("team")
        self.store.teams[tid] = {
            "team_id": tid,
            "competition_id": competition_id,
            "display_name": display_name,
            "seed": seed,
            "group_id": group_id,
            **{k: 0 for k in _TEAM_STATS},
        }
        return tid

    async def list_teams(self, *, competition_id: int, group_id: int | None = None, cur: Any = None):
        rows = [
            dict(t)
            for t in self.store.teams.values()
            if t["competition_id"] == competition_id and (group_id is None or t["group_id"] == group_id)
        ]
        return sorted(rows, key=lambda t: (t["seed"] is None, t["seed"] or 0, t["team_id"]))

    async def get_team(self, *, competition_id: int, team_id: int, lock: Optional[str] = None, cur: Any = None):
        row = self.store.teams.get(team_id)
        if row is None or row["competition_id"] != competition_id:
            return None
        if lock:
            self.store.locks.append(("team", team_id, lock))
        return dict(row)

    async def update_team(self, *, team_id: int, changes: Mapping[str, Any], cur: Any = None) -> int:
        self.store.teams[team_id].update({k: v for k, v in changes.items() if k in TEAM_COLUMNS})
        return 1

    async def delete_team(self, *, team_id: int, cur: Any = None) -> int:
        return 1 if self.store.teams.pop(team_id, None) is not None else 0

    async def increment_team_stats(self, *, team_id: int, delta: TeamRecord, cur: Any = None) -> int:
        row = self.store.teams[team_id]
        for k in ("played", "wins", "draws", "losses", "goals_for", "goals_against", "points"):
            row[k] += getattr(delta, k)
        row["goal_difference"] = row["goals_for"] - row["goals_against"]
        return 1

    async def reset_team_stats(self, *, competition_id: int, cur: Any = None) -> int:
        n = 0
        for t in self.store.teams.values():
            if t["competition_id"] == competition_id:
                t.update({k: 0 for k in _TEAM_STATS})
                n += 1
        return n


class FakeMatchRepo(_FakeRepoBase):
    def _with_names(self, m: dict) -> dict:
        teams, groups = self.store.teams, self.store.groups

        def name(tid):
            return teams[tid]["display_name"] if tid in teams else None

        out = dict(m)
        out["home_team_name"] = name(m["home_team_id"])
        out["away_team_name"] = name(m["away_team_id"])
        out["winner_team_name"] = name(m["winner_team_id"])
        out["group_name"] = groups[m["group_id"]]["name"] if m["group_id"] in groups else None
        return out

    async def delete_matches(self, *, competition_id: int, cur: Any = None) -> int:
        doomed = [mid for mid, m in self.store.matches.items() if m["competition_id"] == competition_id]
        for mid in doomed:
            del self.store.matches[mid]
        return len(doomed)

    async def insert_matches(self, *, competition_id: int, matches: Sequence[ScheduledMatch], cur: Any = None) -> int:
        n = 0
        for sm in matches:
            if sm.is_bye or sm.match_no is None:
                continue
            mid = self.store.next_id("match")
            row = {
                "match_id": mid,
                "competition_id": competition_id,
                "match_no": sm.match_no,
                "round_no": sm.round_no,
                "round_label": sm.round_label,
                "group_id": sm.group_id,
                "scheduled_at": sm.scheduled_at,
                "venue": sm.venue,
                **_RESULT_RESET,
            }
            for side in Side:
                slot = sm.slot(side)
                row[f"{side.value}_team_id"] = slot.team_id
                row[f"{side.value}_source_match_no"] = slot.source.match_no if slot.source else None
                row[f"{side.value}_source_outcome"] = slot.source.outcome.value if slot.source else None
            self.store.matches[mid] = row
            n += 1
        return n

    async def list_matches(self, *, competition_id: int, cur: Any = None):
        return [self._with_names(m) for m in self.store.matches_of(competition_id)]

    async def get_match(self, *, competition_id: int, match_id: int, lock: Optional[str] = None, cur: Any = None):
        m = self.store.matches.get(match_id)
        if m is None or m["competition_id"] != competition_id:
            return None
        if lock:
            self.store.locks.append(("match", match_id, lock))
            return dict(m)
        return self._with_names(m)

    async def list_dependants(self, *, competition_id: int, match_no: int, cur: Any = None):
        return [
            dict(m)
            for m in sorted(self.store.matches.values(), key=lambda m: m["match_no"])
            if m["competition_id"] == competition_id
            and match_no in (m["home_source_match_no"], m["away_source_match_no"])
        ]

    async def max_knockout_round(self, *, competition_id: int, cur: Any = None):
        rounds = [
            m["round_no"]
            for m in self.store.matches.values()
            if m["competition_id"] == competition_id and m["group_id"] is None
        ]
        return max(rounds) if rounds else None

    async def update_result(
        self,
        *,
        match_id: int,
        status: str,
        score: Optional[ScorePair],
        overtime: Optional[ScorePair],
        penalties: Optional[ScorePair],
        winner_team_id: Optional[int],
        is_draw: bool,
        started_at,
        ended_at,
        notes,
        cur: Any = None,
    ) -> int:
        m = self.store.matches[match_id]
        m.update(
            status=status,
            home_score=score.home if score else None,
            away_score=score.away if score else None,
            home_ot_score=overtime.home if overtime else None,
            away_ot_score=overtime.away if overtime else None,
            home_pen_score=penalties.home if penalties else None,
            away_pen_score=penalties.away if penalties else None,
            winner_team_id=winner_team_id,
            is_draw=1 if is_draw else 0,
            started_at=started_at,
            ended_at=ended_at,
            notes=notes,
        )
        return 1

    async def set_slot_team(self, *, match_id: int, side: Side, team_id: Optional[int], cur: Any = None) -> int:
        self.store.matches[match_id][f"{side.value}_team_id"] = team_id
        return 1

    async def restore_match(
        self, *, match_id: int, home_team_id: Optional[int], away_team_id: Optional[int], cur: Any = None
    ) -> int:
        m = self.store.matches[match_id]
        m.update(_RESULT_RESET)
        m.update(home_team_id=home_team_id, away_team_id=away_team_id)
        return 1


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def competition_repo(store) -> FakeCompetitionRepo:
    return FakeCompetitionRepo(store)


@pytest.fixture
def match_repo(store) -> FakeMatchRepo:
    return FakeMatchRepo(store)


class NotifierSpy:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []

    async def __call__(self, event: str, payload: Mapping[str, Any]) -> None:
        self.calls.append((event, dict(payload)))


@pytest.fixture
def notifier() -> NotifierSpy:
    return NotifierSpy()


def make_competition(store: FakeStore, *, guild_id: int = GUILD, **fields: Any) -> int:
    cid = store.next_id("competition")
    row = {
        "competition_id": cid,
        "guild_id": guild_id,
        "name": fields.pop("name", f"Cup {cid}"),
        "format": fields.pop("format", "tournament"),
        "starts_at": fields.pop("starts_at", STARTS_AT),
        **_COMPETITION_DEFAULTS,
    }
    row.update(fields)
    store.competitions[cid] = row
    return cid


def make_teams(
    store: FakeStore,
    competition_id: int,
    names: Sequence[str],
    *,
    seeds: Sequence[Optional[int]] | None = None,
    group_id: Optional[int] = None,
) -> list[int]:
    ids = []
    for i, name in enumerate(names):
        tid = store.next_id("team")
        store.teams[tid] = {
            "team_id": tid,
            "competition_id": competition_id,
            "display_name": name,
            "seed": seeds[i] if seeds else None,
            "group_id": group_id,
            **{k: 0 for k in _TEAM_STATS},
        }
        ids.append(tid)
    return ids


def make_group(store: FakeStore, competition_id: int, name: str, sort_order: int = 0) -> int:
    gid = store.next_id("group")
    store.groups[gid] = {"group_id": gid, "competition_id": competition_id, "name": name, "sort_order": sort_order}
    return gid
