# repositories/competition_repo.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from domain.stats import TeamRecord
from repositories.base_repo import BaseRepo

# columns update_competition() may touch
SETTINGS_COLUMNS = (
    "name",
    "format",
    "starts_at",
    "match_duration_min",
    "break_duration_min",
    "matches_per_day",
    "day_start_minute",
    "day_end_minute",
    "points_win",
    "points_draw",
    "points_loss",
    "has_overtime",
    "has_penalties",
    "has_groups",
    "third_place_match",
)

# columns update_team() may touch
TEAM_COLUMNS = ("display_name", "seed", "group_id")

_LOCKS = {
    None: "",
    "update": " FOR UPDATE",
    "share": " LOCK IN SHARE MODE",
}


def lock_clause(lock: Optional[str]) -> str:
    try:
        return _LOCKS[lock]
    except KeyError:
        raise ValueError(f"Unknown lock mode: {lock!r}") from None


class CompetitionRepo(BaseRepo):
    # -------------------------
    # Competition
    # -------------------------

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
        values: dict[str, Any] = {k: v for k, v in (settings or {}).items() if k in SETTINGS_COLUMNS}
        values.update(name=name, format=format, starts_at=starts_at)
        cols = ["guild_id", *values.keys()]
        return await self.insert_returning_id(
            f"INSERT INTO competition ({', '.join(cols)}) VALUES ({', '.join(['%s'] * len(cols))});",
            (guild_id, *values.values()),
            cur=cur,
        )

    async def get_competition(
        self,
        *,
        competition_id: int,
        guild_id: int | None = None,
        lock: Optional[str] = None,
        cur: Any = None,
    ) -> Mapping[str, Any] | None:
        """
        Guild-scoped lookup: a competition owned by another guild is reported
        exactly like a missing one.
        """
        sql = "SELECT * FROM competition WHERE competition_id=%s"
        params: list[Any] = [competition_id]
        if guild_id is not None:
            sql += " AND guild_id=%s"
            params.append(guild_id)
        return await self.fetch_one(sql + lock_clause(lock) + ";", params, cur=cur)

    async def update_competition(self, *, competition_id: int, changes: Mapping[str, Any], cur: Any = None) -> int:
        cols = [k for k in changes if k in SETTINGS_COLUMNS]
        if not cols:
            return 0
        assignments = ", ".join(f"{c}=%s" for c in cols)
        return await self.execute(
            f"UPDATE competition SET {assignments}, updated_at=NOW(6) WHERE competition_id=%s;",
            (*[changes[c] for c in cols], competition_id),
            cur=cur,
        )

    async def set_status(self, *, competition_id: int, status: str, cur: Any = None) -> int:
        return await self.execute(
            "UPDATE competition SET status=%s, updated_at=NOW(6) WHERE competition_id=%s;",
            (status, competition_id),
            cur=cur,
        )

    async def list_competitions(
        self, *, guild_id: int, status: Optional[str] = None, cur: Any = None
    ) -> list[Mapping[str, Any]]:
        """Newest first."""
        sql = "SELECT * FROM competition WHERE guild_id=%s"
        params: list[Any] = [guild_id]
        if status is not None:
            sql += " AND status=%s"
            params.append(status)
        return await self.fetch_all(sql + " ORDER BY created_at DESC, competition_id DESC;", params, cur=cur)

    async def delete_competition(self, *, competition_id: int, cur: Any = None) -> int:
        # groups, teams and matches go with it (ON DELETE CASCADE)
        return await self.execute("DELETE FROM competition WHERE competition_id=%s;", (competition_id,), cur=cur)

    # -------------------------
    # Groups
    # -------------------------

    async def create_group(self, *, competition_id: int, name: str, sort_order: int = 0, cur: Any = None) -> int:
        return await self.insert_returning_id(
            "INSERT INTO competition_group (competition_id, name, sort_order) VALUES (%s, %s, %s);",
            (competition_id, name, sort_order),
            cur=cur,
        )

    async def list_groups(self, *, competition_id: int, cur: Any = None) -> list[Mapping[str, Any]]:
        return await self.fetch_all(
            """
            SELECT group_id, competition_id, name, sort_order
            FROM competition_group
            WHERE competition_id=%s
            ORDER BY sort_order, group_id;
            """,
            (competition_id,),
            cur=cur,
        )

    # -------------------------
    # Teams
    # -------------------------

    async def add_team(
        self,
        *,
        competition_id: int,
        display_name: str,
        seed: int | None = None,
        group_id: int | None = None,
        cur: Any = None,
    ) -> int:
        return await self.insert_returning_id(
            """
            INSERT INTO competition_team (competition_id, display_name, seed, group_id)
            VALUES (%s, %s, %s, %s);
            """,
            (competition_id, display_name, seed, group_id),
            cur=cur,
        )

    async def list_teams(
        self, *, competition_id: int, group_id: int | None = None, cur: Any = None
    ) -> list[Mapping[str, Any]]:
        """Seed order: seeded teams by seed, then unseeded by registration (id)."""
        sql = "SELECT * FROM competition_team WHERE competition_id=%s"
        params: list[Any] = [competition_id]
        if group_id is not None:
            sql += " AND group_id=%s"
            params.append(group_id)
        return await self.fetch_all(sql + " ORDER BY seed IS NULL, seed, team_id;", params, cur=cur)

    async def get_team(
        self, *, competition_id: int, team_id: int, lock: Optional[str] = None, cur: Any = None
    ) -> Mapping[str, Any] | None:
        return await self.fetch_one(
            "SELECT * FROM competition_team WHERE competition_id=%s AND team_id=%s" + lock_clause(lock) + ";",
            (competition_id, team_id),
            cur=cur,
        )

    async def update_team(self, *, team_id: int, changes: Mapping[str, Any], cur: Any = None) -> int:
        cols = [k for k in changes if k in TEAM_COLUMNS]
        if not cols:
            return 0
        assignments = ", ".join(f"{c}=%s" for c in cols)
        return await self.execute(
            f"UPDATE competition_team SET {assignments} WHERE team_id=%s;",
            (*[changes[c] for c in cols], team_id),
            cur=cur,
        )

    async def delete_team(self, *, team_id: int, cur: Any = None) -> int:
        return await self.execute("DELETE FROM competition_team WHERE team_id=%s;", (team_id,), cur=cur)

    async def increment_team_stats(self, *, team_id: int, delta: TeamRecord, cur: Any = None) -> int:
        """
        Atomic in-row increments so two results touching the same team never
        lose an update. goal_difference is recomputed from the new totals
        (MySQL evaluates single-table SET assignments left to right).
        """
        return await self.execute(
            """
            UPDATE competition_team
            SET
              played        = played + %s,
              wins          = wins + %s,
              draws         = draws + %s,
              losses        = losses + %s,
              goals_for     = goals_for + %s,
              goals_against = goals_against + %s,
              goal_difference = goals_for - goals_against,
              points        = points + %s
            WHERE team_id=%s;
            """,
            (
                delta.played,
                delta.wins,
                delta.draws,
                delta.losses,
                delta.goals_for,
                delta.goals_against,
                delta.points,
                team_id,
            ),
            cur=cur,
        )

    async def reset_team_stats(self, *, competition_id: int, cur: Any = None) -> int:
        return await self.execute(
            """
            UPDATE competition_team
            SET played=0, wins=0, draws=0, losses=0,
                goals_for=0, goals_against=0, goal_difference=0, points=0
            WHERE competition_id=%s;
            """,
            (competition_id,),
            cur=cur,
        )
