# repositories/match_repo.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from domain.enums import Side
from domain.models import MatchSlot, ScheduledMatch, ScorePair
from repositories.base_repo import BaseRepo
from repositories.competition_repo import lock_clause

_SELECT_WITH_NAMES = """
    SELECT
      m.*,
      ht.display_name AS home_team_name,
      at.display_name AS away_team_name,
      wt.display_name AS winner_team_name,
      g.name          AS group_name
    FROM competition_match m
    LEFT JOIN competition_team  ht ON ht.team_id = m.home_team_id
    LEFT JOIN competition_team  at ON at.team_id = m.away_team_id
    LEFT JOIN competition_team  wt ON wt.team_id = m.winner_team_id
    LEFT JOIN competition_group g  ON g.group_id = m.group_id
"""


def _slot_columns(slot: MatchSlot) -> tuple[Any, Any, Any]:
    src = slot.source
    return (
        slot.team_id,
        src.match_no if src else None,
        src.outcome.value if src else None,
    )


def _score_columns(score: Optional[ScorePair]) -> tuple[Any, Any]:
    return (score.home, score.away) if score else (None, None)


class MatchRepo(BaseRepo):
    async def delete_matches(self, *, competition_id: int, cur: Any = None) -> int:
        return await self.execute(
            "DELETE FROM competition_match WHERE competition_id=%s;",
            (competition_id,),
            cur=cur,
        )

    async def insert_matches(
        self, *, competition_id: int, matches: Sequence[ScheduledMatch], cur: Any = None
    ) -> int:
        rows = []
        for m in matches:
            if m.is_bye or m.match_no is None:
                continue
            rows.append(
                (
                    competition_id,
                    m.match_no,
                    m.round_no,
                    m.round_label,
                    m.group_id,
                    *_slot_columns(m.home),
                    *_slot_columns(m.away),
                    m.scheduled_at,
                    m.venue,
                )
            )
        return await self.execute_many(
            """
            INSERT INTO competition_match
              (competition_id, match_no, round_no, round_label, group_id,
               home_team_id, home_source_match_no, home_source_outcome,
               away_team_id, away_source_match_no, away_source_outcome,
               scheduled_at, venue)
            VALUES
              (%s, %s, %s, %s, %s,
               %s, %s, %s,
               %s, %s, %s,
               %s, %s);
            """,
            rows,
            cur=cur,
        )

    async def list_matches(self, *, competition_id: int, cur: Any = None) -> list[Mapping[str, Any]]:
        """Schedule read: display names joined, ordered by round then match_no."""
        return await self.fetch_all(
            _SELECT_WITH_NAMES + " WHERE m.competition_id=%s ORDER BY m.round_no, m.match_no;",
            (competition_id,),
            cur=cur,
        )

    async def get_match(
        self,
        *,
        competition_id: int,
        match_id: int,
        lock: Optional[str] = None,
        cur: Any = None,
    ) -> Mapping[str, Any] | None:
        """
        Scoped by competition: a match of another competition is not found.
        Locked reads skip the name joins so only the match row is locked.
        """
        if lock is not None:
            return await self.fetch_one(
                "SELECT * FROM competition_match WHERE match_id=%s AND competition_id=%s" + lock_clause(lock) + ";",
                (match_id, competition_id),
                cur=cur,
            )
        return await self.fetch_one(
            _SELECT_WITH_NAMES + " WHERE m.match_id=%s AND m.competition_id=%s;",
            (match_id, competition_id),
            cur=cur,
        )

    async def list_dependants(self, *, competition_id: int, match_no: int, cur: Any = None) -> list[Mapping[str, Any]]:
        """Matches with a slot fed by match `match_no` (locked for update)."""
        return await self.fetch_all(
            """
            SELECT *
            FROM competition_match
            WHERE competition_id=%s
              AND (home_source_match_no=%s OR away_source_match_no=%s)
            ORDER BY match_no
            FOR UPDATE;
            """,
            (competition_id, match_no, match_no),
            cur=cur,
        )

    async def max_knockout_round(self, *, competition_id: int, cur: Any = None) -> int | None:
        row = await self.fetch_one(
            "SELECT MAX(round_no) AS max_round FROM competition_match WHERE competition_id=%s AND group_id IS NULL;",
            (competition_id,),
            cur=cur,
        )
        if not row or row.get("max_round") is None:
            return None
        return int(row["max_round"])

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
        started_at: Optional[datetime],
        ended_at: Optional[datetime],
        notes: Optional[str],
        cur: Any = None,
    ) -> int:
        return await self.execute(
            """
            UPDATE competition_match
            SET
              status=%s,
              home_score=%s, away_score=%s,
              home_ot_score=%s, away_ot_score=%s,
              home_pen_score=%s, away_pen_score=%s,
              winner_team_id=%s,
              is_draw=%s,
              started_at=%s,
              ended_at=%s,
              notes=%s,
              updated_at=NOW(6)
            WHERE match_id=%s;
            """,
            (
                status,
                *_score_columns(score),
                *_score_columns(overtime),
                *_score_columns(penalties),
                winner_team_id,
                1 if is_draw else 0,
                started_at,
                ended_at,
                notes,
                match_id,
            ),
            cur=cur,
        )

    async def set_slot_team(self, *, match_id: int, side: Side, team_id: Optional[int], cur: Any = None) -> int:
        column = "home_team_id" if side is Side.HOME else "away_team_id"
        return await self.execute(
            f"UPDATE competition_match SET {column}=%s, updated_at=NOW(6) WHERE match_id=%s;",
            (team_id, match_id),
            cur=cur,
        )

    async def restore_match(
        self,
        *,
        match_id: int,
        home_team_id: Optional[int],
        away_team_id: Optional[int],
        cur: Any = None,
    ) -> int:
        """Back to generation-time shape: given teams, every result field cleared."""
        return await self.execute(
            """
            UPDATE competition_match
            SET
              home_team_id=%s, away_team_id=%s,
              status='scheduled',
              home_score=NULL, away_score=NULL,
              home_ot_score=NULL, away_ot_score=NULL,
              home_pen_score=NULL, away_pen_score=NULL,
              winner_team_id=NULL,
              is_draw=0,
              started_at=NULL,
              ended_at=NULL,
              notes=NULL,
              updated_at=NOW(6)
            WHERE match_id=%s;
            """,
            (home_team_id, away_team_id, match_id),
            cur=cur,
        )
