# services/common.py
from __future__ import annotations

from typing import Any, Optional

from domain.errors import FeatureDisabledError, NotFoundError
from domain.models import Competition
from repositories.competition_repo import CompetitionRepo


def require_enabled(enabled: bool) -> None:
    if not enabled:
        raise FeatureDisabledError("Match setup is disabled for this deployment.")


async def load_competition(
    repo: CompetitionRepo,
    *,
    guild_id: int,
    competition_id: int,
    lock: Optional[str] = None,
    cur: Any = None,
) -> Competition:
    row = await repo.get_competition(competition_id=competition_id, guild_id=guild_id, lock=lock, cur=cur)
    if not row:
        raise NotFoundError(f"Competition not found: {competition_id}")
    return Competition.from_row(row)
