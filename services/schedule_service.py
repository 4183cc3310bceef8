# services/schedule_service.py
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from domain.bracket import build_bracket
from domain.enums import FROZEN_STATUSES, REGENERABLE_STATUSES, CompetitionFormat, CompetitionStatus
from domain.errors import StateConflictError, ValidationError
from domain.groups import generate_group_stage_schedule
from domain.league import generate_league_schedule
from domain.models import Competition, Group, Match, ScheduledMatch, Team, seed_order
from domain.slots import SlotPolicy
from repositories.competition_repo import CompetitionRepo
from repositories.match_repo import MatchRepo
from services.common import load_competition, require_enabled
from services.notifications import SCHEDULE_GENERATED, Notifier, fire_and_forget

log = logging.getLogger(__name__)


class ScheduleService:
    """
    Turns registered teams into persisted matches.

    generate() replaces the whole schedule in one transaction: any previous
    matches are deleted, the right generator runs for the competition's
    format, the non-bye matches are inserted and the competition becomes
    `scheduled`.
    """

    def __init__(
        self,
        competition_repo: CompetitionRepo,
        match_repo: MatchRepo,
        *,
        enabled: bool = True,
        notifier: Optional[Notifier] = None,
        default_venues: Sequence[str] = (),
        default_matches_per_day: Optional[int] = None,
    ) -> None:
        self._competitions = competition_repo
        self._matches = match_repo
        self._enabled = enabled
        self._notify = notifier
        self._default_venues = tuple(default_venues)
        self._default_matches_per_day = default_matches_per_day

    # -------------------------
    # Public API
    # -------------------------

    async def generate(
        self,
        *,
        guild_id: int,
        competition_id: int,
        venues: Sequence[str] | None = None,
    ) -> list[Match]:
        require_enabled(self._enabled)

        async def _tx(_conn: Any, cur: Any) -> tuple[Competition, list[Match]]:
            comp = await load_competition(
                self._competitions, guild_id=guild_id, competition_id=competition_id, lock="update", cur=cur
            )
            if comp.status in FROZEN_STATUSES:
                raise StateConflictError(
                    f"Competition is {comp.status.value}; reset it before generating a new schedule.",
                    required=sorted(s.value for s in REGENERABLE_STATUSES),
                )
            if comp.status not in REGENERABLE_STATUSES:
                raise StateConflictError(
                    f"Competition is {comp.status.value}; a schedule cannot be generated.",
                    required=sorted(s.value for s in REGENERABLE_STATUSES),
                )

            rows = await self._competitions.list_teams(competition_id=competition_id, cur=cur)
            teams = seed_order(Team.from_row(r) for r in rows)
            if len(teams) < 2:
                raise ValidationError("At least two teams are required to generate a schedule.")

            policy = comp.slot_policy(
                venues or self._default_venues,
                default_matches_per_day=self._default_matches_per_day,
            )
            planned = await self._plan(comp, teams, policy, cur=cur)

            await self._matches.delete_matches(competition_id=competition_id, cur=cur)
            await self._matches.insert_matches(competition_id=competition_id, matches=planned, cur=cur)
            await self._competitions.set_status(
                competition_id=competition_id, status=CompetitionStatus.SCHEDULED.value, cur=cur
            )

            persisted = await self._matches.list_matches(competition_id=competition_id, cur=cur)
            return comp, [Match.from_row(r) for r in persisted]

        comp, matches = await self._competitions.in_tx(_tx)
        log.info(
            "Generated %s schedule for competition %s (guild %s): %d matches",
            comp.format.value,
            competition_id,
            guild_id,
            len(matches),
        )
        fire_and_forget(
            self._notify,
            SCHEDULE_GENERATED,
            {
                "guild_id": guild_id,
                "competition_id": competition_id,
                "name": comp.name,
                "match_count": len(matches),
            },
        )
        return matches

    async def get_schedule(self, *, guild_id: int, competition_id: int) -> list[Match]:
        """Matches with display names, by round then match_no."""
        require_enabled(self._enabled)
        await load_competition(self._competitions, guild_id=guild_id, competition_id=competition_id)
        rows = await self._matches.list_matches(competition_id=competition_id)
        return [Match.from_row(r) for r in rows]

    # -------------------------
    # Internals
    # -------------------------

    async def _plan(
        self, comp: Competition, teams: list[Team], policy: SlotPolicy, *, cur: Any
    ) -> list[ScheduledMatch]:
        team_ids = [t.team_id for t in teams]

        if comp.format is CompetitionFormat.LEAGUE:
            return generate_league_schedule(team_ids, policy)

        if comp.has_groups:
            groups = [
                Group.from_row(r)
                for r in await self._competitions.list_groups(competition_id=comp.competition_id, cur=cur)
            ]
            if groups:
                return self._plan_groups(comp, teams, groups, policy)
            log.info("Competition %s has groups enabled but none defined; building a bracket", comp.competition_id)

        return build_bracket(team_ids, policy, third_place=comp.third_place_match)

    def _plan_groups(
        self, comp: Competition, teams: list[Team], groups: list[Group], policy: SlotPolicy
    ) -> list[ScheduledMatch]:
        known = {g.group_id for g in groups}
        ungrouped = [t.display_name for t in teams if t.group_id not in known]
        if ungrouped:
            log.warning(
                "Competition %s: %d team(s) without a group are left out of the group stage: %s",
                comp.competition_id,
                len(ungrouped),
                ", ".join(ungrouped),
            )

        layout = [(g.group_id, [t.team_id for t in teams if t.group_id == g.group_id]) for g in groups]
        planned = generate_group_stage_schedule(layout, policy)
        if not planned:
            raise ValidationError("No group has at least two teams.")
        return planned
