# services/competition_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence, Union

from domain.enums import (
    COMPETITION_TRANSITIONS,
    FROZEN_STATUSES,
    CompetitionFormat,
    CompetitionStatus,
)
from domain.errors import NotFoundError, StateConflictError, ValidationError
from domain.models import Competition, Group, Team
from domain.stats import sort_standings
from repositories.competition_repo import SETTINGS_COLUMNS, TEAM_COLUMNS, CompetitionRepo
from repositories.match_repo import MatchRepo
from services.common import load_competition

log = logging.getLogger(__name__)

_INT_SETTINGS = (
    "match_duration_min",
    "break_duration_min",
    "day_start_minute",
    "points_win",
    "points_draw",
    "points_loss",
)
_OPTIONAL_INT_SETTINGS = ("matches_per_day", "day_end_minute")
_BOOL_SETTINGS = ("has_overtime", "has_penalties", "has_groups", "third_place_match")

# settings baked into persisted matches; fixed once a schedule exists
SCHEDULE_SETTINGS = frozenset(
    {
        "format",
        "starts_at",
        "match_duration_min",
        "break_duration_min",
        "matches_per_day",
        "day_start_minute",
        "day_end_minute",
        "has_groups",
        "third_place_match",
    }
)


@dataclass(frozen=True)
class TeamInput:
    display_name: str
    seed: Optional[int] = None
    group_id: Optional[int] = None


def _as_format(value: Union[CompetitionFormat, str]) -> CompetitionFormat:
    try:
        return CompetitionFormat(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        raise ValidationError("format must be 'league' or 'tournament'") from None


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer, got {value!r}") from None


def normalize_settings(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Type-check a settings mapping; unknown keys are rejected."""
    unknown = sorted(set(changes) - set(SETTINGS_COLUMNS))
    if unknown:
        raise ValidationError(f"Unknown setting(s): {', '.join(unknown)}")

    out: dict[str, Any] = {}
    for key, value in changes.items():
        if key == "name":
            name = str(value or "").strip()
            if not name:
                raise ValidationError("name is required")
            out[key] = name
        elif key == "format":
            out[key] = _as_format(value).value
        elif key == "starts_at":
            if not isinstance(value, datetime):
                raise ValidationError("starts_at must be a datetime")
            out[key] = value
        elif key in _INT_SETTINGS:
            out[key] = _as_int(key, value)
        elif key in _OPTIONAL_INT_SETTINGS:
            out[key] = None if value is None else _as_int(key, value)
        elif key in _BOOL_SETTINGS:
            out[key] = bool(value)
    return out


def _check_schedule_settings(comp: Competition) -> None:
    # SlotPolicy rejects durations, caps and day windows that cannot be scheduled
    comp.slot_policy()


class CompetitionService:
    """
    Competition lifecycle around the schedule: creation, settings (frozen
    once play starts), status transitions, team registration, groups and
    standings. Every lookup is scoped to the calling guild.
    """

    def __init__(self, competition_repo: CompetitionRepo, match_repo: Optional[MatchRepo] = None) -> None:
        self._repo = competition_repo
        # when given, team changes in draft also drop the now-stale schedule
        self._matches = match_repo

    # -------------------------
    # Competition
    # -------------------------

    async def create_competition(
        self,
        *,
        guild_id: int,
        name: str,
        format: Union[CompetitionFormat, str],
        starts_at: datetime,
        **settings: Any,
    ) -> Competition:
        values = normalize_settings({"name": name, "format": format, "starts_at": starts_at, **settings})
        candidate = replace(
            Competition(
                competition_id=0,
                guild_id=int(guild_id),
                name=values["name"],
                format=CompetitionFormat(values["format"]),
                status=CompetitionStatus.DRAFT,
                starts_at=starts_at,
            ),
            **{k: v for k, v in values.items() if k not in ("name", "format", "starts_at")},
        )
        _check_schedule_settings(candidate)

        competition_id = await self._repo.create_competition(
            guild_id=int(guild_id),
            name=values.pop("name"),
            format=values.pop("format"),
            starts_at=values.pop("starts_at"),
            settings=values,
        )
        log.info("Created competition %s '%s' (guild %s)", competition_id, name, guild_id)
        return await self.get_competition(guild_id=guild_id, competition_id=competition_id)

    async def get_competition(self, *, guild_id: int, competition_id: int) -> Competition:
        return await load_competition(self._repo, guild_id=guild_id, competition_id=competition_id)

    async def list_competitions(
        self, *, guild_id: int, status: Optional[Union[CompetitionStatus, str]] = None
    ) -> list[Competition]:
        """Newest first, optionally filtered by status."""
        wanted = None
        if status is not None:
            try:
                wanted = CompetitionStatus(str(getattr(status, "value", status)).strip().lower()).value
            except ValueError:
                raise ValidationError(f"Unknown competition status: {status!r}") from None
        rows = await self._repo.list_competitions(guild_id=int(guild_id), status=wanted)
        return [Competition.from_row(r) for r in rows]

    async def delete_competition(self, *, guild_id: int, competition_id: int) -> Competition:
        """Removes the competition with its groups, teams and matches, in any status."""

        async def _tx(_conn: Any, cur: Any) -> Competition:
            comp = await load_competition(
                self._repo, guild_id=guild_id, competition_id=competition_id, lock="update", cur=cur
            )
            await self._repo.delete_competition(competition_id=competition_id, cur=cur)
            return comp

        comp = await self._repo.in_tx(_tx)
        log.info(
            "Deleted competition %s '%s' (guild %s, was %s)", competition_id, comp.name, guild_id, comp.status.value
        )
        return comp

    async def update_settings(self, *, guild_id: int, competition_id: int, **changes: Any) -> Competition:
        values = normalize_settings(changes)

        async def _tx(_conn: Any, cur: Any) -> Competition:
            comp = await load_competition(
                self._repo, guild_id=guild_id, competition_id=competition_id, lock="update", cur=cur
            )
            if comp.status in FROZEN_STATUSES:
                raise StateConflictError(
                    f"Settings are locked while the competition is {comp.status.value}.",
                    required=[CompetitionStatus.DRAFT, CompetitionStatus.SCHEDULED],
                )
            if comp.status is CompetitionStatus.SCHEDULED:
                moved = sorted(k for k in values if k in SCHEDULE_SETTINGS and values[k] != getattr(comp, k))
                if moved:
                    raise StateConflictError(
                        f"{', '.join(moved)} shape the generated schedule; reset the competition to change them.",
                        required=[CompetitionStatus.DRAFT],
                    )
            merged = dict(values)
            if "format" in merged:
                merged["format"] = CompetitionFormat(merged["format"])
            _check_schedule_settings(replace(comp, **merged))
            await self._repo.update_competition(competition_id=competition_id, changes=values, cur=cur)
            row = await self._repo.get_competition(competition_id=competition_id, cur=cur)
            return Competition.from_row(row)

        return await self._repo.in_tx(_tx)

    async def set_status(
        self, *, guild_id: int, competition_id: int, status: Union[CompetitionStatus, str]
    ) -> Competition:
        """
        Pure status transition. draft -> scheduled only happens through
        schedule generation and any -> draft only through a reset.
        """
        try:
            target = CompetitionStatus(str(getattr(status, "value", status)).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown competition status: {status!r}") from None

        async def _tx(_conn: Any, cur: Any) -> Competition:
            comp = await load_competition(
                self._repo, guild_id=guild_id, competition_id=competition_id, lock="update", cur=cur
            )
            if target is comp.status:
                return comp
            if target not in COMPETITION_TRANSITIONS[comp.status]:
                sources = [s for s, nxt in COMPETITION_TRANSITIONS.items() if target in nxt]
                raise StateConflictError(
                    f"Cannot move a {comp.status.value} competition to {target.value}.",
                    required=sources,
                )
            await self._repo.set_status(competition_id=competition_id, status=target.value, cur=cur)
            return replace(comp, status=target)

        comp = await self._repo.in_tx(_tx)
        log.info("Competition %s status -> %s", competition_id, comp.status.value)
        return comp

    # -------------------------
    # Teams & groups
    # -------------------------

    async def add_teams(
        self, *, guild_id: int, competition_id: int, teams: Sequence[TeamInput]
    ) -> list[Team]:
        """Bulk registration; all or nothing."""
        if not teams:
            raise ValidationError("No teams given.")
        seen: set[str] = set()
        for t in teams:
            name = (t.display_name or "").strip()
            if not name:
                raise ValidationError("Every team needs a name.")
            if name.casefold() in seen:
                raise ValidationError(f"Duplicate team name: {name}")
            seen.add(name.casefold())
            if t.seed is not None and (isinstance(t.seed, bool) or int(t.seed) < 1):
                raise ValidationError(f"Seed of {name} must be a positive integer.")

        async def _tx(_conn: Any, cur: Any) -> list[Team]:
            comp = await load_competition(
                self._repo, guild_id=guild_id, competition_id=competition_id, lock="update", cur=cur
            )
            if comp.status is not CompetitionStatus.DRAFT:
                raise StateConflictError(
                    "Teams can only be added while the competition is a draft.",
                    required=[CompetitionStatus.DRAFT],
                )
            group_ids = {
                int(g["group_id"]) for g in await self._repo.list_groups(competition_id=competition_id, cur=cur)
            }
            for t in teams:
                if t.group_id is not None and int(t.group_id) not in group_ids:
                    raise ValidationError(f"Group {t.group_id} does not belong to this competition.")
                await self._repo.add_team(
                    competition_id=competition_id,
                    display_name=t.display_name.strip(),
                    seed=int(t.seed) if t.seed is not None else None,
                    group_id=int(t.group_id) if t.group_id is not None else None,
                    cur=cur,
                )
            rows = await self._repo.list_teams(competition_id=competition_id, cur=cur)
            return [Team.from_row(r) for r in rows]

        out = await self._repo.in_tx(_tx)
        log.info("Added %d team(s) to competition %s", len(teams), competition_id)
        return out

    async def create_group(
        self, *, guild_id: int, competition_id: int, name: str, sort_order: Optional[int] = None
    ) -> Group:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Group name is required.")

        async def _tx(_conn: Any, cur: Any) -> Group:
            comp = await load_competition(
                self._repo, guild_id=guild_id, competition_id=competition_id, lock="update", cur=cur
            )
            if comp.status is not CompetitionStatus.DRAFT:
                raise StateConflictError(
                    "Groups can only be created while the competition is a draft.",
                    required=[CompetitionStatus.DRAFT],
                )
            existing = await self._repo.list_groups(competition_id=competition_id, cur=cur)
            if any(str(g["name"]).casefold() == name.casefold() for g in existing):
                raise ValidationError(f"Group {name} already exists.")
            order = int(sort_order) if sort_order is not None else len(existing)
            group_id = await self._repo.create_group(
                competition_id=competition_id, name=name, sort_order=order, cur=cur
            )
            return Group(group_id=group_id, competition_id=competition_id, name=name, sort_order=order)

        return await self._repo.in_tx(_tx)

    async def list_groups(self, *, guild_id: int, competition_id: int) -> list[Group]:
        await load_competition(self._repo, guild_id=guild_id, competition_id=competition_id)
        return [Group.from_row(r) for r in await self._repo.list_groups(competition_id=competition_id)]

    async def list_teams(self, *, guild_id: int, competition_id: int) -> list[Team]:
        await load_competition(self._repo, guild_id=guild_id, competition_id=competition_id)
        return [Team.from_row(r) for r in await self._repo.list_teams(competition_id=competition_id)]

    async def update_team(
        self, *, guild_id: int, competition_id: int, team_id: int, **changes: Any
    ) -> Team:
        """
        Rename, reseed or regroup one team while the competition is a draft.
        A seed or group of None clears it. Seed and group changes drop any
        schedule left over from a reset.
        """
        unknown = sorted(set(changes) - set(TEAM_COLUMNS))
        if unknown:
            raise ValidationError(f"Unknown team field(s): {', '.join(unknown)}")
        if not changes:
            raise ValidationError("Nothing to change.")

        values: dict[str, Any] = {}
        if "display_name" in changes:
            name = str(changes["display_name"] or "").strip()
            if not name:
                raise ValidationError("Every team needs a name.")
            values["display_name"] = name
        if "seed" in changes:
            seed = changes["seed"]
            if seed is not None:
                seed = _as_int("seed", seed)
                if seed < 1:
                    raise ValidationError("Seed must be a positive integer.")
            values["seed"] = seed
        if "group_id" in changes:
            group_id = changes["group_id"]
            values["group_id"] = None if group_id is None else _as_int("group_id", group_id)

        async def _tx(_conn: Any, cur: Any) -> Team:
            await self._load_draft(guild_id, competition_id, "Teams can only be edited", cur)
            current = await self._load_team(competition_id, team_id, cur)
            if "display_name" in values:
                taken = {
                    str(t["display_name"]).casefold()
                    for t in await self._repo.list_teams(competition_id=competition_id, cur=cur)
                    if int(t["team_id"]) != current.team_id
                }
                if values["display_name"].casefold() in taken:
                    raise ValidationError(f"Duplicate team name: {values['display_name']}")
            if values.get("group_id") is not None:
                group_ids = {
                    int(g["group_id"]) for g in await self._repo.list_groups(competition_id=competition_id, cur=cur)
                }
                if values["group_id"] not in group_ids:
                    raise ValidationError(f"Group {values['group_id']} does not belong to this competition.")

            await self._repo.update_team(team_id=current.team_id, changes=values, cur=cur)
            if any(k in values and values[k] != getattr(current, k) for k in ("seed", "group_id")):
                await self._drop_stale_schedule(competition_id, cur)
            row = await self._repo.get_team(competition_id=competition_id, team_id=current.team_id, cur=cur)
            return Team.from_row(row)

        team = await self._repo.in_tx(_tx)
        log.info("Updated team %s in competition %s: %s", team.team_id, competition_id, ", ".join(sorted(values)))
        return team

    async def remove_team(self, *, guild_id: int, competition_id: int, team_id: int) -> Team:
        async def _tx(_conn: Any, cur: Any) -> Team:
            await self._load_draft(guild_id, competition_id, "Teams can only be removed", cur)
            team = await self._load_team(competition_id, team_id, cur)
            await self._repo.delete_team(team_id=team.team_id, cur=cur)
            await self._drop_stale_schedule(competition_id, cur)
            return team

        team = await self._repo.in_tx(_tx)
        log.info("Removed team %s '%s' from competition %s", team.team_id, team.display_name, competition_id)
        return team

    async def _load_draft(self, guild_id: int, competition_id: int, action: str, cur: Any) -> Competition:
        comp = await load_competition(
            self._repo, guild_id=guild_id, competition_id=competition_id, lock="update", cur=cur
        )
        if comp.status is not CompetitionStatus.DRAFT:
            raise StateConflictError(
                f"{action} while the competition is a draft.",
                required=[CompetitionStatus.DRAFT],
            )
        return comp

    async def _load_team(self, competition_id: int, team_id: int, cur: Any) -> Team:
        row = await self._repo.get_team(competition_id=competition_id, team_id=int(team_id), lock="update", cur=cur)
        if not row:
            raise NotFoundError(f"Team not found: {team_id}")
        return Team.from_row(row)

    async def _drop_stale_schedule(self, competition_id: int, cur: Any) -> None:
        if self._matches is None:
            return
        dropped = await self._matches.delete_matches(competition_id=competition_id, cur=cur)
        if dropped:
            log.info("Dropped %d stale match(es) of competition %s", dropped, competition_id)

    async def get_standings(
        self, *, guild_id: int, competition_id: int, group_id: Optional[int] = None
    ) -> list[Team]:
        await load_competition(self._repo, guild_id=guild_id, competition_id=competition_id)
        rows = await self._repo.list_teams(competition_id=competition_id, group_id=group_id)
        return sort_standings([Team.from_row(r) for r in rows])
