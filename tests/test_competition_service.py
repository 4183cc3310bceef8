"""Tests for competition lifecycle, registration, groups and standings."""

from datetime import datetime

import pytest

from conftest import GUILD, OTHER_GUILD, make_competition, make_group, make_teams
from domain.enums import CompetitionFormat, CompetitionStatus
from domain.errors import NotFoundError, StateConflictError, ValidationError
from services.competition_service import CompetitionService, TeamInput, normalize_settings

START = datetime(2025, 6, 1, 10, 0)


@pytest.fixture
def service(competition_repo, match_repo):
    return CompetitionService(competition_repo, match_repo)


class TestCreate:
    @pytest.mark.asyncio
    async def test_defaults(self, service, store):
        comp = await service.create_competition(guild_id=GUILD, name="  Summer Cup ", format="Tournament", starts_at=START)

        assert comp.name == "Summer Cup"
        assert comp.format is CompetitionFormat.TOURNAMENT
        assert comp.status is CompetitionStatus.DRAFT
        assert comp.guild_id == GUILD
        assert (comp.points_win, comp.points_draw, comp.points_loss) == (3, 1, 0)
        assert comp.day_start_minute == 540

    @pytest.mark.asyncio
    async def test_with_settings(self, service):
        comp = await service.create_competition(
            guild_id=GUILD,
            name="League",
            format=CompetitionFormat.LEAGUE,
            starts_at=START,
            matches_per_day=4,
            has_overtime=True,
            points_win=2,
        )
        assert comp.matches_per_day == 4
        assert comp.has_overtime is True
        assert comp.points_win == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kw",
        [
            {"format": "swiss"},
            {"name": "  "},
            {"matches_per_day": 0},
            {"match_duration_min": "long"},
            {"colour": "red"},
        ],
    )
    async def test_rejects_bad_input(self, service, store, kw):
        args = {"guild_id": GUILD, "name": "Cup", "format": "league", "starts_at": START, **kw}
        with pytest.raises(ValidationError):
            await service.create_competition(**args)
        assert store.competitions == {}


class TestSettings:
    @pytest.mark.asyncio
    async def test_update_in_draft(self, service, store):
        cid = make_competition(store)
        comp = await service.update_settings(guild_id=GUILD, competition_id=cid, third_place_match=True, name="Renamed")
        assert comp.third_place_match is True
        assert comp.name == "Renamed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["active", "completed"])
    async def test_frozen_while_running(self, service, store, status):
        cid = make_competition(store, status=status)
        with pytest.raises(StateConflictError) as exc:
            await service.update_settings(guild_id=GUILD, competition_id=cid, match_duration_min=30)
        assert exc.value.required == ("draft", "scheduled")
        assert store.competitions[cid]["match_duration_min"] == 60

    @pytest.mark.asyncio
    async def test_rejects_unschedulable_window(self, service, store):
        cid = make_competition(store)
        with pytest.raises(ValidationError):
            await service.update_settings(
                guild_id=GUILD, competition_id=cid, day_start_minute=600, day_end_minute=620
            )

    @pytest.mark.asyncio
    async def test_schedule_settings_locked_once_scheduled(self, service, store):
        cid = make_competition(store, status="scheduled")
        with pytest.raises(StateConflictError) as exc:
            await service.update_settings(
                guild_id=GUILD, competition_id=cid, format="league", match_duration_min=45
            )
        assert exc.value.required == ("draft",)
        assert "format" in str(exc.value) and "match_duration_min" in str(exc.value)
        assert store.competitions[cid]["format"] == "tournament"
        assert store.competitions[cid]["match_duration_min"] == 60

    @pytest.mark.asyncio
    async def test_other_settings_editable_once_scheduled(self, service, store):
        cid = make_competition(store, status="scheduled")
        comp = await service.update_settings(
            guild_id=GUILD, competition_id=cid, name="Renamed", points_win=2, has_penalties=True
        )
        assert (comp.name, comp.points_win, comp.has_penalties) == ("Renamed", 2, True)
        assert comp.status is CompetitionStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_unchanged_schedule_setting_passes_once_scheduled(self, service, store):
        cid = make_competition(store, status="scheduled")
        comp = await service.update_settings(
            guild_id=GUILD, competition_id=cid, format="tournament", match_duration_min=60, name="Same"
        )
        assert comp.format is CompetitionFormat.TOURNAMENT
        assert comp.name == "Same"

    def test_normalize_settings(self):
        out = normalize_settings({"matches_per_day": "6", "day_end_minute": None, "has_groups": 1})
        assert out == {"matches_per_day": 6, "day_end_minute": None, "has_groups": True}


class TestStatus:
    @pytest.mark.asyncio
    async def test_happy_path(self, service, store):
        cid = make_competition(store, status="scheduled")

        comp = await service.set_status(guild_id=GUILD, competition_id=cid, status="active")
        assert comp.status is CompetitionStatus.ACTIVE
        comp = await service.set_status(guild_id=GUILD, competition_id=cid, status=CompetitionStatus.COMPLETED)
        assert store.competitions[cid]["status"] == "completed"

    @pytest.mark.asyncio
    async def test_status_change_allowed_while_settings_frozen(self, service, store):
        cid = make_competition(store, status="active")
        comp = await service.set_status(guild_id=GUILD, competition_id=cid, status="cancelled")
        assert comp.status is CompetitionStatus.CANCELLED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "current,target",
        [("draft", "active"), ("draft", "scheduled"), ("completed", "cancelled"), ("cancelled", "active"), ("active", "draft")],
    )
    async def test_illegal_transitions(self, service, store, current, target):
        cid = make_competition(store, status=current)
        with pytest.raises(StateConflictError):
            await service.set_status(guild_id=GUILD, competition_id=cid, status=target)
        assert store.competitions[cid]["status"] == current

    @pytest.mark.asyncio
    async def test_same_status_is_a_no_op(self, service, store):
        cid = make_competition(store, status="active")
        comp = await service.set_status(guild_id=GUILD, competition_id=cid, status="active")
        assert comp.status is CompetitionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_unknown_status(self, service, store):
        cid = make_competition(store)
        with pytest.raises(ValidationError):
            await service.set_status(guild_id=GUILD, competition_id=cid, status="paused")


class TestTeams:
    @pytest.mark.asyncio
    async def test_bulk_add(self, service, store):
        cid = make_competition(store)
        teams = await service.add_teams(
            guild_id=GUILD,
            competition_id=cid,
            teams=[TeamInput("Unseeded"), TeamInput("Top", seed=1), TeamInput("Second", seed=2)],
        )
        assert [t.display_name for t in teams] == ["Top", "Second", "Unseeded"]

    @pytest.mark.asyncio
    async def test_only_in_draft(self, service, store):
        cid = make_competition(store, status="scheduled")
        with pytest.raises(StateConflictError) as exc:
            await service.add_teams(guild_id=GUILD, competition_id=cid, teams=[TeamInput("Late")])
        assert exc.value.required == ("draft",)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "teams",
        [
            [],
            [TeamInput("A"), TeamInput(" a ")],
            [TeamInput("")],
            [TeamInput("A", seed=0)],
        ],
    )
    async def test_rejects_bad_batches(self, service, store, teams):
        cid = make_competition(store)
        with pytest.raises(ValidationError):
            await service.add_teams(guild_id=GUILD, competition_id=cid, teams=teams)
        assert store.teams == {}

    @pytest.mark.asyncio
    async def test_all_or_nothing(self, service, store):
        cid = make_competition(store)
        other = make_competition(store)
        foreign_group = make_group(store, other, "X")

        with pytest.raises(ValidationError):
            await service.add_teams(
                guild_id=GUILD,
                competition_id=cid,
                teams=[TeamInput("Fine"), TeamInput("Wrong group", group_id=foreign_group)],
            )
        assert store.teams == {}


class TestGroups:
    @pytest.mark.asyncio
    async def test_create_orders_by_creation(self, service, store):
        cid = make_competition(store, has_groups=1)
        a = await service.create_group(guild_id=GUILD, competition_id=cid, name="A")
        b = await service.create_group(guild_id=GUILD, competition_id=cid, name="B")
        assert (a.sort_order, b.sort_order) == (0, 1)

        groups = await service.list_groups(guild_id=GUILD, competition_id=cid)
        assert [g.name for g in groups] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_duplicate_name(self, service, store):
        cid = make_competition(store)
        await service.create_group(guild_id=GUILD, competition_id=cid, name="A")
        with pytest.raises(ValidationError):
            await service.create_group(guild_id=GUILD, competition_id=cid, name="a")

    @pytest.mark.asyncio
    async def test_only_in_draft(self, service, store):
        cid = make_competition(store, status="active")
        with pytest.raises(StateConflictError):
            await service.create_group(guild_id=GUILD, competition_id=cid, name="A")


class TestStandings:
    @pytest.mark.asyncio
    async def test_sorted_table(self, service, store):
        cid = make_competition(store, format="league")
        a, b, c = make_teams(store, cid, ["Alpha", "Bravo", "Charlie"])
        store.teams[a].update(points=3, goals_for=2, goals_against=1)
        store.teams[b].update(points=3, goals_for=4, goals_against=1)
        store.teams[c].update(points=4)

        table = await service.get_standings(guild_id=GUILD, competition_id=cid)
        assert [t.display_name for t in table] == ["Charlie", "Bravo", "Alpha"]
        assert table[1].record.goal_difference == 3

    @pytest.mark.asyncio
    async def test_group_filter(self, service, store):
        cid = make_competition(store, has_groups=1)
        g1 = make_group(store, cid, "A")
        g2 = make_group(store, cid, "B")
        make_teams(store, cid, ["a1", "a2"], group_id=g1)
        make_teams(store, cid, ["b1"], group_id=g2)

        table = await service.get_standings(guild_id=GUILD, competition_id=cid, group_id=g2)
        assert [t.display_name for t in table] == ["b1"]


def _stale_match(store, competition_id: int) -> int:
    mid = store.next_id("match")
    store.matches[mid] = {"match_id": mid, "competition_id": competition_id, "match_no": 1}
    return mid


class TestListAndDelete:
    @pytest.mark.asyncio
    async def test_list_is_guild_scoped_newest_first(self, service, store):
        first = make_competition(store, name="Spring")
        make_competition(store, guild_id=OTHER_GUILD, name="Elsewhere")
        second = make_competition(store, name="Summer", status="active")

        comps = await service.list_competitions(guild_id=GUILD)
        assert [c.competition_id for c in comps] == [second, first]

        active = await service.list_competitions(guild_id=GUILD, status=CompetitionStatus.ACTIVE)
        assert [c.name for c in active] == ["Summer"]
        assert await service.list_competitions(guild_id=GUILD, status="completed") == []

    @pytest.mark.asyncio
    async def test_list_unknown_status(self, service, store):
        with pytest.raises(ValidationError):
            await service.list_competitions(guild_id=GUILD, status="paused")

    @pytest.mark.asyncio
    async def test_delete_cascades(self, service, store):
        cid = make_competition(store, status="active", has_groups=1)
        gid = make_group(store, cid, "A")
        make_teams(store, cid, ["Alpha", "Bravo"], group_id=gid)
        _stale_match(store, cid)
        keep = make_competition(store)
        kept_team = make_teams(store, keep, ["Other"])[0]

        comp = await service.delete_competition(guild_id=GUILD, competition_id=cid)

        assert comp.status is CompetitionStatus.ACTIVE
        assert list(store.competitions) == [keep]
        assert store.groups == {}
        assert list(store.teams) == [kept_team]
        assert store.matches == {}
        assert ("competition", cid, "update") in store.locks

    @pytest.mark.asyncio
    async def test_delete_other_guild(self, service, store):
        cid = make_competition(store, guild_id=OTHER_GUILD)
        with pytest.raises(NotFoundError):
            await service.delete_competition(guild_id=GUILD, competition_id=cid)
        assert cid in store.competitions


class TestTeamEdits:
    @pytest.mark.asyncio
    async def test_list_teams_in_seed_order(self, service, store):
        cid = make_competition(store)
        make_teams(store, cid, ["Late", "Top"], seeds=[None, 1])
        teams = await service.list_teams(guild_id=GUILD, competition_id=cid)
        assert [t.display_name for t in teams] == ["Top", "Late"]

    @pytest.mark.asyncio
    async def test_rename(self, service, store):
        cid = make_competition(store)
        tid = make_teams(store, cid, ["Alpha", "Bravo"])[0]
        mid = _stale_match(store, cid)

        team = await service.update_team(guild_id=GUILD, competition_id=cid, team_id=tid, display_name="  Apex ")

        assert team.display_name == "Apex"
        assert store.teams[tid]["display_name"] == "Apex"
        # a rename keeps the drawn schedule
        assert mid in store.matches

    @pytest.mark.asyncio
    async def test_reseed_and_regroup_drop_stale_schedule(self, service, store):
        cid = make_competition(store, has_groups=1)
        gid = make_group(store, cid, "A")
        tid = make_teams(store, cid, ["Alpha"], seeds=[3])[0]
        _stale_match(store, cid)

        team = await service.update_team(guild_id=GUILD, competition_id=cid, team_id=tid, seed=1, group_id=gid)

        assert (team.seed, team.group_id) == (1, gid)
        assert store.matches == {}
        assert ("team", tid, "update") in store.locks

    @pytest.mark.asyncio
    async def test_none_clears_seed_and_group(self, service, store):
        cid = make_competition(store, has_groups=1)
        gid = make_group(store, cid, "A")
        tid = make_teams(store, cid, ["Alpha"], seeds=[2], group_id=gid)[0]

        team = await service.update_team(guild_id=GUILD, competition_id=cid, team_id=tid, seed=None, group_id=None)

        assert (team.seed, team.group_id) == (None, None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [
            {},
            {"display_name": " "},
            {"display_name": "bravo"},
            {"seed": 0},
            {"seed": "first"},
            {"points": 9},
        ],
    )
    async def test_rejects_bad_changes(self, service, store, changes):
        cid = make_competition(store)
        tid = make_teams(store, cid, ["Alpha", "Bravo"], seeds=[1, 2])[0]
        with pytest.raises(ValidationError):
            await service.update_team(guild_id=GUILD, competition_id=cid, team_id=tid, **changes)
        assert (store.teams[tid]["display_name"], store.teams[tid]["seed"]) == ("Alpha", 1)

    @pytest.mark.asyncio
    async def test_same_name_different_case_is_a_rename(self, service, store):
        cid = make_competition(store)
        tid = make_teams(store, cid, ["Alpha"])[0]
        team = await service.update_team(guild_id=GUILD, competition_id=cid, team_id=tid, display_name="ALPHA")
        assert team.display_name == "ALPHA"

    @pytest.mark.asyncio
    async def test_foreign_group(self, service, store):
        cid = make_competition(store)
        foreign = make_group(store, make_competition(store), "X")
        tid = make_teams(store, cid, ["Alpha"])[0]
        with pytest.raises(ValidationError):
            await service.update_team(guild_id=GUILD, competition_id=cid, team_id=tid, group_id=foreign)
        assert store.teams[tid]["group_id"] is None

    @pytest.mark.asyncio
    async def test_unknown_team(self, service, store):
        cid = make_competition(store)
        other_team = make_teams(store, make_competition(store), ["Elsewhere"])[0]
        with pytest.raises(NotFoundError):
            await service.update_team(guild_id=GUILD, competition_id=cid, team_id=other_team, seed=1)
        with pytest.raises(NotFoundError):
            await service.remove_team(guild_id=GUILD, competition_id=cid, team_id=999)
        assert other_team in store.teams

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["scheduled", "active", "completed", "cancelled"])
    async def test_only_in_draft(self, service, store, status):
        cid = make_competition(store, status=status)
        tid = make_teams(store, cid, ["Alpha"])[0]

        with pytest.raises(StateConflictError) as exc:
            await service.update_team(guild_id=GUILD, competition_id=cid, team_id=tid, display_name="Other")
        assert exc.value.required == ("draft",)
        with pytest.raises(StateConflictError):
            await service.remove_team(guild_id=GUILD, competition_id=cid, team_id=tid)
        assert store.teams[tid]["display_name"] == "Alpha"

    @pytest.mark.asyncio
    async def test_remove(self, service, store):
        cid = make_competition(store)
        alpha, bravo = make_teams(store, cid, ["Alpha", "Bravo"])
        _stale_match(store, cid)

        team = await service.remove_team(guild_id=GUILD, competition_id=cid, team_id=alpha)

        assert team.display_name == "Alpha"
        assert list(store.teams) == [bravo]
        assert store.matches == {}

    @pytest.mark.asyncio
    async def test_remove_without_match_repo(self, competition_repo, store):
        service = CompetitionService(competition_repo)
        cid = make_competition(store)
        alpha = make_teams(store, cid, ["Alpha"])[0]
        mid = _stale_match(store, cid)

        await service.remove_team(guild_id=GUILD, competition_id=cid, team_id=alpha)

        assert store.teams == {}
        assert mid in store.matches


class TestScoping:
    @pytest.mark.asyncio
    async def test_other_guild(self, service, store):
        cid = make_competition(store, guild_id=OTHER_GUILD)
        with pytest.raises(NotFoundError):
            await service.get_competition(guild_id=GUILD, competition_id=cid)
        with pytest.raises(NotFoundError):
            await service.get_standings(guild_id=GUILD, competition_id=cid)
        with pytest.raises(NotFoundError):
            await service.set_status(guild_id=GUILD, competition_id=cid, status="cancelled")
