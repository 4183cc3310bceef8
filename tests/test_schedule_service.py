"""Tests for schedule generation against the in-memory repositories."""

import asyncio
from collections import Counter
from itertools import combinations

import pytest

from conftest import GUILD, OTHER_GUILD, make_competition, make_group, make_teams
from domain.bracket import THIRD_PLACE_LABEL
from domain.errors import FeatureDisabledError, NotFoundError, StateConflictError, ValidationError
from services.notifications import SCHEDULE_GENERATED
from services.schedule_service import ScheduleService


@pytest.fixture
def service(competition_repo, match_repo, notifier):
    return ScheduleService(competition_repo, match_repo, notifier=notifier)


async def _settle():
    for _ in range(3):
        await asyncio.sleep(0)


class TestGenerateLeague:
    @pytest.mark.asyncio
    async def test_every_pair_once_and_status_scheduled(self, service, store):
        cid = make_competition(store, format="league")
        ids = make_teams(store, cid, ["Ajax", "Brann", "Celtic", "Dundee"])

        matches = await service.generate(guild_id=GUILD, competition_id=cid)

        assert len(matches) == 6
        pairs = Counter(frozenset((m.home.team_id, m.away.team_id)) for m in matches)
        assert set(pairs) == {frozenset(p) for p in combinations(ids, 2)}
        assert store.competitions[cid]["status"] == "scheduled"
        assert all(m.home_team_name and m.away_team_name for m in matches)
        assert [m.match_no for m in matches] == [1, 2, 3, 4, 5, 6]

    @pytest.mark.asyncio
    async def test_uses_given_venues(self, service, store):
        cid = make_competition(store, format="league")
        make_teams(store, cid, ["a", "b", "c", "d"])

        matches = await service.generate(guild_id=GUILD, competition_id=cid, venues=["North", "South"])
        assert [m.venue for m in matches[:2]] == ["North", "South"]

    @pytest.mark.asyncio
    async def test_default_venues_from_config(self, competition_repo, match_repo, store):
        service = ScheduleService(competition_repo, match_repo, default_venues=["Main hall"])
        cid = make_competition(store, format="league")
        make_teams(store, cid, ["a", "b"])

        (only,) = await service.generate(guild_id=GUILD, competition_id=cid)
        assert only.venue == "Main hall"


class TestGenerateTournament:
    @pytest.mark.asyncio
    async def test_four_team_bracket(self, service, store):
        cid = make_competition(store)
        make_teams(store, cid, ["A", "B", "C", "D"], seeds=[1, 2, 3, 4])

        matches = await service.generate(guild_id=GUILD, competition_id=cid)

        assert len(matches) == 3
        final = matches[-1]
        assert final.round_label == "Final"
        assert final.home.team_id is None
        assert final.home.placeholder_text == "Winner of match 1"
        assert final.away.placeholder_text == "Winner of match 2"

    @pytest.mark.asyncio
    async def test_five_teams_persist_no_byes(self, service, store):
        cid = make_competition(store)
        ids = make_teams(store, cid, ["s1", "s2", "s3", "s4", "s5"], seeds=[1, 2, 3, 4, 5])

        matches = await service.generate(guild_id=GUILD, competition_id=cid)

        assert len(matches) == 4
        assert [m.round_no for m in matches] == [1, 2, 2, 3]
        round2 = [m for m in matches if m.round_no == 2]
        placed = {m.home.team_id for m in round2} | {m.away.team_id for m in round2}
        assert set(ids[:3]) <= placed

    @pytest.mark.asyncio
    async def test_seeds_then_registration_order(self, service, store):
        cid = make_competition(store)
        # registration order: u1, s2, u2, s1
        u1, s2, u2, s1 = make_teams(store, cid, ["u1", "s2", "u2", "s1"], seeds=[None, 2, None, 1])

        matches = await service.generate(guild_id=GUILD, competition_id=cid)

        # seed order s1, s2, u1, u2 -> 1v4 = s1 v u2, 2v3 = s2 v u1
        assert (matches[0].home.team_id, matches[0].away.team_id) == (s1, u2)
        assert (matches[1].home.team_id, matches[1].away.team_id) == (s2, u1)

    @pytest.mark.asyncio
    async def test_third_place(self, service, store):
        cid = make_competition(store, third_place_match=1)
        make_teams(store, cid, ["A", "B", "C", "D"])

        matches = await service.generate(guild_id=GUILD, competition_id=cid)
        assert len(matches) == 4
        third = [m for m in matches if m.round_label == THIRD_PLACE_LABEL][0]
        assert third.home.placeholder_text == "Loser of match 1"

    @pytest.mark.asyncio
    async def test_group_stage(self, service, store):
        cid = make_competition(store, has_groups=1)
        ga = make_group(store, cid, "A", 0)
        gb = make_group(store, cid, "B", 1)
        make_teams(store, cid, ["a1", "a2", "a3"], group_id=ga)
        make_teams(store, cid, ["b1", "b2", "b3"], group_id=gb)

        matches = await service.generate(guild_id=GUILD, competition_id=cid)

        assert len(matches) == 6
        assert Counter(m.group_name for m in matches) == Counter({"A": 3, "B": 3})
        assert [m.group_id for m in matches if m.round_no == 1] == [ga, gb]

    @pytest.mark.asyncio
    async def test_groups_enabled_but_none_defined_builds_bracket(self, service, store):
        cid = make_competition(store, has_groups=1)
        make_teams(store, cid, ["A", "B", "C", "D"])

        matches = await service.generate(guild_id=GUILD, competition_id=cid)
        assert matches[-1].round_label == "Final"


class TestRegenerate:
    @pytest.mark.asyncio
    async def test_replaces_previous_schedule(self, service, store):
        cid = make_competition(store)
        make_teams(store, cid, ["A", "B", "C", "D"])

        first = await service.generate(guild_id=GUILD, competition_id=cid)
        second = await service.generate(guild_id=GUILD, competition_id=cid)

        assert len(store.matches_of(cid)) == 3
        assert [m.match_no for m in second] == [m.match_no for m in first]
        assert {m.match_id for m in first}.isdisjoint({m.match_id for m in second})


class TestGenerateGuards:
    @pytest.mark.asyncio
    async def test_fewer_than_two_teams(self, service, store):
        cid = make_competition(store)
        make_teams(store, cid, ["lonely"])

        with pytest.raises(ValidationError):
            await service.generate(guild_id=GUILD, competition_id=cid)
        assert store.competitions[cid]["status"] == "draft"
        assert store.rollbacks == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["active", "completed"])
    async def test_running_competition_needs_reset(self, service, store, status):
        cid = make_competition(store, status=status)
        make_teams(store, cid, ["A", "B"])

        with pytest.raises(StateConflictError) as exc:
            await service.generate(guild_id=GUILD, competition_id=cid)
        assert "reset" in str(exc.value)
        assert exc.value.required == ("draft", "scheduled")

    @pytest.mark.asyncio
    async def test_cancelled(self, service, store):
        cid = make_competition(store, status="cancelled")
        make_teams(store, cid, ["A", "B"])

        with pytest.raises(StateConflictError):
            await service.generate(guild_id=GUILD, competition_id=cid)

    @pytest.mark.asyncio
    async def test_other_guild_is_not_found(self, service, store):
        cid = make_competition(store, guild_id=OTHER_GUILD)
        make_teams(store, cid, ["A", "B"])

        with pytest.raises(NotFoundError):
            await service.generate(guild_id=GUILD, competition_id=cid)

    @pytest.mark.asyncio
    async def test_disabled(self, competition_repo, match_repo, store):
        service = ScheduleService(competition_repo, match_repo, enabled=False)
        cid = make_competition(store)
        make_teams(store, cid, ["A", "B"])

        with pytest.raises(FeatureDisabledError):
            await service.generate(guild_id=GUILD, competition_id=cid)
        with pytest.raises(FeatureDisabledError):
            await service.get_schedule(guild_id=GUILD, competition_id=cid)

    @pytest.mark.asyncio
    async def test_bad_schedule_settings(self, service, store):
        cid = make_competition(store, matches_per_day=None, day_start_minute=2000)
        make_teams(store, cid, ["A", "B"])

        with pytest.raises(ValidationError):
            await service.generate(guild_id=GUILD, competition_id=cid)

    @pytest.mark.asyncio
    async def test_locks_competition_row(self, service, store):
        cid = make_competition(store)
        make_teams(store, cid, ["A", "B"])

        await service.generate(guild_id=GUILD, competition_id=cid)
        assert ("competition", cid, "update") in store.locks


class TestNotifications:
    @pytest.mark.asyncio
    async def test_fired_after_commit(self, service, store, notifier):
        cid = make_competition(store, name="Winter Cup")
        make_teams(store, cid, ["A", "B", "C"])

        await service.generate(guild_id=GUILD, competition_id=cid)
        await _settle()

        assert notifier.calls == [
            (
                SCHEDULE_GENERATED,
                {"guild_id": GUILD, "competition_id": cid, "name": "Winter Cup", "match_count": 2},
            )
        ]

    @pytest.mark.asyncio
    async def test_not_fired_on_failure(self, service, store, notifier):
        cid = make_competition(store)

        with pytest.raises(ValidationError):
            await service.generate(guild_id=GUILD, competition_id=cid)
        await _settle()
        assert notifier.calls == []

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_break_generate(self, competition_repo, match_repo, store, caplog):
        async def boom(event, payload):
            raise RuntimeError("channel gone")

        service = ScheduleService(competition_repo, match_repo, notifier=boom)
        cid = make_competition(store)
        make_teams(store, cid, ["A", "B"])

        matches = await service.generate(guild_id=GUILD, competition_id=cid)
        await _settle()

        assert len(matches) == 1
        assert "Notification schedule_generated failed" in caplog.text


class TestGetSchedule:
    @pytest.mark.asyncio
    async def test_reads_in_round_order(self, service, store):
        cid = make_competition(store)
        make_teams(store, cid, list("ABCDEFGH"))
        await service.generate(guild_id=GUILD, competition_id=cid)

        out = await service.get_schedule(guild_id=GUILD, competition_id=cid)
        assert [(m.round_no, m.match_no) for m in out] == sorted((m.round_no, m.match_no) for m in out)
        assert len(out) == 7

    @pytest.mark.asyncio
    async def test_scoped_to_guild(self, service, store):
        cid = make_competition(store, guild_id=OTHER_GUILD)
        with pytest.raises(NotFoundError):
            await service.get_schedule(guild_id=GUILD, competition_id=cid)
