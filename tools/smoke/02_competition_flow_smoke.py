from __future__ import annotations

import os, sys
from dataclasses import asdict
from datetime import datetime
from uuid import uuid4

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_config
from db.pool import DbPool, MySqlPoolConfig
from domain.enums import CompetitionStatus, MatchStatus
from repositories.competition_repo import CompetitionRepo
from repositories.match_repo import MatchRepo
from services.competition_service import CompetitionService, TeamInput
from services.reset_service import ResetService
from services.result_service import ResultService
from services.schedule_service import ScheduleService

SMOKE_GUILD_ID = 999000111222333444

async def main() -> None:
    cfg = load_config()

    run_id = os.getenv("SMOKE_RUN_ID") or f"smk_{uuid4().hex[:10]}"
    guild_id = int(os.getenv("SMOKE_GUILD_ID") or SMOKE_GUILD_ID)

    db = DbPool()
    await db.start(MySqlPoolConfig(**asdict(cfg.mysql)))
    await db.apply_schema()

    competitions = CompetitionRepo(db)
    matches = MatchRepo(db)
    comp_svc = CompetitionService(competitions, matches)
    schedule = ScheduleService(competitions, matches, default_venues=["Court A", "Court B"])
    results = ResultService(competitions, matches)
    resets = ResetService(competitions, matches)

    # --- League: 4 teams, double-check standings after one result ---
    league = await comp_svc.create_competition(
        guild_id=guild_id,
        name=f"SMOKE_LEAGUE_{run_id}",
        format="league",
        starts_at=datetime(2030, 1, 5, 9, 0),
    )
    await comp_svc.add_teams(
        guild_id=guild_id,
        competition_id=league.competition_id,
        teams=[TeamInput(n) for n in ("Lions", "Tigers", "Bears", "Wolves")],
    )
    ms = await schedule.generate(guild_id=guild_id, competition_id=league.competition_id)
    assert len(ms) == 6, len(ms)
    print(f"OK: league {league.competition_id} scheduled {len(ms)} matches")

    await comp_svc.set_status(guild_id=guild_id, competition_id=league.competition_id, status="active")
    first = ms[0]
    await results.record_result(
        guild_id=guild_id, competition_id=league.competition_id, match_id=first.match_id, score=(2, 1)
    )
    table = await comp_svc.get_standings(guild_id=guild_id, competition_id=league.competition_id)
    assert table[0].record.points == 3 and table[0].record.played == 1, table[0]
    print(f"OK: league standings leader {table[0].display_name} with {table[0].record.points} pts")

    # --- Tournament: 5 teams, byes, third place; play it out ---
    cup = await comp_svc.create_competition(
        guild_id=guild_id,
        name=f"SMOKE_CUP_{run_id}",
        format="tournament",
        starts_at=datetime(2030, 2, 1, 10, 0),
        third_place_match=True,
    )
    await comp_svc.add_teams(
        guild_id=guild_id,
        competition_id=cup.competition_id,
        teams=[TeamInput(f"Seed {i}", seed=i) for i in range(1, 6)],
    )
    bracket = await schedule.generate(guild_id=guild_id, competition_id=cup.competition_id)
    print(f"OK: cup {cup.competition_id} scheduled {len(bracket)} matches")

    await comp_svc.set_status(guild_id=guild_id, competition_id=cup.competition_id, status="active")
    for _ in range(len(bracket)):
        current = await schedule.get_schedule(guild_id=guild_id, competition_id=cup.competition_id)
        ready = [m for m in current if m.status is MatchStatus.SCHEDULED and m.is_startable]
        if not ready:
            break
        m = ready[0]
        await results.record_result(
            guild_id=guild_id, competition_id=cup.competition_id, match_id=m.match_id, score="1-0"
        )
        print(f"OK: #{m.match_no} {m.home_team_name} beat {m.away_team_name}")

    final = await schedule.get_schedule(guild_id=guild_id, competition_id=cup.competition_id)
    assert all(m.status is MatchStatus.COMPLETED for m in final), [(m.match_no, m.status) for m in final]

    restored = await resets.reset(guild_id=guild_id, competition_id=cup.competition_id)
    after = await comp_svc.get_competition(guild_id=guild_id, competition_id=cup.competition_id)
    assert after.status is CompetitionStatus.DRAFT
    print(f"OK: reset restored {restored} matches")

    await db.close()
    print(f"OK: competition flow smoke passed (run_id={run_id}); clean up with 99_cleanup_smoke.py")

if __name__ == "__main__":
    asyncio.run(main())
