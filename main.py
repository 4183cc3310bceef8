# main.py
from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import asdict
from typing import Optional

import discord
from discord.ext import commands

from config import load_config
from db.pool import DbPool, MySqlPoolConfig

from repositories.competition_repo import CompetitionRepo
from repositories.match_repo import MatchRepo

from services.competition_service import CompetitionService
from services.reset_service import ResetService
from services.result_service import ResultService
from services.schedule_service import ScheduleService

from renderers.embeds import Embeds
from renderers.schedule_view import ScheduleView
from renderers.standings_view import StandingsView
from renderers.bracket_diagram import BracketDiagramRenderer

from cogs.announcer import ChannelAnnouncer
from cogs.competition_cog import setup as setup_competition_cog


class CompetitionBot(commands.Bot):
    def __init__(self) -> None:
        self.cfg = load_config()

        intents = discord.Intents.default()
        super().__init__(
            command_prefix=self.cfg.command_prefix,
            intents=intents,
            allowed_mentions=discord.AllowedMentions.none(),
        )

        self.db: Optional[DbPool] = None

    async def setup_hook(self) -> None:
        logging.info("Starting setup_hook...")

        # --- DB ---
        self.db = DbPool()
        await self.db.start(MySqlPoolConfig(**asdict(self.cfg.mysql)))
        await self.db.apply_schema()

        # --- Repos ---
        competition_repo = CompetitionRepo(self.db)
        match_repo = MatchRepo(self.db)

        # --- Renderers ---
        embeds = Embeds()

        # --- Services ---
        sched = self.cfg.scheduling
        if not sched.match_setup_enabled:
            logging.warning("MATCH_SETUP_ENABLED is off; schedule and result commands are disabled.")
        announcer = ChannelAnnouncer(self, channel_id=self.cfg.default_announce_channel_id, embeds=embeds)

        competition_service = CompetitionService(competition_repo, match_repo)
        schedule_service = ScheduleService(
            competition_repo,
            match_repo,
            enabled=sched.match_setup_enabled,
            notifier=announcer,
            default_venues=sched.default_venues,
            default_matches_per_day=sched.default_matches_per_day,
        )
        result_service = ResultService(
            competition_repo, match_repo, enabled=sched.match_setup_enabled, notifier=announcer
        )
        reset_service = ResetService(
            competition_repo, match_repo, enabled=sched.match_setup_enabled, notifier=announcer
        )

        # --- Cogs ---
        await setup_competition_cog(
            self,
            competition_service=competition_service,
            schedule_service=schedule_service,
            result_service=result_service,
            reset_service=reset_service,
            embeds=embeds,
            schedule_view=ScheduleView(),
            standings_view=StandingsView(),
            bracket_diagram=BracketDiagramRenderer(),
        )

        # --- Slash sync ---
        if self.cfg.dev_guild_id:
            guild = discord.Object(id=self.cfg.dev_guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logging.info("Slash commands synced to DEV guild %s", self.cfg.dev_guild_id)
        else:
            await self.tree.sync()
            logging.info("Slash commands synced globally")

        logging.info("setup_hook complete.")

    async def close(self) -> None:
        try:
            await super().close()
        finally:
            if self.db:
                await self.db.close()
                self.db = None


async def _run_bot() -> None:
    cfg = load_config()

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bot = CompetitionBot()

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _request_stop(*_args) -> None:
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            pass

    async with bot:
        runner = asyncio.create_task(bot.start(cfg.token))
        stopper = asyncio.create_task(stop_event.wait())
        done, _ = await asyncio.wait({runner, stopper}, return_when=asyncio.FIRST_COMPLETED)
        stopper.cancel()
        if runner in done:
            runner.result()
        else:
            await bot.close()
            await asyncio.gather(runner, return_exceptions=True)


def main() -> None:
    asyncio.run(_run_bot())


if __name__ == "__main__":
    main()
