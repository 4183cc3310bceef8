# cogs/announcer.py
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import discord
from discord.ext import commands

from renderers.embeds import Embeds
from services.notifications import COMPETITION_RESET, RESULT_RECORDED, SCHEDULE_GENERATED

log = logging.getLogger(__name__)


def announcement_text(event: str, payload: Mapping[str, Any]) -> Optional[tuple[str, str]]:
    """(title, description) for a notification, or None when there is nothing worth posting."""
    name = payload.get("name") or f"Competition {payload.get('competition_id')}"

    if event == SCHEDULE_GENERATED:
        return "Schedule published", f"**{name}**: {payload.get('match_count', 0)} match(es) scheduled."

    if event == COMPETITION_RESET:
        return "Competition reset", f"**{name}** is back to draft ({payload.get('match_count', 0)} match(es) cleared)."

    if event == RESULT_RECORDED:
        home = payload.get("home") or "TBD"
        away = payload.get("away") or "TBD"
        status = payload.get("status")
        score = payload.get("score")
        line = f"#{payload.get('match_no')} {home} vs {away}"
        if status == "cancelled":
            return f"{name}: match cancelled", line
        if score:
            line = f"#{payload.get('match_no')} {home} **{score}** {away}"
        if status == "live":
            return f"{name}: live", line
        winner = payload.get("winner")
        if winner:
            line += f"\nWinner: **{winner}**"
        elif score:
            line += "\nDraw"
        return f"{name}: result", line

    return None


class ChannelAnnouncer:
    """
    Notifier that posts embeds to the configured announce channel. Events from
    other guilds than the channel's own are ignored.
    """

    def __init__(self, bot: commands.Bot, *, channel_id: Optional[int], embeds: Embeds) -> None:
        self.bot = bot
        self.channel_id = channel_id
        self.embeds = embeds

    async def _channel(self) -> Optional[discord.abc.Messageable]:
        if not self.channel_id:
            return None
        ch = self.bot.get_channel(self.channel_id)
        if ch is None:
            ch = await self.bot.fetch_channel(self.channel_id)
        return ch if isinstance(ch, discord.abc.Messageable) else None

    async def __call__(self, event: str, payload: Mapping[str, Any]) -> None:
        text = announcement_text(event, payload)
        if text is None:
            log.debug("No announcement for %s", event)
            return
        ch = await self._channel()
        if ch is None:
            return
        guild = getattr(ch, "guild", None)
        if guild is not None and payload.get("guild_id") not in (None, guild.id):
            return
        title, description = text
        await ch.send(embed=self.embeds.info(title=title, description=description))
