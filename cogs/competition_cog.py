# cogs/competition_cog.py
from __future__ import annotations

import io
import logging
import re
from datetime import datetime
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from domain.errors import NotFoundError, SchedulingError, ValidationError
from domain.models import Group, Match, ScorePair, Team
from renderers.bracket_diagram import BracketDiagramRenderer, knockout_matches
from renderers.embeds import Embeds
from renderers.schedule_view import ScheduleView
from renderers.standings_view import StandingsOptions, StandingsView
from services.competition_service import CompetitionService, TeamInput
from services.reset_service import ResetService
from services.result_service import ResultService
from services.schedule_service import ScheduleService

log = logging.getLogger(__name__)

_SEED_RE = re.compile(r"^(?P<name>.*?)\s*#\s*(?P<seed>\d+)\s*$")
_STARTS_AT_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d")


# -----------------------------
# Input parsing (pure)
# -----------------------------

def parse_score(text: Optional[str], what: str = "score") -> Optional[ScorePair]:
    """`3-1` / `3:1`; blank means no score."""
    if text is None or not text.strip():
        return None
    try:
        return ScorePair.parse(text)
    except ValidationError:
        raise ValidationError(f"Malformed {what} {text!r} (expected e.g. 3-1)") from None


def parse_venues(text: Optional[str]) -> Optional[list[str]]:
    if text is None:
        return None
    venues = [v.strip() for v in text.split(",") if v.strip()]
    return venues or None


def parse_team_list(text: str, *, group_id: Optional[int] = None) -> list[TeamInput]:
    """
    Teams separated by `;` or newlines. A trailing `#n` sets the seed:

        Lions #1; Tigers #2; Bears
    """
    out: list[TeamInput] = []
    for raw in re.split(r"[;\n]", text or ""):
        entry = raw.strip()
        if not entry:
            continue
        seed: Optional[int] = None
        m = _SEED_RE.match(entry)
        if m:
            entry, seed = m.group("name").strip(), int(m.group("seed"))
        if not entry:
            raise ValidationError(f"Missing team name in {raw.strip()!r}")
        out.append(TeamInput(display_name=entry[:128], seed=seed, group_id=group_id))
    return out


def parse_starts_at(text: str) -> datetime:
    value = (text or "").strip()
    for fmt in _STARTS_AT_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValidationError(f"Bad start time {text!r} (expected YYYY-MM-DD HH:MM, UTC)")


def find_match(matches: list[Match], match_no: int) -> Match:
    for m in matches:
        if m.match_no == match_no:
            return m
    raise NotFoundError(f"Match #{match_no} not found.")


def find_group(groups: list[Group], name: str) -> Group:
    wanted = (name or "").strip().casefold()
    for g in groups:
        if g.name.casefold() == wanted:
            return g
    raise NotFoundError(f"Group {name} not found.")


def find_team(teams: list[Team], name: str) -> Team:
    wanted = (name or "").strip().casefold()
    for t in teams:
        if t.display_name.casefold() == wanted:
            return t
    raise NotFoundError(f"Team {name} not found.")


def given_settings(**options: object) -> dict[str, object]:
    """Options left blank in the command are not changed."""
    changes = {k: v for k, v in options.items() if v is not None}
    if not changes:
        raise ValidationError("Nothing to change.")
    return changes


class CompetitionCog(commands.Cog):
    competition = app_commands.Group(name="competition", description="Leagues and tournaments: schedules, results, tables.")

    def __init__(
        self,
        bot: commands.Bot,
        *,
        competition_service: CompetitionService,
        schedule_service: ScheduleService,
        result_service: ResultService,
        reset_service: ResetService,
        embeds: Embeds,
        schedule_view: ScheduleView,
        standings_view: StandingsView,
        bracket_diagram: BracketDiagramRenderer,
    ) -> None:
        self.bot = bot
        self.competitions = competition_service
        self.schedules = schedule_service
        self.results = result_service
        self.resets = reset_service
        self.embeds = embeds
        self.schedule_view = schedule_view
        self.standings_view = standings_view
        self.bracket_diagram = bracket_diagram

    # -----------------------------
    # Helpers
    # -----------------------------

    async def _can_manage(self, interaction: discord.Interaction) -> bool:
        if not interaction.guild:
            return False
        if isinstance(interaction.user, discord.Member):
            return interaction.user.guild_permissions.manage_guild or interaction.user.guild_permissions.manage_channels
        return False

    async def _deny(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message("Missing permission to manage competitions here.", ephemeral=True)

    async def _fail(self, interaction: discord.Interaction, ex: SchedulingError) -> None:
        log.info("Command /competition %s rejected: %s", interaction.command.name if interaction.command else "?", ex)
        await interaction.followup.send(embed=self.embeds.for_error(ex), ephemeral=True)

    # -----------------------------
    # Setup commands
    # -----------------------------

    @competition.command(name="create", description="Create a league or tournament (starts as a draft).")
    @app_commands.describe(
        name="Competition name",
        format="League (round robin) or tournament (knockout)",
        starts_at="First kick-off, UTC: YYYY-MM-DD HH:MM",
        match_minutes="Match length in minutes",
        break_minutes="Break between matches in minutes",
        matches_per_day="Cap on matches per day (blank for the default)",
        groups="Tournament with a group stage",
        third_place="Tournament with a third-place match",
        overtime="Matches can go to overtime",
        penalties="Matches can go to penalties",
    )
    @app_commands.choices(
        format=[
            app_commands.Choice(name="League", value="league"),
            app_commands.Choice(name="Tournament", value="tournament"),
        ]
    )
    async def create(
        self,
        interaction: discord.Interaction,
        name: str,
        format: app_commands.Choice[str],
        starts_at: str,
        match_minutes: app_commands.Range[int, 1, 1440] = 60,
        break_minutes: app_commands.Range[int, 0, 1440] = 15,
        matches_per_day: Optional[app_commands.Range[int, 1, 200]] = None,
        groups: bool = False,
        third_place: bool = False,
        overtime: bool = False,
        penalties: bool = False,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            comp = await self.competitions.create_competition(
                guild_id=interaction.guild.id,
                name=name.strip()[:128],
                format=format.value,
                starts_at=parse_starts_at(starts_at),
                match_duration_min=int(match_minutes),
                break_duration_min=int(break_minutes),
                matches_per_day=matches_per_day,
                has_groups=groups,
                third_place_match=third_place,
                has_overtime=overtime,
                has_penalties=penalties,
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(
            title="Competition created",
            description=(
                f"**ID:** `{comp.competition_id}`\n**Name:** {comp.name}\n**Format:** {comp.format.value}\n"
                f"**Starts:** {comp.starts_at:%Y-%m-%d %H:%M} UTC\n"
                f"Next: `/competition add_teams {comp.competition_id}`"
            ),
        )
        await interaction.followup.send(embed=e)

    @competition.command(name="add_group", description="Add a group to a tournament with a group stage.")
    async def add_group(self, interaction: discord.Interaction, competition_id: int, name: str) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            group = await self.competitions.create_group(
                guild_id=interaction.guild.id, competition_id=competition_id, name=name
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(title="Group added", description=f"Group **{group.name}** (id `{group.group_id}`)")
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="add_teams", description="Register teams: `Lions #1; Tigers #2; Bears`.")
    @app_commands.describe(teams="Team names separated by `;`, optional `#seed` after a name", group="Group name")
    async def add_teams(
        self,
        interaction: discord.Interaction,
        competition_id: int,
        teams: str,
        group: Optional[str] = None,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            group_id: Optional[int] = None
            if group:
                groups = await self.competitions.list_groups(guild_id=interaction.guild.id, competition_id=competition_id)
                group_id = find_group(groups, group).group_id
            registered = await self.competitions.add_teams(
                guild_id=interaction.guild.id,
                competition_id=competition_id,
                teams=parse_team_list(teams, group_id=group_id),
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        names = ", ".join(t.display_name for t in registered)
        e = self.embeds.success(title="Teams registered", description=f"**{len(registered)}** team(s): {names}"[:4000])
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="settings", description="Change settings; blank options stay as they are.")
    @app_commands.describe(
        name="New competition name",
        starts_at="First kick-off, UTC: YYYY-MM-DD HH:MM",
        match_minutes="Match length in minutes",
        break_minutes="Break between matches in minutes",
        matches_per_day="Cap on matches per day",
        points_win="Points for a win",
        points_draw="Points for a draw",
        points_loss="Points for a loss",
        groups="Tournament with a group stage",
        third_place="Tournament with a third-place match",
        overtime="Matches can go to overtime",
        penalties="Matches can go to penalties",
    )
    async def settings(
        self,
        interaction: discord.Interaction,
        competition_id: int,
        name: Optional[str] = None,
        starts_at: Optional[str] = None,
        match_minutes: Optional[app_commands.Range[int, 1, 1440]] = None,
        break_minutes: Optional[app_commands.Range[int, 0, 1440]] = None,
        matches_per_day: Optional[app_commands.Range[int, 1, 200]] = None,
        points_win: Optional[app_commands.Range[int, 0, 100]] = None,
        points_draw: Optional[app_commands.Range[int, 0, 100]] = None,
        points_loss: Optional[app_commands.Range[int, 0, 100]] = None,
        groups: Optional[bool] = None,
        third_place: Optional[bool] = None,
        overtime: Optional[bool] = None,
        penalties: Optional[bool] = None,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            changes = given_settings(
                name=name.strip()[:128] if name is not None else None,
                starts_at=parse_starts_at(starts_at) if starts_at is not None else None,
                match_duration_min=match_minutes,
                break_duration_min=break_minutes,
                matches_per_day=matches_per_day,
                points_win=points_win,
                points_draw=points_draw,
                points_loss=points_loss,
                has_groups=groups,
                third_place_match=third_place,
                has_overtime=overtime,
                has_penalties=penalties,
            )
            comp = await self.competitions.update_settings(
                guild_id=interaction.guild.id, competition_id=competition_id, **changes
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(
            title="Settings updated",
            description=f"**{comp.name}**: {', '.join(sorted(changes))}\nSee `/competition info {competition_id}`.",
        )
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="edit_team", description="Rename, reseed or regroup a team (draft only).")
    @app_commands.describe(
        team="Current team name",
        new_name="New team name",
        seed="New seed (0 clears it)",
        group="New group name (`none` clears it)",
    )
    async def edit_team(
        self,
        interaction: discord.Interaction,
        competition_id: int,
        team: str,
        new_name: Optional[str] = None,
        seed: Optional[app_commands.Range[int, 0, 1000]] = None,
        group: Optional[str] = None,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        gid = interaction.guild.id
        try:
            changes: dict[str, object] = {}
            if new_name is not None:
                changes["display_name"] = new_name.strip()[:128]
            if seed is not None:
                changes["seed"] = seed or None
            if group is not None:
                if group.strip().casefold() == "none":
                    changes["group_id"] = None
                else:
                    groups = await self.competitions.list_groups(guild_id=gid, competition_id=competition_id)
                    changes["group_id"] = find_group(groups, group).group_id
            target = find_team(await self.competitions.list_teams(guild_id=gid, competition_id=competition_id), team)
            updated = await self.competitions.update_team(
                guild_id=gid, competition_id=competition_id, team_id=target.team_id, **changes
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        seed_text = f"#{updated.seed}" if updated.seed is not None else "unseeded"
        e = self.embeds.success(title="Team updated", description=f"**{updated.display_name}** ({seed_text})")
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="remove_team", description="Withdraw a team (draft only).")
    async def remove_team(self, interaction: discord.Interaction, competition_id: int, team: str) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        gid = interaction.guild.id
        try:
            target = find_team(await self.competitions.list_teams(guild_id=gid, competition_id=competition_id), team)
            removed = await self.competitions.remove_team(
                guild_id=gid, competition_id=competition_id, team_id=target.team_id
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(
            title="Team removed",
            description=f"**{removed.display_name}** withdrawn. Regenerate the schedule before starting.",
        )
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="generate", description="Generate (or regenerate) the match schedule.")
    @app_commands.describe(venues="Venues separated by commas (blank for the defaults)")
    async def generate(self, interaction: discord.Interaction, competition_id: int, venues: Optional[str] = None) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            matches = await self.schedules.generate(
                guild_id=interaction.guild.id, competition_id=competition_id, venues=parse_venues(venues)
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        await interaction.followup.send(content=self.schedule_view.render(matches, title=f"Competition {competition_id}"))

    # -----------------------------
    # Running the competition
    # -----------------------------

    @competition.command(name="start", description="Start play: results can be recorded from now on.")
    async def start(self, interaction: discord.Interaction, competition_id: int) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            comp = await self.competitions.set_status(
                guild_id=interaction.guild.id, competition_id=competition_id, status="active"
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(
            title="Competition started",
            description=f"**{comp.name}** is live. Record results with `/competition result {competition_id}`.",
        )
        await interaction.followup.send(embed=e)

    @competition.command(name="status", description="Move the competition to active, completed or cancelled.")
    @app_commands.choices(
        status=[
            app_commands.Choice(name="Active", value="active"),
            app_commands.Choice(name="Completed", value="completed"),
            app_commands.Choice(name="Cancelled", value="cancelled"),
        ]
    )
    async def status(
        self, interaction: discord.Interaction, competition_id: int, status: app_commands.Choice[str]
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            comp = await self.competitions.set_status(
                guild_id=interaction.guild.id, competition_id=competition_id, status=status.value
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(title="Status updated", description=f"**{comp.name}** is now `{comp.status.value}`.")
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="result", description="Record a match result by match number.")
    @app_commands.describe(
        match_no="Match number as shown in the schedule",
        score="Regular-time score, e.g. 2-1",
        status="completed (default), live or cancelled",
        overtime="Overtime goals, e.g. 1-0",
        penalties="Shootout score, e.g. 4-3",
    )
    @app_commands.choices(
        status=[
            app_commands.Choice(name="Completed", value="completed"),
            app_commands.Choice(name="Live", value="live"),
            app_commands.Choice(name="Cancelled", value="cancelled"),
        ]
    )
    async def result(
        self,
        interaction: discord.Interaction,
        competition_id: int,
        match_no: int,
        score: Optional[str] = None,
        status: Optional[app_commands.Choice[str]] = None,
        overtime: Optional[str] = None,
        penalties: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            schedule = await self.schedules.get_schedule(guild_id=interaction.guild.id, competition_id=competition_id)
            target = find_match(schedule, match_no)
            updated = await self.results.record_result(
                guild_id=interaction.guild.id,
                competition_id=competition_id,
                match_id=target.match_id,
                score=parse_score(score),
                overtime=parse_score(overtime, "overtime"),
                penalties=parse_score(penalties, "penalties"),
                status=status.value if status else "completed",
                notes=notes,
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        desc = f"#{updated.match_no} {updated.home_team_name or 'TBD'} vs {updated.away_team_name or 'TBD'}"
        if updated.score is not None:
            desc += f"\n**Score:** {updated.score}"
        if updated.winner_team_name:
            desc += f"\n**Winner:** {updated.winner_team_name}"
        e = self.embeds.success(title=f"Match {updated.status.value}", description=desc)
        await interaction.followup.send(embed=e)

    @competition.command(name="reset", description="Wipe results and standings; the competition goes back to draft.")
    async def reset(self, interaction: discord.Interaction, competition_id: int) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            count = await self.resets.reset(guild_id=interaction.guild.id, competition_id=competition_id)
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(title="Competition reset", description=f"{count} match(es) restored. Status is `draft`.")
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="delete", description="Delete a competition with its teams, groups and matches.")
    @app_commands.describe(confirm="Set to true to confirm; this cannot be undone")
    async def delete(self, interaction: discord.Interaction, competition_id: int, confirm: bool = False) -> None:
        if not await self._can_manage(interaction):
            await self._deny(interaction)
            return
        if not confirm:
            await interaction.response.send_message(
                f"Nothing deleted. Run `/competition delete {competition_id} confirm:True` to delete it for good.",
                ephemeral=True,
            )
            return
        await interaction.response.defer(ephemeral=True)

        try:
            comp = await self.competitions.delete_competition(
                guild_id=interaction.guild.id, competition_id=competition_id
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.success(title="Competition deleted", description=f"**{comp.name}** (`{comp.competition_id}`) is gone.")
        await interaction.followup.send(embed=e, ephemeral=True)

    # -----------------------------
    # Views
    # -----------------------------

    @competition.command(name="list", description="List this server's competitions, newest first.")
    @app_commands.choices(
        status=[
            app_commands.Choice(name="Draft", value="draft"),
            app_commands.Choice(name="Scheduled", value="scheduled"),
            app_commands.Choice(name="Active", value="active"),
            app_commands.Choice(name="Completed", value="completed"),
            app_commands.Choice(name="Cancelled", value="cancelled"),
        ]
    )
    async def list_(self, interaction: discord.Interaction, status: Optional[app_commands.Choice[str]] = None) -> None:
        if not interaction.guild:
            await interaction.response.send_message("Use this in a server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            comps = await self.competitions.list_competitions(
                guild_id=interaction.guild.id, status=status.value if status else None
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        if not comps:
            await interaction.followup.send(
                embed=self.embeds.info(title="Competitions", description="No competitions yet."), ephemeral=True
            )
            return
        lines = [
            f"`{c.competition_id}` **{c.name}** ({c.format.value}, {c.status.value}) {c.starts_at:%Y-%m-%d}"
            for c in comps
        ]
        e = self.embeds.info(title="Competitions", description="\n".join(lines)[:4000])
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="info", description="Show competition settings.")
    async def info(self, interaction: discord.Interaction, competition_id: int) -> None:
        if not interaction.guild:
            await interaction.response.send_message("Use this in a server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            comp = await self.competitions.get_competition(guild_id=interaction.guild.id, competition_id=competition_id)
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        e = self.embeds.info(title=f"Competition {comp.competition_id}: {comp.name}")
        e.add_field(name="Status", value=comp.status.value, inline=True)
        e.add_field(name="Format", value=comp.format.value, inline=True)
        e.add_field(name="Starts", value=f"{comp.starts_at:%Y-%m-%d %H:%M} UTC", inline=True)
        e.add_field(name="Match / break", value=f"{comp.match_duration_min} / {comp.break_duration_min} min", inline=True)
        e.add_field(name="Points W/D/L", value=f"{comp.points_win}/{comp.points_draw}/{comp.points_loss}", inline=True)
        extras = [
            label
            for label, on in (
                ("groups", comp.has_groups),
                ("third place", comp.third_place_match),
                ("overtime", comp.has_overtime),
                ("penalties", comp.has_penalties),
            )
            if on
        ]
        e.add_field(name="Options", value=", ".join(extras) or "none", inline=True)
        await interaction.followup.send(embed=e, ephemeral=True)

    @competition.command(name="schedule", description="Show the match schedule.")
    async def schedule(self, interaction: discord.Interaction, competition_id: int) -> None:
        if not interaction.guild:
            await interaction.response.send_message("Use this in a server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            matches = await self.schedules.get_schedule(guild_id=interaction.guild.id, competition_id=competition_id)
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        await interaction.followup.send(
            content=self.schedule_view.render(matches, title=f"Competition {competition_id}"), ephemeral=True
        )

    @competition.command(name="standings", description="Show the table (optionally for one group).")
    async def standings(self, interaction: discord.Interaction, competition_id: int, group: Optional[str] = None) -> None:
        if not interaction.guild:
            await interaction.response.send_message("Use this in a server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            group_id: Optional[int] = None
            title = "Standings"
            if group:
                groups = await self.competitions.list_groups(guild_id=interaction.guild.id, competition_id=competition_id)
                found = find_group(groups, group)
                group_id, title = found.group_id, f"Group {found.name}"
            teams = await self.competitions.get_standings(
                guild_id=interaction.guild.id, competition_id=competition_id, group_id=group_id
            )
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        text = self.standings_view.render(teams, opts=StandingsOptions(title=title))
        await interaction.followup.send(content=text, ephemeral=True)

    @competition.command(name="bracket", description="Show the knockout bracket as an image.")
    async def bracket(self, interaction: discord.Interaction, competition_id: int) -> None:
        if not interaction.guild:
            await interaction.response.send_message("Use this in a server.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            comp = await self.competitions.get_competition(guild_id=interaction.guild.id, competition_id=competition_id)
            matches = await self.schedules.get_schedule(guild_id=interaction.guild.id, competition_id=competition_id)
        except SchedulingError as ex:
            await self._fail(interaction, ex)
            return

        if not knockout_matches(matches):
            await interaction.followup.send(
                embed=self.embeds.warning(title="No bracket", description="This competition has no knockout matches yet.")
            )
            return

        png = self.bracket_diagram.render_png(matches, title=comp.name)
        file = discord.File(io.BytesIO(png), filename=f"bracket_{competition_id}.png")
        e = self.embeds.info(title=f"{comp.name}: bracket")
        e.set_image(url=f"attachment://bracket_{competition_id}.png")
        await interaction.followup.send(embed=e, file=file)


async def setup(
    bot: commands.Bot,
    *,
    competition_service: CompetitionService,
    schedule_service: ScheduleService,
    result_service: ResultService,
    reset_service: ResetService,
    embeds: Embeds,
    schedule_view: ScheduleView,
    standings_view: StandingsView,
    bracket_diagram: BracketDiagramRenderer,
) -> None:
    await bot.add_cog(
        CompetitionCog(
            bot,
            competition_service=competition_service,
            schedule_service=schedule_service,
            result_service=result_service,
            reset_service=reset_service,
            embeds=embeds,
            schedule_view=schedule_view,
            standings_view=standings_view,
            bracket_diagram=bracket_diagram,
        )
    )
