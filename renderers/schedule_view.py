# renderers/schedule_view.py
from __future__ import annotations

from typing import Optional, Sequence

from domain.enums import MatchStatus, Side
from domain.models import Match


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def slot_text(match: Match, side: Side) -> str:
    """Team name, the placeholder while unresolved, or TBD."""
    slot = match.slot(side)
    if slot.team_id is not None:
        name = match.home_team_name if side is Side.HOME else match.away_team_name
        return name or f"Team {slot.team_id}"
    return slot.placeholder_text or "TBD"


def _result_mark(m: Match) -> str:
    if m.status is MatchStatus.CANCELLED:
        return "cancelled"
    if m.score is None:
        return "live" if m.status is MatchStatus.LIVE else ""
    text = str(m.score)
    if m.overtime is not None:
        text += f" (OT {m.overtime})"
    if m.penalties is not None:
        text += f" (pens {m.penalties})"
    if m.status is MatchStatus.LIVE:
        text += " live"
    return text


def _section(m: Match) -> str:
    label = m.round_label or f"Round {m.round_no}"
    if m.group_name:
        return f"Group {m.group_name} · Round {m.round_no}"
    return label


class ScheduleView:
    """
    Monospace schedule for Discord: one line per match, grouped by round
    (and group), with kick-off time, venue and result.
    """

    def __init__(self, *, name_width: int = 18) -> None:
        self._name_width = int(name_width)

    def render(
        self,
        matches: Sequence[Match],
        *,
        title: str = "Schedule",
        max_lines: int = 45,
    ) -> str:
        lines: list[str] = [f"=== {title} ===", ""]
        if not matches:
            lines.append("(no matches yet)")
            return "```text\n" + "\n".join(lines) + "\n```"

        current: Optional[str] = None
        for m in matches:
            section = _section(m)
            if section != current:
                if current is not None:
                    lines.append("")
                lines.append(f"-- {section} --")
                current = section

            when = m.scheduled_at.strftime("%a %d %b %H:%M") if m.scheduled_at else "unscheduled"
            home = _pad(slot_text(m, Side.HOME), self._name_width)
            away = _pad(slot_text(m, Side.AWAY), self._name_width)
            line = f"#{m.match_no:<3} {when}  {home} vs {away}"
            if m.venue:
                line += f"  @ {m.venue}"
            mark = _result_mark(m)
            if mark:
                line += f"  [{mark}]"
            lines.append(line.rstrip())

        # keep the end; later rounds matter more once play has started
        if len(lines) > max_lines:
            lines = lines[:2] + ["...", ""] + lines[-(max_lines - 4):]

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"
