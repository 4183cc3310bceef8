# renderers/standings_view.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from domain.models import Team


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _signed(n: int) -> str:
    return f"+{n}" if n > 0 else str(n)


@dataclass(frozen=True)
class StandingsOptions:
    max_rows: int = 20
    name_width: int = 18
    title: str = "Standings"


class StandingsView:
    """
    League table in monospace. Rows are expected already sorted
    (CompetitionService.get_standings).
    """

    def render(self, teams: Sequence[Team], *, opts: StandingsOptions | None = None) -> str:
        o = opts or StandingsOptions()
        data = list(teams)[: o.max_rows]

        idx_w = 3
        num_w = 4
        name_w = max(o.name_width, min(28, max((len(t.display_name) for t in data), default=o.name_width)))

        lines: list[str] = [f"=== {o.title} ==="]
        header = f"{_pad('#', idx_w)} {_pad('Team', name_w)} " + " ".join(
            _pad(h, num_w) for h in ("P", "W", "D", "L", "GF", "GA", "GD", "Pts")
        )
        lines.append(header)
        lines.append("-" * len(header))

        if not data:
            lines.append("(no teams)")

        for i, t in enumerate(data, start=1):
            r = t.record
            cols = (r.played, r.wins, r.draws, r.losses, r.goals_for, r.goals_against)
            line = (
                f"{_pad(str(i), idx_w)} {_pad(t.display_name, name_w)} "
                + " ".join(_pad(str(c), num_w) for c in cols)
                + f" {_pad(_signed(r.goal_difference), num_w)} {_pad(str(r.points), num_w)}"
            )
            lines.append(line.rstrip())

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"
