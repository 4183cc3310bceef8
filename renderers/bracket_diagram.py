# renderers/bracket_diagram.py
from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from domain.bracket import THIRD_PLACE_LABEL
from domain.enums import MatchStatus, Side
from domain.models import Match
from renderers.schedule_view import slot_text


@dataclass(frozen=True)
class DiagramStyle:
    # Layout (logical units; final pixels = logical * scale)
    margin: int = 32
    box_w: int = 300
    box_h: int = 84
    h_gap: int = 70
    v_gap: int = 24
    header_h: int = 36

    scale: float = 1.5

    bg: tuple[int, int, int] = (18, 20, 26)
    text: tuple[int, int, int] = (236, 236, 240)
    subtle: tuple[int, int, int] = (150, 155, 168)
    placeholder: tuple[int, int, int] = (120, 125, 138)

    box_fill: tuple[int, int, int] = (34, 38, 48)
    box_border: tuple[int, int, int] = (88, 96, 116)
    line: tuple[int, int, int] = (88, 96, 116)
    winner: tuple[int, int, int] = (210, 175, 90)

    font_size: int = 18
    font_size_small: int = 14


def knockout_matches(matches: Sequence[Match]) -> list[Match]:
    return sorted((m for m in matches if m.group_id is None), key=lambda m: m.match_no)


class BracketDiagramRenderer:
    """
    PNG of the knockout rounds: one column per round, boxes joined to the
    matches that feed them. The third-place match sits under the final.
    """

    def __init__(self, style: DiagramStyle | None = None, font_path: Optional[str] = None) -> None:
        self.style = style or DiagramStyle()
        self.font_path = font_path

    def _font(self, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        candidates = [self.font_path] if self.font_path else []
        candidates += ["DejaVuSans.ttf", "Arial.ttf", "arial.ttf"]
        for name in candidates:
            try:
                return ImageFont.truetype(name, size)
            except OSError:
                continue
        return ImageFont.load_default()

    # -----------------------------
    # Layout (no drawing)
    # -----------------------------
    def layout(self, matches: Sequence[Match]) -> dict[int, tuple[int, int]]:
        """match_no -> (x, y) in logical units."""
        st = self.style
        ko = knockout_matches(matches)
        if not ko:
            return {}

        first_round = min(m.round_no for m in ko)
        last_round = max(m.round_no for m in ko)
        col_w = st.box_w + st.h_gap
        row_h = st.box_h + st.v_gap
        top = st.margin + st.header_h

        xy: dict[int, tuple[int, int]] = {}
        third: list[Match] = []
        for r in range(first_round, last_round + 1):
            x = st.margin + (r - first_round) * col_w
            in_round = [m for m in ko if m.round_no == r]
            for i, m in enumerate(in_round):
                if m.round_label == THIRD_PLACE_LABEL:
                    third.append(m)
                    continue
                fed = [
                    xy[s.source.match_no][1]
                    for s in (m.home, m.away)
                    if s.source is not None and s.source.match_no in xy
                ]
                if len(fed) == 2:
                    y = sum(fed) // 2
                elif fed:
                    # one side came through a bye
                    y = fed[0] + row_h // 2 if m.home.source is None else fed[0] - row_h // 2
                    y = max(top, y)
                else:
                    y = top + i * row_h * (2 ** (r - first_round))
                xy[m.match_no] = (x, y)

        if third:
            bottom = max(y for _, y in xy.values())
            for k, m in enumerate(third, start=1):
                x = st.margin + (m.round_no - first_round) * col_w
                xy[m.match_no] = (x, bottom + k * (row_h + st.header_h))
        return xy

    # -----------------------------
    # Drawing
    # -----------------------------
    def render_png(self, matches: Sequence[Match], *, title: str | None = None) -> bytes:
        st = self.style
        s = float(st.scale or 1.0)

        def S(v: float) -> int:
            return int(v * s)

        xy = self.layout(matches)
        by_no = {m.match_no: m for m in knockout_matches(matches)}

        if xy:
            width_l = max(x for x, _ in xy.values()) + st.box_w + st.margin
            height_l = max(y for _, y in xy.values()) + st.box_h + st.margin
        else:
            width_l, height_l = st.box_w + 2 * st.margin, st.header_h + 2 * st.margin

        img = Image.new("RGB", (max(2, S(width_l)), max(2, S(height_l))), st.bg)
        draw = ImageDraw.Draw(img)
        f_main = self._font(S(st.font_size))
        f_small = self._font(S(st.font_size_small))

        if title:
            draw.text((S(st.margin), S(st.margin // 2)), title, font=f_main, fill=st.text)
        if not xy:
            draw.text((S(st.margin), S(st.margin + st.header_h // 2)), "No knockout matches", font=f_small, fill=st.subtle)

        # connectors first so boxes sit on top
        for no, (x, y) in xy.items():
            m = by_no[no]
            for slot in (m.home, m.away):
                src = slot.source
                if src is None or src.match_no not in xy or m.round_label == THIRD_PLACE_LABEL:
                    continue
                sx, sy = xy[src.match_no]
                x0, y0 = sx + st.box_w, sy + st.box_h // 2
                x1, y1 = x, y + st.box_h // 2
                mid = (x0 + x1) // 2
                draw.line(
                    [(S(x0), S(y0)), (S(mid), S(y0)), (S(mid), S(y1)), (S(x1), S(y1))],
                    fill=st.line,
                    width=max(1, S(2)),
                )

        for no, (x, y) in xy.items():
            self._draw_box(draw, by_no[no], S(x), S(y), S, f_main, f_small)

        buf = BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    def _draw_box(self, draw: ImageDraw.ImageDraw, m: Match, x: int, y: int, S, f_main, f_small) -> None:
        st = self.style
        w, h = S(st.box_w), S(st.box_h)

        header = f"#{m.match_no} {m.round_label or f'Round {m.round_no}'}"
        if m.status is MatchStatus.CANCELLED:
            header += " (cancelled)"
        draw.text((x, y - S(st.font_size_small) - S(6)), header, font=f_small, fill=st.subtle)

        draw.rounded_rectangle([x, y, x + w, y + h], radius=S(8), fill=st.box_fill, outline=st.box_border, width=max(1, S(2)))
        draw.line([(x, y + h // 2), (x + w, y + h // 2)], fill=st.box_border, width=1)

        for i, side in enumerate((Side.HOME, Side.AWAY)):
            slot = m.slot(side)
            is_winner = slot.team_id is not None and slot.team_id == m.winner_team_id
            colour = st.winner if is_winner else (st.text if slot.is_resolved else st.placeholder)
            ty = y + i * (h // 2) + S(8)
            draw.text((x + S(12), ty), self._ellipsize(draw, slot_text(m, side), f_main, w - S(70)), font=f_main, fill=colour)

            if m.score is not None:
                goals = m.score.home if side is Side.HOME else m.score.away
                if m.overtime is not None:
                    goals += m.overtime.home if side is Side.HOME else m.overtime.away
                text = str(goals)
                if m.penalties is not None:
                    text += f" ({m.penalties.home if side is Side.HOME else m.penalties.away})"
                tw = int(draw.textlength(text, font=f_main))
                draw.text((x + w - S(12) - tw, ty), text, font=f_main, fill=colour)

    @staticmethod
    def _ellipsize(draw: ImageDraw.ImageDraw, text: str, font, max_w: int) -> str:
        t0 = (text or "").strip()
        if draw.textlength(t0, font=font) <= max_w:
            return t0
        t = t0
        while t and draw.textlength(t + "...", font=font) > max_w:
            t = t[:-1]
        return (t + "...") if t else "..."
