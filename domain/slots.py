# domain/slots.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Optional, Sequence

from domain.errors import ValidationError

DEFAULT_VENUE = "Court 1"
DEFAULT_MATCHES_PER_DAY = 10
DEFAULT_DAY_START_MINUTE = 9 * 60
MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class SlotPolicy:
    """
    Everything the generators need to place matches on the calendar.

    Times are in minutes; `day_start_minute` / `day_end_minute` are minutes
    after midnight.
    """

    starts_at: datetime
    match_duration: int = 60
    break_duration: int = 15
    matches_per_day: int = DEFAULT_MATCHES_PER_DAY
    day_start_minute: int = DEFAULT_DAY_START_MINUTE
    day_end_minute: Optional[int] = None
    venues: tuple[str, ...] = field(default=(DEFAULT_VENUE,))

    def __post_init__(self) -> None:
        if self.match_duration < 1:
            raise ValidationError("match_duration must be >= 1 minute")
        if self.break_duration < 0:
            raise ValidationError("break_duration must be >= 0")
        if self.matches_per_day < 1:
            raise ValidationError("matches_per_day must be >= 1")
        if not 0 <= self.day_start_minute < MINUTES_PER_DAY:
            raise ValidationError("day_start_minute must be within the day")
        if self.day_end_minute is not None:
            if not self.day_start_minute < self.day_end_minute <= MINUTES_PER_DAY:
                raise ValidationError("day_end_minute must be after day_start_minute")
            if self.day_end_minute - self.day_start_minute < self.match_duration:
                raise ValidationError("A single match does not fit between day start and day end")

    @classmethod
    def build(
        cls,
        *,
        starts_at: datetime,
        match_duration: int = 60,
        break_duration: int = 15,
        matches_per_day: Optional[int] = None,
        day_start_minute: int = DEFAULT_DAY_START_MINUTE,
        day_end_minute: Optional[int] = None,
        venues: Sequence[str] | None = None,
    ) -> "SlotPolicy":
        pool = tuple(v.strip() for v in (venues or ()) if v and v.strip())
        return cls(
            starts_at=starts_at,
            match_duration=int(match_duration),
            break_duration=int(break_duration),
            matches_per_day=int(matches_per_day) if matches_per_day is not None else DEFAULT_MATCHES_PER_DAY,
            day_start_minute=int(day_start_minute),
            day_end_minute=int(day_end_minute) if day_end_minute is not None else None,
            venues=pool or (DEFAULT_VENUE,),
        )


class SlotAllocator:
    """
    Walks a day/time/venue cursor forward one match at a time.

    - first match of every day starts at day_start_minute
    - each match advances the clock by match_duration + break_duration
    - a new day starts when the per-day cap is hit or the next match would
      end after day_end_minute; the venue rotation restarts with the day
    """

    def __init__(self, policy: SlotPolicy) -> None:
        self._policy = policy
        self._day = policy.starts_at.date()
        self._minute = policy.day_start_minute
        self._today = 0
        self._venue_index = 0

    def _next_day(self) -> None:
        self._day += timedelta(days=1)
        self._minute = self._policy.day_start_minute
        self._today = 0
        self._venue_index = 0

    def _fits_today(self) -> bool:
        p = self._policy
        if self._today >= p.matches_per_day:
            return False
        end = p.day_end_minute if p.day_end_minute is not None else MINUTES_PER_DAY
        return self._minute + p.match_duration <= end

    def next_slot(self) -> tuple[datetime, str]:
        if not self._fits_today():
            self._next_day()

        p = self._policy
        when = datetime.combine(self._day, time()) + timedelta(minutes=self._minute)
        if p.starts_at.tzinfo is not None:
            when = when.replace(tzinfo=p.starts_at.tzinfo)
        venue = p.venues[self._venue_index % len(p.venues)]

        self._minute += p.match_duration + p.break_duration
        self._today += 1
        self._venue_index += 1
        return when, venue
