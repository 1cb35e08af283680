"""
Round lifecycle and hint timing

A round moves PENDING -> ACTIVE -> FINISHED. Once ACTIVE, its start time
t0 and length L (seconds) define the schedule:

  t0 + L     hint 1 becomes visible, correct answers are worth half
  t0 + 1.5L  hint 2 becomes visible, correct answers are worth a quarter
  t0 + 2L    countdown reaches zero (the round still waits for the moderator)

Nothing about disclosure is stored; every reader derives it from "now".
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Optional


class RoundState(IntEnum):
    PENDING = 0
    ACTIVE = 1
    FINISHED = 2


HINT_DECAY = 0.5


@dataclass(frozen=True)
class HintSchedule:
    """Derived instants of one started round"""
    started: datetime
    length: int

    @property
    def hint1_at(self) -> datetime:
        return self.started + timedelta(seconds=self.length)

    @property
    def hint2_at(self) -> datetime:
        return self.started + timedelta(seconds=1.5 * self.length)

    @property
    def ends_at(self) -> datetime:
        return self.started + timedelta(seconds=2 * self.length)

    def hint1_visible(self, now: datetime) -> bool:
        return now > self.hint1_at

    def hint2_visible(self, now: datetime) -> bool:
        return now > self.hint2_at

    def multiplier(self, now: datetime) -> float:
        """
        Point multiplier of a correct answer given at `now`

        Halves once past hint 1 and again past hint 2, so a late answer
        is worth a quarter of the round value.
        """
        factor = 1.0
        if self.hint1_visible(now):
            factor *= HINT_DECAY
        if self.hint2_visible(now):
            factor *= HINT_DECAY
        return factor

    def remaining(self, now: datetime) -> float:
        """Seconds until the countdown reaches zero (never negative)"""
        return max(0.0, (self.ends_at - now).total_seconds())

    def next_transition(self, now: datetime) -> Optional[datetime]:
        """The next scheduled instant after `now`, if any"""
        for instant in (self.hint1_at, self.hint2_at, self.ends_at):
            if now < instant:
                return instant
        return None


def schedule_for(started: Optional[datetime], length: int) -> Optional[HintSchedule]:
    """Schedule of a round, or None while it has not been started"""
    if started is None:
        return None
    return HintSchedule(started=started, length=length)


def visible_hints(schedule: Optional[HintSchedule], now: datetime,
                  hint1: Optional[str], hint2: Optional[str]) -> tuple:
    """Filter a question's hints by the schedule; hidden hints become None"""
    if schedule is None:
        return None, None
    return (
        hint1 if schedule.hint1_visible(now) else None,
        hint2 if schedule.hint2_visible(now) else None,
    )
