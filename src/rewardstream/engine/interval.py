"""Reward program interval: start, end, budget and the derived linear rate.

Key Concepts:
- rate = total_budget // (end - start), fixed when the interval is created
- The remainder of that division is never distributed (dust)
- An interval is replaced wholesale on reconfiguration, never edited
"""

from dataclasses import dataclass
from enum import Enum

from .bounds import narrow
from .errors import InvalidInterval


class ProgramStatus(str, Enum):
    """Lifecycle state of a reward program at a given instant."""
    UNCONFIGURED = "unconfigured"
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass(frozen=True)
class IntervalConfig:
    """Immutable description of one reward program."""
    start: int  # First instant of accrual
    end: int  # Accrual stops here (exclusive upper bound of elapsed time)
    total_budget: int  # Reward quantity spread across [start, end)
    rate: int  # Reward per time unit, floor(total_budget / duration)

    @classmethod
    def create(
        cls,
        start: int,
        end: int,
        total_budget: int,
        time_bits: int = 32
    ) -> 'IntervalConfig':
        """
        Validate a program definition and derive its rate.

        Args:
            start: Program start instant
            end: Program end instant
            total_budget: Total reward to distribute
            time_bits: Storage width for instants

        Returns:
            New IntervalConfig

        Raises:
            InvalidInterval: If start > end or start == end
            ArithmeticOverflow: If an instant does not fit in time_bits
            ValueError: If total_budget is negative
        """
        if start > end:
            raise InvalidInterval("start is after end", start=start, end=end)
        if start == end:
            raise InvalidInterval("degenerate interval", start=start, end=end)
        if total_budget < 0:
            raise ValueError(f"total_budget must be non-negative, got {total_budget}")

        narrow(start, time_bits, "start")
        narrow(end, time_bits, "end")

        rate = total_budget // (end - start)
        return cls(start=start, end=end, total_budget=total_budget, rate=rate)

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def distributable(self) -> int:
        """Largest amount the rate can ever pay out over the interval."""
        return self.rate * self.duration

    @property
    def dust(self) -> int:
        """Budget lost to the floor division in the rate."""
        return self.total_budget - self.distributable

    def status(self, now: int) -> ProgramStatus:
        if now < self.start:
            return ProgramStatus.PENDING
        if now > self.end:
            return ProgramStatus.ENDED
        return ProgramStatus.ACTIVE

    def allows_reconfiguration(self, now: int) -> bool:
        """True strictly before start or strictly after end."""
        return now < self.start or now > self.end
