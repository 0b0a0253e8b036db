"""Global reward-per-weight accumulator.

Formula (per refresh):
    accumulated += precision * elapsed * rate // total_weight

The accumulator only advances when read through `refresh`. Rounding is
always down, so reward can stay undistributed but is never paid twice.
"""

from typing import Optional, Tuple

from .bounds import narrow
from .events import AccumulatorUpdated
from .interval import IntervalConfig


class RewardAccumulator:
    """Running total of reward earned per unit of weight, fixed-point scaled."""

    def __init__(
        self,
        precision_factor: int = 10**18,
        accumulator_bits: int = 160,
        accumulated: int = 0,
        last_updated: int = 0
    ):
        """
        Initialize accumulator.

        Args:
            precision_factor: Fixed-point scale applied to accumulated
            accumulator_bits: Storage width accumulated must fit in
            accumulated: Starting accumulated value
            last_updated: Instant accumulated is current through
        """
        self.precision_factor = precision_factor
        self.accumulator_bits = accumulator_bits
        self.accumulated = accumulated
        self.last_updated = last_updated

    def peek(
        self,
        interval: Optional[IntervalConfig],
        total_weight: int,
        now: int
    ) -> Tuple[int, int]:
        """
        Compute (accumulated, last_updated) as of `now` without storing it.

        Args:
            interval: Active program, or None if unconfigured
            total_weight: Sum of all participant weights
            now: Current instant

        Returns:
            Tuple of (accumulated, last_updated)

        Raises:
            ArithmeticOverflow: If accumulated outgrows accumulator_bits
        """
        if interval is None or now < interval.start:
            return self.accumulated, self.last_updated

        update_time = min(now, interval.end)
        if update_time == self.last_updated:
            return self.accumulated, self.last_updated

        if total_weight == 0:
            # Reward for an empty interval is forfeited, not banked.
            return self.accumulated, update_time

        elapsed = update_time - self.last_updated
        increment = self.precision_factor * elapsed * interval.rate // total_weight
        accumulated = narrow(
            self.accumulated + increment, self.accumulator_bits, "accumulated"
        )
        return accumulated, update_time

    def refresh(
        self,
        interval: Optional[IntervalConfig],
        total_weight: int,
        now: int
    ) -> Optional[AccumulatorUpdated]:
        """
        Bring the accumulator current through min(now, end).

        Returns:
            AccumulatorUpdated if accumulated changed, else None
        """
        accumulated, last_updated = self.peek(interval, total_weight, now)
        changed = accumulated != self.accumulated
        self.accumulated = accumulated
        self.last_updated = last_updated
        if changed:
            return AccumulatorUpdated(accumulated=accumulated, last_updated=last_updated)
        return None

    def rearm(self, start: int) -> None:
        """Restart the clock at a new program start, keeping accumulated."""
        self.last_updated = start

    def snapshot(self) -> Tuple[int, int]:
        return self.accumulated, self.last_updated

    def restore(self, snapshot: Tuple[int, int]) -> None:
        self.accumulated, self.last_updated = snapshot
