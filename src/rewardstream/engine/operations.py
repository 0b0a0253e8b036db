"""Accrual operations: the engine's public surface.

Every mutating operation follows the same order:
1. refresh the global accumulator to `now`
2. sync every participant whose state is about to change
3. apply the operation's own effect
4. call the asset ledger (last, so a failed transfer leaves nothing behind)

Operations are all-or-nothing. State touched inside an operation is
journaled and restored if anything raises, and notifications are held back
until the operation commits.
"""

import logging
from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterator, List, Optional, Tuple

from .accumulator import RewardAccumulator
from .collaborators import AccessControl, AssetLedger, Clock
from .errors import AccrualError, InsufficientWeight, ProgramInProgress, Unauthorized
from .events import (
    Claimed,
    Event,
    EventBus,
    IntervalConfigured,
    WeightDecreased,
    WeightIncreased,
    WeightTransferred,
)
from .interval import IntervalConfig, ProgramStatus
from .ledger import ParticipantEntry, ParticipantLedger

log = logging.getLogger("rewardstream.engine")


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"amount must be an int, got {amount!r}")
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")


class AccrualEngine:
    """Time-weighted reward accrual over a single reward program at a time."""

    def __init__(
        self,
        asset_ledger: Optional[AssetLedger] = None,
        clock: Optional[Clock] = None,
        access_control: Optional[AccessControl] = None,
        staked_asset: Optional[str] = "STAKE",
        reward_asset: str = "REWARD",
        precision_factor: int = 10**18,
        time_bits: int = 32,
        accumulator_bits: int = 160,
        history_size: int = 1000,
        event_bus: Optional[EventBus] = None
    ):
        """
        Initialize accrual engine.

        Args:
            asset_ledger: Custody collaborator; None disables asset movement
            clock: Source of `now` when an operation is called without one
            access_control: Guard for configure; None allows any caller
            staked_asset: Asset pulled/pushed on weight changes; None when
                the weight is itself a token balance
            reward_asset: Asset paid out by claims
            precision_factor: Fixed-point scale of the accumulator
            time_bits: Storage width of program instants
            accumulator_bits: Storage width of accumulator and checkpoints
            history_size: Number of committed events kept in `history`
            event_bus: Bus to publish committed events on
        """
        self.asset_ledger = asset_ledger
        self.clock = clock
        self.access_control = access_control
        self.staked_asset = staked_asset
        self.reward_asset = reward_asset
        self.time_bits = time_bits
        self.events = event_bus or EventBus()
        self.history: Deque[Event] = deque(maxlen=history_size)

        self._interval: Optional[IntervalConfig] = None
        self._accumulator = RewardAccumulator(precision_factor, accumulator_bits)
        self._ledger = ParticipantLedger(precision_factor, accumulator_bits)
        self._pending: List[Event] = []
        self._in_unit = False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(
        self,
        start: int,
        end: int,
        total_budget: int,
        caller: Optional[str] = None,
        now: Optional[int] = None,
        fund_from: Optional[str] = None
    ) -> IntervalConfig:
        """
        Install a new reward program.

        Allowed when nothing is configured yet, or strictly before the
        current program's start, or strictly after its end. Pending accrual
        under the old program is flushed first; accumulated is kept and the
        accumulator restarts counting at the new start.

        Args:
            start: Program start instant
            end: Program end instant
            total_budget: Reward to distribute over [start, end)
            caller: Identity checked against access control
            now: Current instant (defaults to the clock)
            fund_from: If set, pull total_budget of the reward asset from
                this holder into custody

        Returns:
            The installed IntervalConfig

        Raises:
            Unauthorized, InvalidInterval, ArithmeticOverflow,
            ProgramInProgress, AssetTransferFailed
        """
        _check_amount(total_budget)
        now = self._now(now)
        with self._atomic("configure"):
            if self.access_control is not None and not self.access_control.is_authorized(caller):
                raise Unauthorized("caller may not configure rewards", caller=caller)

            interval = IntervalConfig.create(start, end, total_budget, self.time_bits)

            current = self._interval
            if current is not None and not current.allows_reconfiguration(now):
                raise ProgramInProgress(
                    "program in progress",
                    now=now,
                    start=current.start,
                    end=current.end,
                )

            self._refresh(now)
            self._interval = interval
            self._accumulator.rearm(interval.start)
            self._emit(IntervalConfigured(start=interval.start, end=interval.end, rate=interval.rate))

            if fund_from is not None and self.asset_ledger is not None:
                self.asset_ledger.pull(self.reward_asset, fund_from, total_budget)

        log.info(
            "configured program start=%d end=%d budget=%d rate=%d",
            interval.start, interval.end, interval.total_budget, interval.rate,
        )
        return interval

    # ------------------------------------------------------------------
    # Weight changes
    # ------------------------------------------------------------------

    def increase_weight(self, participant: str, amount: int, now: Optional[int] = None) -> None:
        """Sync `participant`, add weight and pull the staked asset."""
        _check_amount(amount)
        now = self._now(now)
        with self._atomic("increase_weight"):
            self._sync(participant, self._refresh(now))
            self._ledger.add_weight(participant, amount)
            self._emit(WeightIncreased(participant=participant, amount=amount))
            if self._custodial():
                self.asset_ledger.pull(self.staked_asset, participant, amount)

    def decrease_weight(self, participant: str, amount: int, now: Optional[int] = None) -> None:
        """Sync `participant`, remove weight and return the staked asset."""
        _check_amount(amount)
        now = self._now(now)
        with self._atomic("decrease_weight"):
            self._sync(participant, self._refresh(now))
            self._ledger.remove_weight(participant, amount)
            self._emit(WeightDecreased(participant=participant, amount=amount))
            if self._custodial():
                self.asset_ledger.push(self.staked_asset, participant, amount)

    def transfer_weight(
        self,
        sender: str,
        recipient: str,
        amount: int,
        now: Optional[int] = None
    ) -> None:
        """
        Move weight between two participants.

        Both sides are settled against the same accumulator value before
        either balance changes.
        """
        _check_amount(amount)
        now = self._now(now)
        with self._atomic("transfer_weight"):
            accumulated = self._refresh(now)
            self._sync(sender, accumulated)
            self._sync(recipient, accumulated)
            if sender == recipient:
                weight = self._ledger.entry(sender).weight
                if weight < amount:
                    raise InsufficientWeight(
                        "insufficient weight",
                        participant=sender,
                        weight=weight,
                        amount=amount,
                    )
                return
            self._ledger.move_weight(sender, recipient, amount)
            self._emit(WeightTransferred(sender=sender, recipient=recipient, amount=amount))

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def claim(self, participant: str, amount: int, now: Optional[int] = None) -> None:
        """Pay out `amount` of the participant's accrued reward."""
        _check_amount(amount)
        now = self._now(now)
        with self._atomic("claim"):
            self._sync(participant, self._refresh(now))
            self._pay(participant, amount)

    def claim_all(self, participant: str, now: Optional[int] = None) -> int:
        """
        Pay out everything the participant has accrued.

        Returns:
            Amount claimed (possibly 0)
        """
        now = self._now(now)
        with self._atomic("claim_all"):
            self._sync(participant, self._refresh(now))
            amount = self._ledger.entry(participant).accrued
            self._pay(participant, amount)
        return amount

    def _pay(self, participant: str, amount: int) -> None:
        self._ledger.debit_accrued(participant, amount)
        self._emit(Claimed(participant=participant, amount=amount))
        if self.asset_ledger is not None and amount > 0:
            self.asset_ledger.push(self.reward_asset, participant, amount)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    @property
    def interval(self) -> Optional[IntervalConfig]:
        return self._interval

    @property
    def accumulator(self) -> RewardAccumulator:
        return self._accumulator

    @property
    def precision_factor(self) -> int:
        return self._accumulator.precision_factor

    def program_status(self, now: Optional[int] = None) -> ProgramStatus:
        if self._interval is None:
            return ProgramStatus.UNCONFIGURED
        return self._interval.status(self._now(now))

    def current_reward_per_weight(self, now: Optional[int] = None) -> int:
        """Accumulator value as of `now`, without storing it."""
        accumulated, _ = self._accumulator.peek(
            self._interval, self._ledger.total_weight, self._now(now)
        )
        return accumulated

    def current_participant_rewards(self, participant: str, now: Optional[int] = None) -> int:
        """Accrued reward of `participant` as of `now`, without storing it."""
        accumulated = self.current_reward_per_weight(now)
        return self._ledger.preview(participant, accumulated).accrued

    def total_weight(self) -> int:
        return self._ledger.total_weight

    def weight_of(self, participant: str) -> int:
        return self._ledger.entry(participant).weight

    def claimed_of(self, participant: str) -> int:
        return self._ledger.entry(participant).claimed

    def participant(self, participant: str) -> ParticipantEntry:
        return self._ledger.entry(participant)

    def participants(self) -> Iterator[Tuple[str, ParticipantEntry]]:
        """All known participants (O(n); for reporting, not accrual)."""
        return iter(self._ledger)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self, now: Optional[int]) -> int:
        if now is not None:
            return now
        if self.clock is None:
            raise ValueError("now is required when the engine has no clock")
        return self.clock.now()

    def _custodial(self) -> bool:
        return self.asset_ledger is not None and self.staked_asset is not None

    def _refresh(self, now: int) -> int:
        event = self._accumulator.refresh(self._interval, self._ledger.total_weight, now)
        if event is not None:
            self._emit(event)
        return self._accumulator.accumulated

    def _sync(self, participant: str, accumulated: int) -> None:
        event = self._ledger.sync(participant, accumulated)
        if event is not None:
            self._emit(event)

    def _emit(self, event: Event) -> None:
        self._pending.append(event)

    @contextmanager
    def _atomic(self, operation: str):
        """Run one operation as a unit; units never nest."""
        if self._in_unit:
            raise RuntimeError(f"{operation} started inside another operation")

        accumulator = self._accumulator.snapshot()
        interval = self._interval
        self._ledger.begin()
        self._pending = []
        self._in_unit = True
        try:
            yield
        except BaseException as exc:
            self._accumulator.restore(accumulator)
            self._interval = interval
            self._ledger.rollback()
            self._pending = []
            self._in_unit = False
            if isinstance(exc, AccrualError):
                log.info("%s rejected: %s", operation, exc)
            raise

        self._ledger.commit()
        committed, self._pending = self._pending, []
        self._in_unit = False
        log.debug("%s committed with %d events", operation, len(committed))
        for event in committed:
            self.history.append(event)
        for event in committed:
            self.events.publish(event)
