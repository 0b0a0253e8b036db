"""Unit tests for the accrual building blocks.

These tests cover the pieces below the engine:
- Interval validation and rate derivation
- Checked narrowing into bounded storage
- Accumulator refresh/peek, freeze at end, zero-weight forfeiture
- Participant settlement against the accumulator
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from rewardstream.engine.accumulator import RewardAccumulator
from rewardstream.engine.bounds import narrow, uint_max
from rewardstream.engine.errors import (
    ArithmeticOverflow,
    InsufficientAccrued,
    InsufficientWeight,
    InvalidInterval,
)
from rewardstream.engine.events import AccumulatorUpdated, ParticipantUpdated
from rewardstream.engine.interval import IntervalConfig, ProgramStatus
from rewardstream.engine.ledger import ParticipantEntry, ParticipantLedger

P = 10**18


class TestIntervalConfig:
    """Tests for program interval validation."""

    def test_rate_is_floor_of_budget_over_duration(self):
        interval = IntervalConfig.create(0, 1000, 1000)
        assert interval.rate == 1
        assert interval.dust == 0

    def test_remainder_is_dust(self):
        """Budget not divisible by duration leaves a permanent remainder."""
        interval = IntervalConfig.create(0, 3, 10)
        assert interval.rate == 3
        assert interval.distributable == 9
        assert interval.dust == 1

    def test_reversed_interval_rejected(self):
        with pytest.raises(InvalidInterval) as exc_info:
            IntervalConfig.create(10, 5, 100)
        assert exc_info.value.code == "invalid_interval"

    def test_empty_interval_rejected(self):
        """start == end would divide by zero."""
        with pytest.raises(InvalidInterval) as exc_info:
            IntervalConfig.create(10, 10, 100)
        assert "degenerate" in str(exc_info.value)

    def test_instants_must_fit_time_width(self):
        with pytest.raises(ArithmeticOverflow):
            IntervalConfig.create(0, 2**32, 100)
        assert IntervalConfig.create(0, 2**32 - 1, 100).end == 2**32 - 1

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            IntervalConfig.create(0, 10, -1)

    def test_status_transitions(self):
        interval = IntervalConfig.create(100, 200, 1000)
        assert interval.status(99) == ProgramStatus.PENDING
        assert interval.status(100) == ProgramStatus.ACTIVE
        assert interval.status(200) == ProgramStatus.ACTIVE
        assert interval.status(201) == ProgramStatus.ENDED

    def test_reconfiguration_window_is_strict(self):
        interval = IntervalConfig.create(100, 200, 1000)
        assert interval.allows_reconfiguration(99)
        assert not interval.allows_reconfiguration(100)
        assert not interval.allows_reconfiguration(150)
        assert not interval.allows_reconfiguration(200)
        assert interval.allows_reconfiguration(201)

    def test_interval_is_immutable(self):
        interval = IntervalConfig.create(0, 10, 100)
        with pytest.raises(Exception):
            interval.rate = 99


class TestBounds:
    """Tests for checked narrowing."""

    def test_uint_max(self):
        assert uint_max(8) == 255
        assert uint_max(32) == 2**32 - 1

    def test_narrow_passes_values_in_range(self):
        assert narrow(0, 8) == 0
        assert narrow(255, 8) == 255

    def test_narrow_rejects_out_of_range(self):
        with pytest.raises(ArithmeticOverflow) as exc_info:
            narrow(256, 8, "accumulated")
        assert exc_info.value.details["bits"] == 8
        assert "accumulated" in exc_info.value.reason

    def test_narrow_rejects_negative(self):
        with pytest.raises(ArithmeticOverflow):
            narrow(-1, 8)


class TestRewardAccumulator:
    """Tests for the global reward-per-weight accumulator."""

    def setup_method(self):
        self.interval = IntervalConfig.create(0, 1000, 1000)
        self.acc = RewardAccumulator(precision_factor=P)

    def test_noop_before_start(self):
        interval = IntervalConfig.create(100, 200, 1000)
        assert self.acc.refresh(interval, 1, 50) is None
        assert self.acc.snapshot() == (0, 0)

    def test_noop_without_interval(self):
        assert self.acc.refresh(None, 1, 50) is None
        assert self.acc.snapshot() == (0, 0)

    def test_accrues_rate_per_weight(self):
        event = self.acc.refresh(self.interval, 1, 1)
        assert self.acc.accumulated == P
        assert self.acc.last_updated == 1
        assert event == AccumulatorUpdated(accumulated=P, last_updated=1)

    def test_refresh_is_idempotent_at_same_instant(self):
        self.acc.refresh(self.interval, 4, 10)
        first = self.acc.snapshot()
        assert self.acc.refresh(self.interval, 4, 10) is None
        assert self.acc.snapshot() == first

    def test_zero_weight_forfeits_interval(self):
        """Time passes but nothing accumulates while nobody holds weight."""
        assert self.acc.refresh(self.interval, 0, 10) is None
        assert self.acc.accumulated == 0
        assert self.acc.last_updated == 10

    def test_freezes_at_end(self):
        self.acc.refresh(self.interval, 1, 5000)
        frozen = self.acc.snapshot()
        assert frozen == (1000 * P, 1000)
        assert self.acc.refresh(self.interval, 1, 9000) is None
        assert self.acc.snapshot() == frozen

    def test_floor_division_rounds_down(self):
        self.acc.refresh(self.interval, 3, 1)
        assert self.acc.accumulated == P // 3

    def test_peek_does_not_mutate(self):
        assert self.acc.peek(self.interval, 2, 10) == (5 * P, 10)
        assert self.acc.snapshot() == (0, 0)

    def test_overflow_raises_and_leaves_state(self):
        acc = RewardAccumulator(precision_factor=P, accumulator_bits=64)
        with pytest.raises(ArithmeticOverflow):
            acc.refresh(self.interval, 1, 100)
        assert acc.snapshot() == (0, 0)

    def test_rearm_keeps_accumulated(self):
        self.acc.refresh(self.interval, 1, 10)
        self.acc.rearm(2000)
        assert self.acc.snapshot() == (10 * P, 2000)


class TestParticipantLedger:
    """Tests for per-participant settlement."""

    def setup_method(self):
        self.ledger = ParticipantLedger(precision_factor=P)

    def test_unknown_participant_is_zero(self):
        assert self.ledger.entry("alice") == ParticipantEntry()
        assert len(self.ledger) == 0

    def test_sync_settles_weight_times_delta(self):
        self.ledger.add_weight("alice", 3)
        event = self.ledger.sync("alice", 2 * P)
        entry = self.ledger.entry("alice")
        assert entry.accrued == 6
        assert entry.checkpoint == 2 * P
        assert event == ParticipantUpdated(participant="alice", accrued=6, checkpoint=2 * P)

    def test_sync_is_idempotent(self):
        self.ledger.add_weight("alice", 3)
        self.ledger.sync("alice", 2 * P)
        assert self.ledger.sync("alice", 2 * P) is None
        assert self.ledger.entry("alice").accrued == 6

    def test_sync_of_unseen_participant_at_zero_writes_nothing(self):
        assert self.ledger.sync("ghost", 0) is None
        assert len(self.ledger) == 0

    def test_new_participant_starts_at_current_checkpoint(self):
        """A late joiner earns nothing for accumulation before it joined."""
        self.ledger.sync("bob", 7 * P)
        self.ledger.add_weight("bob", 10)
        assert self.ledger.preview("bob", 7 * P).accrued == 0
        assert self.ledger.preview("bob", 8 * P).accrued == 10

    def test_small_weight_rounds_to_zero(self):
        self.ledger.add_weight("alice", 1)
        self.ledger.sync("alice", P - 1)
        assert self.ledger.entry("alice").accrued == 0

    def test_preview_does_not_mutate(self):
        self.ledger.add_weight("alice", 1)
        assert self.ledger.preview("alice", 5 * P).accrued == 5
        assert self.ledger.entry("alice").accrued == 0

    def test_total_weight_tracks_changes(self):
        self.ledger.add_weight("alice", 5)
        self.ledger.add_weight("bob", 3)
        self.ledger.move_weight("alice", "bob", 2)
        self.ledger.remove_weight("bob", 1)
        assert self.ledger.total_weight == 7
        assert self.ledger.entry("alice").weight == 3
        assert self.ledger.entry("bob").weight == 4

    def test_remove_more_than_weight_fails(self):
        self.ledger.add_weight("alice", 1)
        with pytest.raises(InsufficientWeight):
            self.ledger.remove_weight("alice", 2)

    def test_debit_more_than_accrued_fails(self):
        with pytest.raises(InsufficientAccrued):
            self.ledger.debit_accrued("alice", 1)

    def test_debit_moves_accrued_to_claimed(self):
        self.ledger.add_weight("alice", 1)
        self.ledger.sync("alice", 10 * P)
        self.ledger.debit_accrued("alice", 4)
        entry = self.ledger.entry("alice")
        assert entry.accrued == 6
        assert entry.claimed == 4

    def test_rollback_restores_touched_entries(self):
        self.ledger.add_weight("alice", 1)
        self.ledger.begin()
        self.ledger.add_weight("alice", 5)
        self.ledger.add_weight("bob", 2)
        self.ledger.rollback()
        assert self.ledger.entry("alice").weight == 1
        assert self.ledger.total_weight == 1
        assert "bob" not in dict(self.ledger)

    def test_checkpoint_overflow(self):
        ledger = ParticipantLedger(precision_factor=P, accumulator_bits=8)
        with pytest.raises(ArithmeticOverflow):
            ledger.sync("alice", 256)
