"""Simulation runner - Replay a scripted scenario against a fresh engine.

Key Features:
- ManualClock driven by each action's `at`
- InMemoryAssetLedger seeded from the configured opening balances
- Rejected actions are recorded, not raised
- One snapshot per action using read-only queries at that instant
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config.schema import Config, ScenarioAction
from ..engine.collaborators import AllowListAccessControl, InMemoryAssetLedger, ManualClock
from ..engine.errors import AccrualError
from ..engine.events import Event
from ..engine.operations import AccrualEngine

log = logging.getLogger("rewardstream.simulation")


@dataclass
class ParticipantSnapshot:
    """Participant view at one instant."""
    weight: int
    accrued: int  # Read-only accrued as of the snapshot instant
    claimed: int


@dataclass
class StepSnapshot:
    """Engine view right after one scripted action."""
    t: int
    action: str
    participant: Optional[str]
    accepted: bool
    reward_per_weight: int  # Read-only accumulator as of t
    last_updated: int  # Stored accumulator instant
    total_weight: int
    participants: Dict[str, ParticipantSnapshot]


@dataclass
class SimulationResult:
    """Complete simulation result."""
    config: Config
    snapshots: List[StepSnapshot]
    final_metrics: Dict[str, Any]
    events: List[Event] = field(default_factory=list)
    rejected_actions: List[str] = field(default_factory=list)
    engine: Optional[AccrualEngine] = None


def build_engine(config: Config) -> Tuple[AccrualEngine, InMemoryAssetLedger, ManualClock]:
    """
    Build an engine with in-memory collaborators from configuration.

    Args:
        config: Scenario configuration

    Returns:
        (engine, asset_ledger, clock)
    """
    clock = ManualClock(0)
    ledger = InMemoryAssetLedger()
    for asset, holders in config.assets.initial_balances.items():
        for holder, amount in holders.items():
            ledger.mint(asset, holder, amount)

    access_control = AllowListAccessControl(config.admins) if config.admins else None
    engine = AccrualEngine(
        asset_ledger=ledger,
        clock=clock,
        access_control=access_control,
        staked_asset=config.assets.staked_asset,
        reward_asset=config.assets.reward_asset,
        precision_factor=config.engine.precision_factor,
        time_bits=config.engine.time_bits,
        accumulator_bits=config.engine.accumulator_bits,
        history_size=config.engine.history_size,
    )
    return engine, ledger, clock


class SimulationRunner:
    """Replays a configured action script."""

    def __init__(self, config: Config):
        """
        Initialize simulation runner.

        Args:
            config: Scenario configuration
        """
        self.config = config
        self.engine, self.asset_ledger, self.clock = build_engine(config)
        self._events: List[Event] = []
        self._rejected: List[str] = []
        self._total_budget = 0
        self._total_funded = 0
        self.engine.events.subscribe(self._events.append)

    def run(self, actions: Optional[List[ScenarioAction]] = None) -> SimulationResult:
        """
        Run the scenario.

        Args:
            actions: Override the configured action script

        Returns:
            SimulationResult with one snapshot per action
        """
        if actions is None:
            actions = self.config.actions
        # Stable sort keeps the script order for actions at the same instant
        ordered = sorted(actions, key=lambda a: a.at)
        participants = self._participant_names(ordered)

        program = self.config.program
        if program is not None:
            self._execute(
                "configure",
                lambda: self.engine.configure(
                    program.start,
                    program.end,
                    program.total_budget,
                    caller=program.funder,
                    fund_from=program.funder,
                ),
            )

        snapshots = []
        for action in ordered:
            self.clock.set(action.at)
            accepted = self._execute(action.action, lambda: self._apply(action))
            snapshots.append(self._snapshot(action, accepted, participants))

        final_metrics = self._final_metrics(participants)
        log.info(
            "scenario finished: %d actions, %d rejected, claimed=%d of budget=%d",
            len(ordered), len(self._rejected),
            final_metrics["total_claimed"], final_metrics["total_budget"],
        )

        return SimulationResult(
            config=self.config,
            snapshots=snapshots,
            final_metrics=final_metrics,
            events=list(self._events),
            rejected_actions=list(self._rejected),
            engine=self.engine,
        )

    def _execute(self, name: str, call) -> bool:
        t = self.clock.now()
        replaced = self.engine.interval
        try:
            result = call()
        except AccrualError as e:
            self._rejected.append(f"t={t} {name}: {e}")
            return False
        if name == "configure":
            self._total_budget += result.total_budget
            self._total_funded += result.total_budget
            # A program replaced before its start never accrued anything.
            if replaced is not None and t < replaced.start:
                self._total_budget -= replaced.total_budget
        return True

    def _apply(self, action: ScenarioAction):
        engine = self.engine
        if action.action == "configure":
            return engine.configure(
                action.start,
                action.end,
                action.total_budget,
                caller=action.caller,
                fund_from=action.caller,
            )
        if action.action == "increase":
            return engine.increase_weight(action.participant, action.amount)
        if action.action == "decrease":
            return engine.decrease_weight(action.participant, action.amount)
        if action.action == "transfer":
            return engine.transfer_weight(action.participant, action.recipient, action.amount)
        if action.action == "claim":
            return engine.claim(action.participant, action.amount)
        if action.action == "claim_all":
            return engine.claim_all(action.participant)
        raise ValueError(f"Unknown action: {action.action}")

    def _participant_names(self, actions: List[ScenarioAction]) -> List[str]:
        names = set()
        staked = self.config.assets.staked_asset
        if staked is not None:
            names.update(self.config.assets.initial_balances.get(staked, {}))
        for action in actions:
            if action.action == "configure":
                continue
            names.add(action.participant)
            if action.recipient is not None:
                names.add(action.recipient)
        return sorted(names)

    def _snapshot(
        self,
        action: ScenarioAction,
        accepted: bool,
        participants: List[str]
    ) -> StepSnapshot:
        t = action.at
        return StepSnapshot(
            t=t,
            action=action.action,
            participant=action.participant,
            accepted=accepted,
            reward_per_weight=self.engine.current_reward_per_weight(t),
            last_updated=self.engine.accumulator.last_updated,
            total_weight=self.engine.total_weight(),
            participants={
                name: ParticipantSnapshot(
                    weight=self.engine.weight_of(name),
                    accrued=self.engine.current_participant_rewards(name, t),
                    claimed=self.engine.claimed_of(name),
                )
                for name in participants
            },
        )

    def _final_metrics(self, participants: List[str]) -> Dict[str, Any]:
        """Totals as of the later of the last action and the program end."""
        final_time = self.clock.now()
        if self.engine.interval is not None:
            final_time = max(final_time, self.engine.interval.end)

        total_claimed = sum(self.engine.claimed_of(p) for p in participants)
        total_accrued = sum(
            self.engine.current_participant_rewards(p, final_time) for p in participants
        )
        return {
            'final_time': final_time,
            'total_budget': self._total_budget,
            'total_funded': self._total_funded,
            'total_claimed': total_claimed,
            'total_accrued': total_accrued,
            'undistributed': self._total_budget - total_claimed - total_accrued,
            'reward_per_weight': self.engine.current_reward_per_weight(final_time),
            'total_weight': self.engine.total_weight(),
            'reward_custody': self.asset_ledger.custody_balance(self.config.assets.reward_asset),
            'rejected_count': len(self._rejected),
        }
