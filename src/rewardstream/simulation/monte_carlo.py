"""Randomized scenarios for checking accrual invariants."""

from typing import List

import numpy as np

from ..config.schema import Config, ProgramSettings, ScenarioAction
from .runner import SimulationResult, SimulationRunner

_ACTIONS = ["increase", "decrease", "transfer", "claim", "claim_all", "configure"]
_ACTION_PROBS = [0.35, 0.2, 0.1, 0.15, 0.15, 0.05]


class MonteCarloRunner:
    """Run many randomly scripted scenarios against fresh engines."""

    def __init__(self, config: Config):
        """
        Initialize Monte Carlo runner.

        Args:
            config: Base configuration; its program, balances and admins
                are reused, its action script is replaced per run
        """
        self.config = config

    def run(self, num_runs: int = None, random_seed: int = None) -> List[SimulationResult]:
        """
        Run random scenarios.

        Args:
            num_runs: Number of runs (defaults to config value)
            random_seed: Random seed (defaults to config value)

        Returns:
            List of simulation results
        """
        if num_runs is None:
            num_runs = self.config.simulation.random_runs
        if random_seed is None:
            random_seed = self.config.simulation.random_seed

        results = []
        for run_idx in range(num_runs):
            rng = np.random.default_rng(random_seed + run_idx)
            sampled_config = self._sample_config(rng)
            results.append(SimulationRunner(sampled_config).run())
        return results

    def _sample_config(self, rng: np.random.Generator) -> Config:
        base = self.config
        program = base.program or ProgramSettings(start=100, end=1100, total_budget=1_000_000)
        n_participants = base.simulation.random_participants
        names = [f"p{i}" for i in range(n_participants)]
        admin = base.admins[0] if base.admins else program.funder

        stake_per_participant = 1_000_000
        balances = {}
        if base.assets.staked_asset is not None:
            balances[base.assets.staked_asset] = {name: stake_per_participant for name in names}
        if admin is not None:
            # Enough to fund the initial program plus any reconfigurations.
            balances[base.assets.reward_asset] = {admin: program.total_budget * 10}

        horizon = program.end + (program.end - program.start) // 2
        n_actions = base.simulation.random_actions
        times = np.sort(rng.integers(0, horizon + 1, size=n_actions))
        kinds = rng.choice(len(_ACTIONS), size=n_actions, p=_ACTION_PROBS)

        actions = []
        for t, kind in zip(times, kinds):
            t = int(t)
            name = _ACTIONS[int(kind)]
            participant = names[int(rng.integers(0, n_participants))]
            amount = int(rng.integers(0, stake_per_participant // 4))
            if name == "configure":
                start = t + int(rng.integers(1, 200))
                actions.append(ScenarioAction(
                    at=t,
                    action=name,
                    start=start,
                    end=start + int(rng.integers(1, 1000)),
                    total_budget=int(rng.integers(0, program.total_budget)),
                    caller=admin,
                ))
            elif name == "transfer":
                recipient = names[int(rng.integers(0, n_participants))]
                actions.append(ScenarioAction(
                    at=t, action=name, participant=participant, recipient=recipient, amount=amount
                ))
            elif name == "claim_all":
                actions.append(ScenarioAction(at=t, action=name, participant=participant))
            else:
                actions.append(ScenarioAction(at=t, action=name, participant=participant, amount=amount))

        return base.model_copy(update={
            "program": program,
            "actions": actions,
            "assets": base.assets.model_copy(update={"initial_balances": balances}),
        })


def check_invariants(result: SimulationResult) -> List[str]:
    """
    Check accrual invariants on a finished scenario.

    - reward per weight never decreases across snapshots
    - claimed plus accrued never exceeds the configured budgets
    - no participant is ever credited more than the budgets in total

    Returns:
        List of violation messages (empty when all hold)
    """
    violations = []

    previous = 0
    for snap in result.snapshots:
        if snap.reward_per_weight < previous:
            violations.append(
                f"reward per weight decreased at t={snap.t}: {previous} -> {snap.reward_per_weight}"
            )
        previous = snap.reward_per_weight

        paid = sum(p.accrued + p.claimed for p in snap.participants.values())
        if paid > result.final_metrics['total_budget']:
            violations.append(
                f"conservation violated at t={snap.t}: {paid} > {result.final_metrics['total_budget']}"
            )

    metrics = result.final_metrics
    if metrics['total_claimed'] + metrics['total_accrued'] > metrics['total_budget']:
        violations.append(
            f"final conservation violated: claimed={metrics['total_claimed']} "
            f"accrued={metrics['total_accrued']} budget={metrics['total_budget']}"
        )
    return violations
