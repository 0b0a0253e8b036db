"""Scenario replay and randomized invariant runs."""

from .monte_carlo import MonteCarloRunner, check_invariants
from .runner import SimulationResult, SimulationRunner, StepSnapshot, build_engine

__all__ = [
    "SimulationRunner",
    "SimulationResult",
    "StepSnapshot",
    "build_engine",
    "MonteCarloRunner",
    "check_invariants",
]
