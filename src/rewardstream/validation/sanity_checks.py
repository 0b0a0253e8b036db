"""Sanity checks and validation for scenario inputs and engine state."""

from dataclasses import dataclass
from typing import List, Optional

from ..config.schema import Config
from ..engine.bounds import uint_max
from ..engine.operations import AccrualEngine


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "conservation", "bounds"
    message: str
    details: Optional[str] = None


class SanityChecker:
    """Run sanity checks on configuration and engine state."""

    def __init__(self, config: Config):
        """Initialize with configuration."""
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check configuration inputs for implausible values.

        Returns:
            List of validation warnings
        """
        warnings = []
        engine = self.config.engine
        program = self.config.program

        if program is None:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="No initial program configured; rewards accrue only after a scripted configure",
            ))
        else:
            duration = program.end - program.start
            rate = program.total_budget // duration
            dust = program.total_budget - rate * duration

            if program.end > uint_max(engine.time_bits):
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Program end does not fit in uint{engine.time_bits}",
                    details=f"end={program.end}"
                ))

            if rate == 0 and program.total_budget > 0:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="input",
                    message="Budget is smaller than the program duration; the rate rounds to zero",
                    details=f"Budget: {program.total_budget:,}, duration: {duration:,}"
                ))
            elif program.total_budget > 0 and dust / program.total_budget > 0.01:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="input",
                    message=f"{dust / program.total_budget * 100:.1f}% of the budget is lost to rate rounding",
                    details=f"Dust: {dust:,} of {program.total_budget:,}"
                ))

            # A single time unit at full weight should still move the accumulator.
            staked = self.config.assets.staked_asset
            opening = self.config.assets.initial_balances.get(staked, {}) if staked else {}
            max_weight = sum(opening.values())
            if rate > 0 and max_weight > 0 and engine.precision_factor * rate < max_weight:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="bounds",
                    message="Precision factor too small: one time unit may add nothing to the accumulator",
                    details=f"precision*rate={engine.precision_factor * rate:,}, weight={max_weight:,}"
                ))

            early = [a for a in self.config.actions if a.action != "configure" and a.at < program.start]
            if early:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="input",
                    message=f"{len(early)} action(s) run before the program starts",
                    details="They change weights but accrue nothing until start"
                ))

        for action in self.config.actions:
            if action.action == "configure" and action.end is not None and action.end > uint_max(engine.time_bits):
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Scripted program at t={action.at} does not fit in uint{engine.time_bits}",
                    details=f"end={action.end}"
                ))

        if self.config.admins and program is not None and program.funder not in self.config.admins:
            warnings.append(ValidationWarning(
                severity="error",
                category="input",
                message="Initial program funder is not an admin; configuration will be rejected",
                details=f"funder={program.funder}"
            ))

        return warnings

    def check_engine_state(self, engine: AccrualEngine, total_budget: int) -> List[ValidationWarning]:
        """
        Check invariants of a live engine (walks every participant).

        Args:
            engine: Engine to inspect
            total_budget: Sum of all budgets configured on the engine

        Returns:
            List of validation warnings
        """
        warnings = []
        accumulated = engine.accumulator.accumulated

        weight_sum = 0
        paid = 0
        for name, entry in engine.participants():
            weight_sum += entry.weight
            paid += entry.accrued + entry.claimed
            if entry.checkpoint > accumulated:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Checkpoint of {name} is ahead of the accumulator",
                    details=f"checkpoint={entry.checkpoint}, accumulated={accumulated}"
                ))

        if weight_sum != engine.total_weight():
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message="Total weight does not match the sum of participant weights",
                details=f"total={engine.total_weight()}, sum={weight_sum}"
            ))

        if paid > total_budget:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message="Accrued plus claimed rewards exceed the configured budgets",
                details=f"paid={paid:,}, budget={total_budget:,}"
            ))

        return warnings


def validate_simulation_results(result) -> List[ValidationWarning]:
    """
    Validate a finished scenario.

    Args:
        result: SimulationResult

    Returns:
        List of validation warnings
    """
    warnings = []
    checker = SanityChecker(result.config)
    warnings.extend(checker.check_config_inputs())
    if result.engine is not None:
        warnings.extend(checker.check_engine_state(result.engine, result.final_metrics['total_budget']))

    metrics = result.final_metrics
    if metrics['total_budget'] > 0:
        share = metrics['undistributed'] / metrics['total_budget']
        if share > 0.10:
            warnings.append(ValidationWarning(
                severity="warning",
                category="conservation",
                message=f"{share * 100:.1f}% of the budget was never distributed",
                details="Zero-weight periods and rounding forfeit rewards permanently"
            ))

    for rejected in result.rejected_actions:
        warnings.append(ValidationWarning(
            severity="warning",
            category="input",
            message="Scripted action rejected",
            details=rejected
        ))

    return warnings
