"""Error taxonomy for the reward accrual engine.

Every error aborts the whole operation that raised it. The engine restores
its state before the exception leaves the operation, so callers never
observe a partially applied change.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(eq=False)
class AccrualError(RuntimeError):
    """Base error: a stable machine-readable code plus a human reason."""
    code: str
    reason: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class InvalidInterval(AccrualError):
    """Program interval is reversed or empty."""

    def __init__(self, reason: str, **details: Any):
        super().__init__("invalid_interval", reason, details)


class ProgramInProgress(AccrualError):
    """Reconfiguration attempted while the current program is accruing."""

    def __init__(self, reason: str, **details: Any):
        super().__init__("program_in_progress", reason, details)


class InsufficientWeight(AccrualError):
    def __init__(self, reason: str, **details: Any):
        super().__init__("insufficient_weight", reason, details)


class InsufficientAccrued(AccrualError):
    def __init__(self, reason: str, **details: Any):
        super().__init__("insufficient_accrued", reason, details)


class ArithmeticOverflow(AccrualError):
    """A value does not fit the bounded storage width it is written to."""

    def __init__(self, reason: str, **details: Any):
        super().__init__("arithmetic_overflow", reason, details)


class AssetTransferFailed(AccrualError):
    """The asset ledger rejected a pull or push."""

    def __init__(self, reason: str, **details: Any):
        super().__init__("asset_transfer_failed", reason, details)


class Unauthorized(AccrualError):
    def __init__(self, reason: str, **details: Any):
        super().__init__("unauthorized", reason, details)
