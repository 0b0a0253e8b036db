"""External collaborators: clock, asset custody and configuration access.

The engine only talks to these through the protocols below. The in-memory
implementations back the simulation runner and the tests.
"""

import logging
import time
from typing import Dict, Iterable, Optional, Protocol, Tuple

from .errors import AssetTransferFailed

log = logging.getLogger("rewardstream.collaborators")

CUSTODY = "__custody__"


class Clock(Protocol):
    def now(self) -> int:
        ...


class AssetLedger(Protocol):
    def pull(self, asset: str, holder: str, amount: int) -> None:
        """Move `amount` of `asset` from `holder` into engine custody."""
        ...

    def push(self, asset: str, holder: str, amount: int) -> None:
        """Move `amount` of `asset` from engine custody to `holder`."""
        ...


class AccessControl(Protocol):
    def is_authorized(self, caller: Optional[str]) -> bool:
        ...


class SystemClock:
    """Wall clock in whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Caller-driven clock for simulations and tests; never moves backwards."""

    def __init__(self, start: int = 0):
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, t: int) -> None:
        if t < self._now:
            raise ValueError(f"clock cannot move backwards: {t} < {self._now}")
        self._now = t

    def advance(self, dt: int) -> None:
        self.set(self._now + dt)


class InMemoryAssetLedger:
    """Balances per (asset, holder); engine custody is the CUSTODY holder."""

    def __init__(self):
        self._balances: Dict[Tuple[str, str], int] = {}

    def balance_of(self, asset: str, holder: str) -> int:
        return self._balances.get((asset, holder), 0)

    def custody_balance(self, asset: str) -> int:
        return self.balance_of(asset, CUSTODY)

    def mint(self, asset: str, holder: str, amount: int) -> None:
        """Seed a balance (test and simulation setup)."""
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")
        self._balances[(asset, holder)] = self.balance_of(asset, holder) + amount

    def pull(self, asset: str, holder: str, amount: int) -> None:
        self._move(asset, holder, CUSTODY, amount)

    def push(self, asset: str, holder: str, amount: int) -> None:
        self._move(asset, CUSTODY, holder, amount)

    def _move(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        available = self.balance_of(asset, sender)
        if amount > available:
            raise AssetTransferFailed(
                "insufficient balance",
                asset=asset,
                holder=sender,
                balance=available,
                amount=amount,
            )
        self._balances[(asset, sender)] = available - amount
        self._balances[(asset, recipient)] = self.balance_of(asset, recipient) + amount
        log.debug("moved %d %s from %s to %s", amount, asset, sender, recipient)


class AllowListAccessControl:
    """Authorizes a fixed set of admin callers."""

    def __init__(self, admins: Iterable[str]):
        self.admins = frozenset(admins)

    def is_authorized(self, caller: Optional[str]) -> bool:
        return caller is not None and caller in self.admins
