"""Thin adapters exposing the accrual engine in its two embedding styles.

- StakingRewards: weight is an amount of a staked asset held in custody
- RewardToken: weight is a token balance; mint/burn/transfer move it
"""

from typing import Optional

from .interval import IntervalConfig
from .operations import AccrualEngine


class StakingRewards:
    """Stake an asset, earn the reward asset while staked."""

    def __init__(self, engine: AccrualEngine):
        if engine.staked_asset is None:
            raise ValueError("staking requires an engine with a staked asset")
        self.engine = engine

    def stake(self, account: str, amount: int, now: Optional[int] = None) -> None:
        self.engine.increase_weight(account, amount, now)

    def unstake(self, account: str, amount: int, now: Optional[int] = None) -> None:
        self.engine.decrease_weight(account, amount, now)

    def get_reward(self, account: str, now: Optional[int] = None) -> int:
        return self.engine.claim_all(account, now)

    def exit(self, account: str, now: Optional[int] = None) -> int:
        """
        Claim everything, then unstake everything.

        The two steps commit separately so each asset transfer matches
        committed engine state. If the unstake fails the claim stands.
        """
        claimed = self.engine.claim_all(account, now)
        self.engine.decrease_weight(account, self.engine.weight_of(account), now)
        return claimed

    def notify_reward_amount(
        self,
        start: int,
        end: int,
        total_budget: int,
        caller: str,
        now: Optional[int] = None
    ) -> IntervalConfig:
        """Configure a new program funded by the caller."""
        return self.engine.configure(
            start, end, total_budget, caller=caller, now=now, fund_from=caller
        )

    def staked_of(self, account: str) -> int:
        return self.engine.weight_of(account)

    def total_staked(self) -> int:
        return self.engine.total_weight()

    def earned(self, account: str, now: Optional[int] = None) -> int:
        return self.engine.current_participant_rewards(account, now)


class RewardToken:
    """Balance-weighted token whose holders accrue rewards."""

    def __init__(self, engine: AccrualEngine):
        if engine.staked_asset is not None:
            raise ValueError("a reward token engine must not hold a staked asset")
        self.engine = engine

    def mint(self, account: str, amount: int, now: Optional[int] = None) -> None:
        self.engine.increase_weight(account, amount, now)

    def burn(self, account: str, amount: int, now: Optional[int] = None) -> None:
        self.engine.decrease_weight(account, amount, now)

    def transfer(self, sender: str, recipient: str, amount: int, now: Optional[int] = None) -> None:
        self.engine.transfer_weight(sender, recipient, amount, now)

    def balance_of(self, account: str) -> int:
        return self.engine.weight_of(account)

    def total_supply(self) -> int:
        return self.engine.total_weight()

    def claim(self, account: str, amount: int, now: Optional[int] = None) -> None:
        self.engine.claim(account, amount, now)
