"""rewardstream: time-weighted reward accrual over bounded reward programs."""

__version__ = "1.0.0"
