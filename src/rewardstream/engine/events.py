"""Change notifications published by the accrual engine."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Union

log = logging.getLogger("rewardstream.events")


@dataclass(frozen=True)
class AccumulatorUpdated:
    accumulated: int
    last_updated: int


@dataclass(frozen=True)
class ParticipantUpdated:
    participant: str
    accrued: int
    checkpoint: int


@dataclass(frozen=True)
class WeightIncreased:
    participant: str
    amount: int


@dataclass(frozen=True)
class WeightDecreased:
    participant: str
    amount: int


@dataclass(frozen=True)
class WeightTransferred:
    sender: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class Claimed:
    participant: str
    amount: int


@dataclass(frozen=True)
class IntervalConfigured:
    start: int
    end: int
    rate: int


Event = Union[
    AccumulatorUpdated,
    ParticipantUpdated,
    WeightIncreased,
    WeightDecreased,
    WeightTransferred,
    Claimed,
    IntervalConfigured,
]

Subscriber = Callable[[Event], None]


class EventBus:
    """Synchronous fan-out of committed events to subscribers."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        self._subscribers.remove(callback)

    def publish(self, event: Event) -> None:
        """
        Deliver an event to every subscriber in subscription order.

        A failing subscriber is logged and its exception propagates to the
        caller; later subscribers do not see the event.
        """
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                log.exception("subscriber %r failed on %s", callback, type(event).__name__)
                raise
