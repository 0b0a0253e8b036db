"""Per-participant weight, accrued reward and checkpoint.

Formula (per sync):
    earned = weight * (accumulated - checkpoint) // precision

The ledger never reads the clock or the accumulator itself; the engine
refreshes the accumulator first and hands the fresh value in.
"""

from dataclasses import dataclass, replace
from typing import Dict, Iterator, Optional, Tuple

from .bounds import narrow
from .errors import InsufficientAccrued, InsufficientWeight
from .events import ParticipantUpdated

_MISSING = object()


@dataclass(frozen=True)
class ParticipantEntry:
    """Settlement state of one participant."""
    weight: int = 0  # Stake or token balance
    accrued: int = 0  # Earned and not yet claimed
    checkpoint: int = 0  # Accumulator value at last settlement
    claimed: int = 0  # Running total paid out by claims


class ParticipantLedger:
    """Participant entries plus the running total weight."""

    def __init__(self, precision_factor: int = 10**18, accumulator_bits: int = 160):
        self.precision_factor = precision_factor
        self.accumulator_bits = accumulator_bits
        self.total_weight = 0
        self._entries: Dict[str, ParticipantEntry] = {}
        self._journal: Optional[Dict[str, object]] = None
        self._journal_total = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[str, ParticipantEntry]]:
        return iter(list(self._entries.items()))

    def entry(self, participant: str) -> ParticipantEntry:
        """Current entry, zero-valued if the participant was never seen."""
        return self._entries.get(participant, ParticipantEntry())

    def preview(self, participant: str, accumulated: int) -> ParticipantEntry:
        """
        Settle a participant against `accumulated` without writing.

        Args:
            participant: Participant id
            accumulated: Fresh accumulator value

        Returns:
            Entry as it would look after sync
        """
        return self._settle(self.entry(participant), accumulated)

    def _settle(self, current: ParticipantEntry, accumulated: int) -> ParticipantEntry:
        if current.checkpoint == accumulated:
            return current
        earned = current.weight * (accumulated - current.checkpoint) // self.precision_factor
        return replace(
            current,
            accrued=current.accrued + earned,
            checkpoint=narrow(accumulated, self.accumulator_bits, "checkpoint"),
        )

    def sync(self, participant: str, accumulated: int) -> Optional[ParticipantUpdated]:
        """
        Settle newly earned reward into accrued and move the checkpoint.

        Returns:
            ParticipantUpdated if the entry changed, else None
        """
        current = self.entry(participant)
        if current.checkpoint == accumulated:
            return None
        updated = self._settle(current, accumulated)
        self._write(participant, updated)
        return ParticipantUpdated(
            participant=participant,
            accrued=updated.accrued,
            checkpoint=updated.checkpoint,
        )

    def add_weight(self, participant: str, amount: int) -> None:
        current = self.entry(participant)
        self._write(participant, replace(current, weight=current.weight + amount))
        self.total_weight += amount

    def remove_weight(self, participant: str, amount: int) -> None:
        current = self.entry(participant)
        if current.weight < amount:
            raise InsufficientWeight(
                "insufficient weight",
                participant=participant,
                weight=current.weight,
                amount=amount,
            )
        self._write(participant, replace(current, weight=current.weight - amount))
        self.total_weight -= amount

    def move_weight(self, sender: str, recipient: str, amount: int) -> None:
        """Move weight between participants; total weight is unchanged."""
        self.remove_weight(sender, amount)
        self.add_weight(recipient, amount)

    def debit_accrued(self, participant: str, amount: int) -> None:
        current = self.entry(participant)
        if amount > current.accrued:
            raise InsufficientAccrued(
                "insufficient accrued rewards",
                participant=participant,
                accrued=current.accrued,
                amount=amount,
            )
        self._write(
            participant,
            replace(
                current,
                accrued=current.accrued - amount,
                claimed=current.claimed + amount,
            ),
        )

    # Journaling: record the first prior value of each touched entry so an
    # aborted operation can put it back.

    def begin(self) -> None:
        self._journal = {}
        self._journal_total = self.total_weight

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        if self._journal is None:
            return
        for participant, previous in self._journal.items():
            if previous is _MISSING:
                self._entries.pop(participant, None)
            else:
                self._entries[participant] = previous
        self.total_weight = self._journal_total
        self._journal = None

    def _write(self, participant: str, entry: ParticipantEntry) -> None:
        if self._journal is not None and participant not in self._journal:
            self._journal[participant] = self._entries.get(participant, _MISSING)
        self._entries[participant] = entry
