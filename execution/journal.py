"""
execution/journal.py - Compensation journal for all-or-nothing attempts.

JOURNAL CONTRACT:
=================
  record(description, undo)  - register the inverse of an applied effect
  rollback()                 - run every undo in reverse order, once
  commit()                   - discard the undo log, once
After rollback() or commit() the journal is closed; recording into a
closed journal raises RuntimeError.
=================
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

from core.logging import get_logger

logger = get_logger("engine.execution")


@dataclass
class JournalEntry:
    """One applied effect and its compensating action."""
    description: str
    undo: Callable[[], None]


class CompensationJournal:
    """Undo log for one attempt."""

    def __init__(self, attempt_id: str = ""):
        self.attempt_id = attempt_id
        self._entries: List[JournalEntry] = []
        self._closed = False

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def descriptions(self) -> List[str]:
        return [entry.description for entry in self._entries]

    def record(self, description: str, undo: Callable[[], None]) -> None:
        if self._closed:
            raise RuntimeError(f"Journal for {self.attempt_id} is closed")
        self._entries.append(JournalEntry(description=description, undo=undo))

    def rollback(self) -> int:
        """
        Undo every recorded effect, newest first.

        All compensations run even if one fails; the first failure is
        re-raised afterwards.

        Returns:
            Number of compensations applied
        """
        if self._closed:
            return 0
        self._closed = True

        first_error: Optional[Exception] = None
        applied = 0
        for entry in reversed(self._entries):
            try:
                entry.undo()
                applied += 1
            except Exception as e:
                logger.error(
                    f"Compensation failed: {entry.description}",
                    exc_info=True,
                    extra={"context": {"attempt_id": self.attempt_id, "entry": entry.description}},
                )
                if first_error is None:
                    first_error = e

        logger.debug(
            f"Rolled back {applied} effects",
            extra={"context": {"attempt_id": self.attempt_id, "applied": applied}},
        )
        self._entries.clear()

        if first_error is not None:
            raise first_error
        return applied

    def commit(self) -> None:
        if self._closed:
            raise RuntimeError(f"Journal for {self.attempt_id} is closed")
        self._closed = True
        self._entries.clear()
