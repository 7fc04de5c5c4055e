"""Compensating undo log for all-or-nothing vault operations.

Each mutation performed during an operation records how to reverse itself.
If the operation raises, the recorded undos run newest-first, restoring the
state observed before the call.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class Journal:
    """Ordered list of undo actions for one operation."""

    def __init__(self, label: str):
        self.label = label
        self._undo: list[tuple[str, Callable[[], None]]] = []

    def __len__(self) -> int:
        return len(self._undo)

    def record(self, description: str, undo: Callable[[], None]) -> None:
        self._undo.append((description, undo))

    def rollback(self) -> None:
        """Run every recorded undo, newest first.

        A failing undo does not stop the others; the first failure is re-raised
        once all of them have run.
        """
        first_error: Exception | None = None
        while self._undo:
            description, undo = self._undo.pop()
            try:
                undo()
            except Exception as ex:  # pylint: disable=broad-exception-caught
                logger.error("%s: undo of %r failed: %s", self.label, description, ex)
                if first_error is None:
                    first_error = ex
        if first_error is not None:
            raise first_error

    def discard(self) -> None:
        self._undo.clear()


@contextmanager
def atomic(label: str) -> Iterator[Journal]:
    """Yield a journal; roll it back if the body raises, then re-raise."""
    journal = Journal(label)
    try:
        yield journal
    except BaseException as ex:
        if len(journal):
            logger.warning("%s aborted (%s), rolling back %d step(s)", label, ex, len(journal))
        try:
            journal.rollback()
        except Exception as undo_error:
            raise undo_error from ex
        raise
    journal.discard()
