"""Thread-local undo journal backing atomic ledger and transfer operations."""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

UndoStep = Callable[[], None]


class Journal:
    """
    Records undo steps for mutations made inside atomic() blocks.

    Frames nest per thread. A block that completes folds its steps into the
    enclosing frame; a block that raises unwinds only its own steps, newest
    first, and re-raises. Outside any block record() is a no-op.

    Example:
        >>> journal = Journal("ledger")
        >>> with journal.atomic():
        ...     balances[asset] += fee
        ...     journal.record(lambda: balances.__setitem__(asset, balances[asset] - fee))
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._local = threading.local()

    def _frames(self) -> list[list[UndoStep]]:
        frames = getattr(self._local, "frames", None)
        if frames is None:
            frames = self._local.frames = []
        return frames

    @property
    def active(self) -> bool:
        """True while the current thread is inside an atomic() block."""
        return bool(self._frames())

    def record(self, undo: UndoStep) -> None:
        """Register the inverse of a mutation that was just applied."""
        frames = self._frames()
        if frames:
            frames[-1].append(undo)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Group mutations so they commit or roll back together."""
        frames = self._frames()
        frames.append([])
        try:
            yield
        except BaseException:
            steps = frames.pop()
            logger.debug("%s: rolling back %d step(s)", self.name, len(steps))
            for undo in reversed(steps):
                undo()
            raise
        else:
            steps = frames.pop()
            if frames:
                frames[-1].extend(steps)
