"""Best-effort remote writes behind optimistic local updates.

Callers mutate the in-memory graph first, then submit the remote write
here. A failed write is logged and surfaced as a notification; local state
is never reverted.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Literal

from .models import LayoutMode, utc_now

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A non-blocking message for the user (toast)."""

    level: Literal["info", "error"]
    message: str
    ts: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class LocalChange:
    """The local mutation a remote write mirrors.

    Replayed onto a rebuilt graph store while its write is pending or has
    failed. ``value`` is the node, the edge, or the new position.
    """

    kind: Literal["node", "edge", "move"]
    target_id: str
    value: Any
    mode: LayoutMode | None = None

    @property
    def key(self) -> tuple:
        return (self.kind, self.target_id, self.mode)


@dataclass
class PendingWrite:
    description: str
    fn: Callable[..., Any]
    args: tuple
    local: LocalChange | None = None


class WriteQueue:
    """FIFO of pending remote writes.

    With ``autoflush`` every submitted write runs right after the local
    mutation that produced it. Without it, writes wait for ``flush()``.
    Writes run in submission order, so the store sees mutations in the
    order the user issued them.
    """

    def __init__(
        self,
        autoflush: bool = True,
        on_notify: Callable[[Notification], None] | None = None,
    ):
        self.autoflush = autoflush
        self._pending: deque[PendingWrite] = deque()
        self._on_notify = on_notify
        self.notifications: list[Notification] = []
        self.failed: list[PendingWrite] = []

    def __len__(self) -> int:
        return len(self._pending)

    def submit(
        self,
        description: str,
        fn: Callable[..., Any],
        *args: Any,
        local: LocalChange | None = None,
    ) -> None:
        self._pending.append(PendingWrite(description, fn, args, local))
        if self.autoflush:
            self.flush()

    def flush(self) -> int:
        """Run all pending writes. Returns the number that succeeded."""
        succeeded = 0
        while self._pending:
            write = self._pending.popleft()
            try:
                write.fn(*write.args)
            except Exception as e:
                logger.warning(f"Failed to {write.description}: {e}")
                self.failed.append(write)
                self.notify("error", f"Failed to {write.description}")
            else:
                succeeded += 1
                if write.local is not None:
                    self._settle(write.local)
        return succeeded

    def _settle(self, change: LocalChange) -> None:
        # A newer successful write supersedes earlier failures on the same target
        self.failed = [
            w for w in self.failed if w.local is None or w.local.key != change.key
        ]

    def unsynced(self) -> list[LocalChange]:
        """Local changes the store has not confirmed, oldest first.

        Failed writes always precede pending ones in submission order.
        """
        writes = [*self.failed, *self._pending]
        return [w.local for w in writes if w.local is not None]

    def notify(self, level: Literal["info", "error"], message: str) -> None:
        note = Notification(level=level, message=message)
        self.notifications.append(note)
        if self._on_notify is not None:
            self._on_notify(note)
