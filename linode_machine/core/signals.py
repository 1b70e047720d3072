"""Signal handling for cancelling instance creation."""

from __future__ import annotations

import signal
import types
from collections.abc import Callable, Iterable
from typing import Any

from linode_machine.providers.exceptions import OperationCancelledError

CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def raise_cancelled(signum: int, frame: types.FrameType | None) -> None:
    """Abort the interrupted operation.

    Raising from the handler takes no locks, so it is safe whatever the main
    thread was doing, including waiting on a ``threading.Event``.

    Parameters
    ----------
    signum : int
        Signal number
    frame : types.FrameType | None
        Signal frame

    Raises
    ------
    OperationCancelledError
        Always
    """
    raise OperationCancelledError(
        f"Interrupted by {signal.Signals(signum).name}", stage="signal"
    )


class CancelOnSignals:
    """Context manager turning SIGINT and SIGTERM into ``OperationCancelledError``.

    The handlers are installed on entry and the previous ones restored on
    exit, so signals outside the block keep their usual behaviour. Must be
    entered from the main thread.

    Parameters
    ----------
    signals : Iterable[int]
        Signals to handle (default: SIGINT and SIGTERM)
    handler : Callable[[int, types.FrameType | None], Any]
        Handler installed while the block runs
    """

    def __init__(
        self,
        signals: Iterable[int] = CANCEL_SIGNALS,
        handler: Callable[[int, types.FrameType | None], Any] = raise_cancelled,
    ) -> None:
        self.signals = tuple(signals)
        self.handler = handler
        self._previous: dict[int, Any] = {}

    def __enter__(self) -> CancelOnSignals:
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self.handler)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        while self._previous:
            signum, previous = self._previous.popitem()
            signal.signal(signum, previous)
