"""Cooperative cancellation for long-running downloads."""

import signal
import threading
from typing import Optional, Protocol, Sequence


class CancellationToken(Protocol):
    """Anything the download loop can poll for a stop request."""

    def is_cancelled(self) -> bool:
        ...


class NeverCancelled:
    def is_cancelled(self) -> bool:
        return False


class CancellationEvent:
    """A one-shot token: once cancelled it stays cancelled."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


def default_signals() -> Sequence[signal.Signals]:
    signals = [signal.SIGINT]
    if hasattr(signal, "SIGQUIT"):
        signals.append(signal.SIGQUIT)
    return signals


def cancel_on_signals(signals: Optional[Sequence[signal.Signals]] = None) -> CancellationEvent:
    """
    Return a token that is cancelled the first time one of ``signals`` arrives.

    Later signals are absorbed by the same handler and have no further effect.
    Must be called from the main thread.
    """
    token = CancellationEvent()

    def handler(signum, frame):
        token.cancel()

    for signum in signals or default_signals():
        signal.signal(signum, handler)
    return token
