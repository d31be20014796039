"""Operator interrupt handling for long-running commands."""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from types import FrameType

from loguru import logger

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def cancel_on_signals(cancel: Callable[[], None]) -> Iterator[None]:
    """Route SIGINT/SIGTERM to ``cancel`` for the duration of the block.

    The previous handlers are restored on exit. Outside the main thread
    signal handlers cannot be installed and the block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: FrameType | None) -> None:
        logger.warning(f"Received {signal.Signals(signum).name}, cancelling run")
        cancel()

    previous = {sig: signal.signal(sig, _handler) for sig in HANDLED_SIGNALS}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
