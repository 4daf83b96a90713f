# src/objsync/signals.py
"""
Graceful shutdown on SIGINT and SIGTERM.

The first signal sets an `asyncio.Event` observed by the diff and the
replication workers: no new object is enqueued or copied, in-flight
transfers finish, and the run reports what it did. A second signal exits
the process at once.
"""

import asyncio
import logging
import os
import signal
from types import FrameType
from typing import Any, Callable, Dict, Optional, Tuple

logger: logging.Logger = logging.getLogger(__name__)

_SignalHandler = Callable[[int, Optional[FrameType]], None]

_HANDLED_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class GracefulShutdown:
    """
    An async context manager translating shutdown signals into an event.

    Previous signal handlers are restored on exit.
    """

    def __init__(self) -> None:
        self._event: asyncio.Event = asyncio.Event()
        self._previous: Dict[signal.Signals, _SignalHandler] = {}

    async def __aenter__(self) -> asyncio.Event:
        """
        Installs the signal handlers.

        Returns:
            asyncio.Event: Set once a shutdown signal has been received.
        """
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()

        def _on_signal(sig: int, _: Optional[FrameType]) -> None:
            if self._event.is_set():
                logger.critical("Second shutdown signal received. Exiting now.")
                os._exit(1)
            logger.warning(
                f"Received {signal.strsignal(sig)}, finishing in-flight transfers. "
                "Send it again to exit immediately."
            )
            loop.call_soon_threadsafe(self._event.set)

        for sig in _HANDLED_SIGNALS:
            try:
                self._previous[sig] = signal.signal(sig, _on_signal)
            except (ValueError, OSError) as e:
                # Only the main thread may install handlers
                logger.warning(f"Could not set handler for {sig.name}: {e}")
        return self._event

    async def __aexit__(self, *args: Any) -> None:
        """Restores the previous signal handlers."""
        for sig, handler in self._previous.items():
            try:
                signal.signal(sig, handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not restore handler for {sig.name}: {e}")
        self._previous.clear()
