import signal
import logging
import threading
from typing import Dict

log = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_signal_handlers(shutdown_event: threading.Event) -> Dict[int, object]:
    """
    Translates SIGINT/SIGTERM into the shared one-shot shutdown event.

    Must be called from the main thread.

    :param shutdown_event: The event observed by the supervisor and web server.
    :return: The previous handlers, for restore_signal_handlers().
    """
    def _handle(signum, _frame) -> None:
        if not shutdown_event.is_set():
            log.info(f"Received {signal.Signals(signum).name}, shutting down...")
        shutdown_event.set()

    previous = {}
    for signum in SHUTDOWN_SIGNALS:
        previous[signum] = signal.getsignal(signum)
        signal.signal(signum, _handle)
    return previous


def restore_signal_handlers(previous: Dict[int, object]) -> None:
    """Puts back the handlers returned by install_signal_handlers()."""
    for signum, handler in previous.items():
        signal.signal(signum, handler)
