"""
Multi-way wait used at every suspension point of the supervisor loop.

The supervisor waits on up to four independent events at once: the shared
shutdown event, the restart signal, the exit of the player process and a
timer. Whichever becomes ready first wins. When several are ready at the same
check, the order of `WakeReason` decides (shutdown first).
"""
import time
import threading
from enum import Enum
from subprocess import Popen
from typing import Optional

from camplayer import settings
from camplayer.local.restart_signal import RestartSignal


class WakeReason(Enum):
    """Why a wait returned, in priority order."""
    SHUTDOWN = "shutdown"
    RESTART = "restart"
    EXITED = "exited"
    TIMER = "timer"


def wait_first(
    shutdown_event: threading.Event,
    restart_signal: RestartSignal,
    process: Optional[Popen] = None,
    timeout: Optional[float] = None,
    poll_interval: float = settings.SUPERVISOR_POLL_INTERVAL,
) -> WakeReason:
    """
    Blocks until shutdown, a restart request, process exit or the timeout.

    A restart request is consumed only when it is the reason returned.

    :param shutdown_event: The one-shot global shutdown event.
    :param restart_signal: The restart signal to drain.
    :param process: A running player process to watch, if any.
    :param timeout: Seconds until TIMER is returned; None waits indefinitely.
    :param poll_interval: Upper bound on the time between checks.
    :return: The WakeReason that fired.
    """
    deadline = None if timeout is None else time.monotonic() + timeout

    while True:
        if shutdown_event.is_set():
            return WakeReason.SHUTDOWN
        if restart_signal.consume():
            return WakeReason.RESTART
        if process is not None and process.poll() is not None:
            return WakeReason.EXITED

        slice_ = poll_interval
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return WakeReason.TIMER
            slice_ = min(slice_, remaining)

        # Returns early when shutdown is set so it is seen on the next pass.
        shutdown_event.wait(slice_)
