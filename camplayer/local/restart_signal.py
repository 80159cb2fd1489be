import logging
import threading

log = logging.getLogger(__name__)


class RestartSignal:
    """
    A single-slot, coalescing request to restart the player.

    Any thread may call `request()`; only the supervisor drains it with
    `consume()`. The token stays armed until consumed, so a request made
    before the supervisor starts waiting is never lost. Repeated requests
    while one is pending collapse into one.
    """

    def __init__(self) -> None:
        self._pending = False
        self._lock = threading.Lock()

    def request(self) -> None:
        """Records a pending restart. Never blocks on the supervisor."""
        with self._lock:
            if self._pending:
                log.debug("Restart already pending; coalescing request.")
                return
            self._pending = True
        log.info("Player restart requested.")

    def consume(self) -> bool:
        """
        Atomically drains the pending request.

        :return: True if a request was pending, False otherwise.
        """
        with self._lock:
            pending, self._pending = self._pending, False
            return pending

    def is_pending(self) -> bool:
        with self._lock:
            return self._pending
