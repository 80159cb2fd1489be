import asyncio
import logging
import threading
from typing import Optional

from hypercorn.asyncio import serve
from hypercorn.config import Config
from starlette.applications import Starlette

from camplayer import settings

log = logging.getLogger(__name__)


class ControlSurface:
    """
    Serves the control surface app with Hypercorn on a background thread.

    The server stops accepting connections once the shared shutdown event is
    set and gives in-flight requests `graceful_timeout` seconds to finish.
    """

    def __init__(
        self,
        app: Starlette,
        shutdown_event: threading.Event,
        host: str = settings.WEB_SERVER_HOST,
        port: int = settings.WEB_SERVER_PORT,
        graceful_timeout: float = settings.GRACEFUL_SHUTDOWN_TIMEOUT,
    ) -> None:
        self.app = app
        self.shutdown_event = shutdown_event
        self.host = host
        self.port = port
        self.graceful_timeout = graceful_timeout
        self._thread: Optional[threading.Thread] = None

    def build_config(self) -> Config:
        config = Config()
        config.bind = [f"{self.host}:{self.port}"]
        config.graceful_timeout = self.graceful_timeout
        # Route Hypercorn's own logs through the application's handlers.
        config.accesslog = logging.getLogger("hypercorn.access")
        config.errorlog = logging.getLogger("hypercorn.error")
        return config

    async def _wait_for_shutdown(self) -> None:
        while not self.shutdown_event.is_set():
            await asyncio.sleep(settings.SUPERVISOR_POLL_INTERVAL * 2)
        log.info("Web server shutting down...")

    def serve(self) -> None:
        """Runs the server until shutdown. Errors are logged, never raised."""
        log.info(f"Web UI listening on http://{self.host}:{self.port}")
        try:
            asyncio.run(serve(self.app, self.build_config(), shutdown_trigger=self._wait_for_shutdown))
        except Exception as e:
            log.error(f"Web server error: {e}", exc_info=True)
        else:
            log.info("Web server stopped.")

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.serve, daemon=True, name="ControlSurfaceThread")
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Waits for the server thread to finish.

        :return: True if the thread has stopped.
        """
        if self._thread is None:
            return True
        if timeout is None:
            timeout = self.graceful_timeout + 1
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            log.warning(f"Web server did not stop within {timeout:g}s; abandoning it.")
            return False
        return True
