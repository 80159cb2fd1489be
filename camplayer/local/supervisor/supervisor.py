import time
import logging
import threading
from enum import Enum
from subprocess import Popen
from typing import Callable, Optional

from camplayer import settings
from camplayer.local.config import ConfigStore, Configuration
from camplayer.local.errors import ConfigError, LaunchError
from camplayer.local.restart_signal import RestartSignal
from camplayer.local.supervisor import process_utils
from camplayer.local.supervisor.backoff import Backoff
from camplayer.local.supervisor.waiting import WakeReason, wait_first

log = logging.getLogger(__name__)


class SupervisorState(Enum):
    """Phases of the supervision loop. TERMINATING is terminal."""
    IDLE = "idle"
    LAUNCHING = "launching"
    RUNNING = "running"
    BACKOFF = "backoff"
    TERMINATING = "terminating"


class Supervisor:
    """
    Keeps the player process alive until shutdown is requested.

    The loop launches the player from the latest configuration, waits for it
    to exit, relaunches it with exponential backoff, and kills it for an
    immediate relaunch when the restart signal fires. The shutdown event is
    observed at every wait point and always wins over other events.
    """

    def __init__(
        self,
        store: ConfigStore,
        restart_signal: RestartSignal,
        shutdown_event: threading.Event,
        backoff: Optional[Backoff] = None,
        stable_run_seconds: float = settings.STABLE_RUN_SECONDS,
        launcher: Callable[[Configuration], Popen] = process_utils.launch_player,
        waiter: Callable[..., WakeReason] = wait_first,
    ) -> None:
        self.store = store
        self.restart_signal = restart_signal
        self.shutdown_event = shutdown_event
        self.backoff = backoff or Backoff()
        self.stable_run_seconds = stable_run_seconds
        self.launcher = launcher
        self.waiter = waiter

        self.state = SupervisorState.IDLE
        self.process: Optional[Popen] = None
        self.started_at: Optional[float] = None

    def _set_state(self, state: SupervisorState) -> None:
        if state is not self.state:
            log.debug(f"Supervisor state: {self.state.name} -> {state.name}")
            self.state = state

    def run(self) -> None:
        """Runs the supervision loop. Returns only after a shutdown request."""
        log.info("Supervisor started. Monitoring player process.")
        next_state = SupervisorState.LAUNCHING

        while next_state is not SupervisorState.TERMINATING:
            if self.shutdown_event.is_set():
                log.info("Shutdown requested, exiting supervisor loop.")
                break

            self._set_state(next_state)
            if next_state is SupervisorState.LAUNCHING:
                next_state = self._launch()
            elif next_state is SupervisorState.RUNNING:
                next_state = self._supervise_running()
            elif next_state is SupervisorState.BACKOFF:
                next_state = self._wait_backoff()

        self._set_state(SupervisorState.TERMINATING)
        self._stop_player()
        log.info("Supervisor stopped.")

    #* --- State handlers ---
    def _launch(self) -> SupervisorState:
        try:
            cfg = self.store.load()
        except ConfigError as e:
            log.error(f"Failed to load config: {e}")
            return SupervisorState.BACKOFF

        if not cfg.rtsp_url:
            log.warning(f"RTSP_URL is empty in {self.store.path}")
            return SupervisorState.BACKOFF

        try:
            self.process = self.launcher(cfg)
        except LaunchError as e:
            log.error(f"Failed to start player: {e}")
            return SupervisorState.BACKOFF

        self.started_at = time.monotonic()
        return SupervisorState.RUNNING

    def _supervise_running(self) -> SupervisorState:
        confirmed = False
        while True:
            timeout = None
            if not confirmed:
                timeout = max(0.0, self.stable_run_seconds - (time.monotonic() - self.started_at))

            reason = self.waiter(
                self.shutdown_event, self.restart_signal, process=self.process, timeout=timeout
            )

            if reason is WakeReason.TIMER:
                confirmed = True
                self.backoff.reset()
                log.info(f"Player (PID {self.process.pid}) is up; backoff reset to {self.backoff.base:g}s.")
                continue

            if reason is WakeReason.SHUTDOWN:
                log.info("Shutdown requested, killing player.")
                return SupervisorState.TERMINATING

            if reason is WakeReason.RESTART:
                log.info("Restart requested, killing player.")
                self._stop_player()
                return SupervisorState.LAUNCHING

            self._log_exit(self.process)
            self.process = None
            return SupervisorState.BACKOFF

    def _wait_backoff(self) -> SupervisorState:
        delay = self.backoff.next_delay()
        log.info(f"Restarting player in {delay:g}s...")

        reason = self.waiter(self.shutdown_event, self.restart_signal, timeout=delay)
        if reason is WakeReason.SHUTDOWN:
            log.info("Shutdown during backoff.")
            return SupervisorState.TERMINATING
        if reason is WakeReason.RESTART:
            log.info("Restart requested during backoff.")
        return SupervisorState.LAUNCHING

    #* --- Helpers ---
    def _stop_player(self) -> None:
        proc, self.process = self.process, None
        if proc is None:
            return
        process_utils.kill_process_tree(proc)
        log.info(f"Player stopped. {process_utils.describe_exit(proc)}")

    @staticmethod
    def _log_exit(proc: Popen) -> None:
        error = process_utils.exit_error(proc)
        if error is None:
            log.info(process_utils.describe_exit(proc))
        else:
            log.warning(str(error))
