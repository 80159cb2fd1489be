import sys
import shutil
import signal
import psutil
import logging
import subprocess
from typing import Any, Dict, Optional

from camplayer import settings
from camplayer.local.config import Configuration
from camplayer.local.errors import AbnormalExitError, SpawnFailedError

log = logging.getLogger(__name__)


#* --- Process Creation ---
def _get_popen_kwargs() -> Dict[str, Any]:
    """Returns platform-specific keyword arguments for subprocess.Popen."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    # Own session so the player does not receive the terminal's SIGINT directly.
    return {"start_new_session": True}


def resolve_executable(name: str) -> Optional[str]:
    """Returns the full path of an executable name or path, or None if not found."""
    return shutil.which(name)


def launch_player(cfg: Configuration) -> subprocess.Popen:
    """
    Starts the player for the given configuration.

    The player inherits this process's stdout/stderr so its diagnostics end
    up in the same journal; stdin is not forwarded.

    :param cfg: The configuration to launch with.
    :return: The running Popen object.
    :raises SpawnFailedError: If the executable could not be started.
    """
    args = cfg.launch_args()
    log.info(f"Launching player: {' '.join(args)}")
    try:
        proc = subprocess.Popen(args, stdin=subprocess.DEVNULL, **_get_popen_kwargs())
    except (OSError, ValueError) as e:
        raise SpawnFailedError(cfg.vlc_path, str(e)) from e
    log.info(f"Player started with PID: {proc.pid}")
    return proc


#* --- Process Termination ---
def kill_process_tree(proc: subprocess.Popen, timeout: float = settings.KILL_TIMEOUT) -> Optional[int]:
    """
    Forcefully kills the player and any processes it spawned, then reaps it.

    :param proc: The player process.
    :param timeout: Seconds to wait for the processes to disappear.
    :return: The player's return code, or None if it could not be reaped.
    """
    if proc.poll() is not None:
        return proc.returncode

    targets = []
    try:
        parent = psutil.Process(proc.pid)
        targets = parent.children(recursive=True) + [parent]
    except psutil.NoSuchProcess:
        log.debug(f"Player {proc.pid} disappeared before it could be killed.")

    for target in targets:
        try:
            log.debug(f"Killing {target.pid}")
            target.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            log.warning(f"Access denied while killing process {target.pid}.")

    if targets:
        _, alive = psutil.wait_procs(targets, timeout=timeout)
        for stubborn in alive:
            log.error(f"Process {stubborn.pid} survived kill after {timeout}s.")

    try:
        return proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        log.error(f"Player {proc.pid} could not be reaped within {timeout}s.")
        return None


#* --- Exit Status ---
def exit_error(proc: subprocess.Popen) -> Optional[AbnormalExitError]:
    """Returns an AbnormalExitError describing the exit, or None for a clean exit."""
    code = proc.returncode
    if code is None or code == 0:
        return None
    signal_name = None
    if code < 0:
        try:
            signal_name = signal.Signals(-code).name
        except ValueError:
            signal_name = f"signal {-code}"
    return AbnormalExitError(proc.pid, code, signal_name)


def describe_exit(proc: subprocess.Popen) -> str:
    """Renders the player's exit status for the log."""
    if proc.returncode is None:
        return f"Player (PID {proc.pid}) has not exited"
    error = exit_error(proc)
    if error is None:
        return f"Player (PID {proc.pid}) exited cleanly"
    return str(error)
