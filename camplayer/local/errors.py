"""
Exception types raised by the camplayer core.

Configuration errors are recoverable inside the supervisor loop, launch and
process errors always are. Only a missing stream address at startup is fatal.
"""
from typing import Optional


class CamplayerError(Exception):
    """Base class for all camplayer errors."""


#* --- Configuration ---
class ConfigError(CamplayerError):
    """Raised when the configuration file cannot be loaded or saved."""


class ConfigNotFoundError(ConfigError):
    """The configuration file does not exist."""


class ConfigUnreadableError(ConfigError):
    """An I/O error occurred while reading or writing the configuration file."""


class ConfigParseError(ConfigError):
    """The configuration file could not be scanned at all."""


class ConfigValueError(ConfigError):
    """A value cannot be stored in the configuration file as given."""


class FatalConfigError(ConfigError):
    """The configuration loads but cannot drive the player at all."""


#* --- Player process ---
class LaunchError(CamplayerError):
    """Raised when the player process cannot be started."""


class SpawnFailedError(LaunchError):
    """The operating system refused to spawn the player executable."""

    def __init__(self, executable: str, reason: str):
        super().__init__(f"Failed to spawn '{executable}': {reason}")
        self.executable = executable
        self.reason = reason


class ProcessError(CamplayerError):
    """Informational errors about a player process that already ran."""


class AbnormalExitError(ProcessError):
    """The player exited with a non-zero status or was killed by a signal."""

    def __init__(self, pid: int, returncode: int, signal_name: Optional[str] = None):
        if signal_name:
            detail = f"killed by {signal_name}"
        else:
            detail = f"exit status {returncode}"
        super().__init__(f"Player (PID {pid}) terminated abnormally: {detail}")
        self.pid = pid
        self.returncode = returncode
        self.signal_name = signal_name
