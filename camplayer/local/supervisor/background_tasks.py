import os
import logging
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from camplayer.local.config import ConfigStore, Configuration
from camplayer.local.errors import ConfigError
from camplayer.local.restart_signal import RestartSignal

log = logging.getLogger(__name__)


class ConfigChangeHandler(FileSystemEventHandler):
    """
    A watchdog event handler that requests a player restart when the config
    file is edited by hand.

    Writes made through ConfigStore.save() are recognised and skipped, the
    caller of save() already requested the restart.
    """

    def __init__(self, store: ConfigStore, restart_signal: RestartSignal):
        super().__init__()
        self.store = store
        self.restart_signal = restart_signal
        self.config_path = os.path.realpath(store.path)
        self.last_seen: Optional[Configuration] = self._try_load()

    def _try_load(self) -> Optional[Configuration]:
        try:
            return self.store.load()
        except ConfigError as e:
            log.debug(f"Config watcher could not load config: {e}")
            return None

    def _touches_config(self, event) -> bool:
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(p and os.path.realpath(p) == self.config_path for p in paths)

    def on_any_event(self, event) -> None:
        """The main event handler method for watchdog, called on any file change."""
        if event.is_directory or event.event_type not in ("modified", "created", "moved"):
            return
        if not self._touches_config(event):
            return
        self.check_for_change()

    def check_for_change(self) -> bool:
        """
        Reloads the config and requests a restart if it changed externally.

        :return: True if a restart was requested.
        """
        current = self._try_load()
        if current is None or current == self.last_seen:
            return False

        self.last_seen = current
        if current == self.store.last_saved:
            log.debug("Config change was written by this process; ignoring.")
            return False

        log.info(f"Config file '{self.config_path}' changed on disk.")
        self.restart_signal.request()
        return True


def start_config_watcher(store: ConfigStore, restart_signal: RestartSignal) -> Optional[Observer]:
    """
    Starts a watchdog observer on the config file's directory.

    :return: The running observer, or None if the directory cannot be watched.
    """
    watch_dir = Path(store.path).resolve().parent
    if not watch_dir.is_dir():
        log.warning(f"Config directory '{watch_dir}' does not exist; file watching disabled.")
        return None

    observer = Observer()
    observer.schedule(ConfigChangeHandler(store, restart_signal), str(watch_dir), recursive=False)
    observer.daemon = True
    try:
        observer.start()
    except OSError as e:
        log.error(f"Failed to start config watcher on '{watch_dir}': {e}")
        return None
    log.info(f"Watching '{store.path}' for changes.")
    return observer


def stop_config_watcher(observer: Optional[Observer], timeout: float = 5.0) -> None:
    if observer is None:
        return
    observer.stop()
    observer.join(timeout=timeout)
    log.info("Config watcher stopped.")
