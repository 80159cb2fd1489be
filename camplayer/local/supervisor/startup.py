import logging
import threading
import setproctitle
from typing import Optional

from camplayer import settings
from camplayer.local.config import ConfigStore, Configuration
from camplayer.local.errors import ConfigError, FatalConfigError
from camplayer.local.restart_signal import RestartSignal
from camplayer.local.supervisor import background_tasks
from camplayer.local.supervisor.shutdown import install_signal_handlers, restore_signal_handlers
from camplayer.local.supervisor.supervisor import Supervisor
from camplayer.web import ControlSurface, create_app

log = logging.getLogger(__name__)


def validate_initial_config(store: ConfigStore) -> Optional[Configuration]:
    """
    Loads the configuration once before the supervisor starts.

    An unreadable or missing file is only a warning since the supervisor
    keeps retrying and the web UI can create it. A file without RTSP_URL is
    fatal: there is nothing to play.

    :param store: The configuration store.
    :return: The loaded configuration, or None if it could not be loaded.
    :raises FatalConfigError: If the file loads but RTSP_URL is empty.
    """
    try:
        cfg = store.load()
    except ConfigError as e:
        log.warning(f"Initial config load failed: {e} (will retry in loop)")
        return None

    if not cfg.rtsp_url:
        raise FatalConfigError(f"RTSP_URL is missing or empty in {store.path}")

    log.info(f"Configuration OK: {cfg.vlc_path} -> {cfg.rtsp_url}")
    return cfg


def run_service(store: ConfigStore) -> int:
    """
    Runs the supervisor and the web UI until SIGINT/SIGTERM.

    The store, the restart signal and the shutdown event are created once
    here and handed to every component.

    :param store: The configuration store.
    :return: The process exit status.
    """
    setproctitle.setproctitle(settings.SUPERVISOR_PROCESS_TITLE)
    log.info("=" * 20 + " camplayer starting " + "=" * 20)

    try:
        validate_initial_config(store)
    except FatalConfigError as e:
        log.critical(f"{e}. Refusing to start without a stream address.")
        return 2

    shutdown_event = threading.Event()
    restart_signal = RestartSignal()
    previous_handlers = install_signal_handlers(shutdown_event)

    observer = None
    if settings.CONFIG_WATCH_ENABLED:
        observer = background_tasks.start_config_watcher(store, restart_signal)

    surface = ControlSurface(create_app(store, restart_signal), shutdown_event)
    surface.start()

    try:
        Supervisor(store, restart_signal, shutdown_event).run()
    finally:
        shutdown_event.set()
        background_tasks.stop_config_watcher(observer)
        surface.join()
        restore_signal_handlers(previous_handlers)

    log.info("camplayer stopped.")
    return 0
