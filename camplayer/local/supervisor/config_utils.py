import sys
import shutil
import logging
from pathlib import Path
from typing import Optional

from camplayer import settings
from camplayer.local.config import ConfigStore
from camplayer.local.errors import ConfigError
from .process_utils import resolve_executable

log = logging.getLogger(__name__)


def check_configuration(store: ConfigStore) -> bool:
    """
    Validates the configuration file and that the player executable exists.

    :param store: The configuration store to check.
    :return: True if the player could be launched with this configuration.
    """
    log.info(f"Performing configuration validation of '{store.path}'...")
    try:
        cfg = store.load()
    except ConfigError as e:
        log.error(f"CONFIG CHECK FAILED: {e}")
        return False

    all_ok = True
    if cfg.rtsp_url:
        log.info(f"Config Check OK: RTSP_URL = {cfg.rtsp_url}")
    else:
        log.error("CONFIG CHECK FAILED: RTSP_URL is empty.")
        all_ok = False

    player = resolve_executable(cfg.vlc_path)
    if player is None:
        log.error(f"CONFIG CHECK FAILED: player '{cfg.vlc_path}' not found on PATH.")
        all_ok = False
    else:
        log.info(f"Config Check OK: Found player at '{player}'")

    log.info(f"Player arguments: {' '.join(cfg.extra_args)}")
    return all_ok


def render_service_unit(exec_start: Optional[str] = None) -> str:
    """Renders the systemd unit that runs the supervisor at boot."""
    if exec_start is None:
        exec_start = shutil.which("camplayer") or f"{sys.executable} -m camplayer run"
    return settings.SYSTEMD_UNIT_TEMPLATE.format(
        user=settings.SERVICE_USER,
        group=settings.SERVICE_GROUP,
        home=settings.SERVICE_HOME,
        exec_start=exec_start,
    )


def write_service_files(store: ConfigStore, unit_path: Path = settings.SERVICE_UNIT_PATH) -> bool:
    """
    Writes the systemd unit and seeds a default config file if none exists.

    An existing config file is left unchanged.

    :param store: The configuration store whose file may be seeded.
    :param unit_path: Destination of the unit file.
    :return: True on success, False if a file could not be written.
    """
    try:
        unit_path.parent.mkdir(parents=True, exist_ok=True)
        unit_path.write_text(render_service_unit())
        log.info(f"Service unit written to '{unit_path}'.")

        if store.path.exists():
            log.info(f"'{store.path}' already exists; leaving it unchanged.")
        else:
            store.path.parent.mkdir(parents=True, exist_ok=True)
            store.path.write_text(
                settings.DEFAULT_CONFIG_TEMPLATE.format(rtsp_url=settings.DEFAULT_RTSP_URL_EXAMPLE)
            )
            log.info(f"Default config file created at '{store.path}'.")
    except OSError as e:
        log.error(f"Failed to write service files: {e}")
        return False

    log.info("Run 'systemctl daemon-reload && systemctl enable --now camplayer-vlc' to start it.")
    return True
