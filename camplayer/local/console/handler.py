import logging
from pathlib import Path
from typing import List

from camplayer import settings
from camplayer.local.config import ConfigStore, clean_rtsp_url
from camplayer.local.errors import ConfigError, ConfigValueError
from camplayer.local.config_client import fetch_config_from_service, post_rtsp_url_to_service
from camplayer.local.supervisor.config_utils import check_configuration, write_service_files

log = logging.getLogger(__name__)


def _config_show(store: ConfigStore) -> int:
    """
    Displays the current configuration. It fetches live data from the running
    service if reachable, otherwise it reads the config file directly.
    """
    print("\n--- Current camplayer Configuration ---")

    live_config = fetch_config_from_service(settings.WEB_CLIENT_HOST, settings.WEB_SERVER_PORT)
    if live_config is not None:
        config_source = f"Live from camplayer (http://{settings.WEB_CLIENT_HOST}:{settings.WEB_SERVER_PORT})"
        rtsp_url = live_config.get("rtsp_url", "")
        vlc_path = live_config.get("vlc_path", "")
        extra_args = live_config.get("extra_args", [])
    else:
        config_source = f"File {store.path} (service unreachable)"
        try:
            cfg = store.load()
        except ConfigError as e:
            print(f"(Source: {config_source})")
            print(f"Error: {e}\n")
            return 1
        rtsp_url, vlc_path, extra_args = cfg.rtsp_url, cfg.vlc_path, list(cfg.extra_args)

    print(f"(Source: {config_source})")
    print(f"  RTSP_URL       = {rtsp_url or 'N/A'}")
    print(f"  VLC_PATH       = {vlc_path}")
    print(f"  VLC_EXTRA_ARGS = {' '.join(extra_args)}")
    print("---------------------------------------\n")
    return 0


def _config_set(store: ConfigStore, args: List[str]) -> int:
    """Sets the stream address through the running service, or the file if it is down."""
    if not args:
        print("Usage: config set <RTSP_URL>")
        return 1

    try:
        rtsp_url = clean_rtsp_url(" ".join(args))
    except ConfigValueError as e:
        print(f"Failed to update configuration: {e}")
        return 1

    success, message = post_rtsp_url_to_service(settings.WEB_CLIENT_HOST, settings.WEB_SERVER_PORT, rtsp_url)
    if success:
        print(message)
        return 0
    if message != "unreachable":
        print(f"Failed to update configuration: {message}")
        return 1

    # Service is not running: write the file so the next start picks it up.
    try:
        store.update_rtsp_url(rtsp_url)
    except ConfigError as e:
        print(f"Failed to update configuration: {e}")
        return 1
    print(f"camplayer is not running; RTSP_URL written to {store.path}.")
    return 0


def _config_help() -> int:
    """Displays help for the config command."""
    print("\nConfig Command Help:")
    print("  config show                - Display the current configuration.")
    print("  config set RTSP_URL        - Change the stream address and restart the player.")
    print("  config help                - Show this help message.")
    print("Use 'check-config' to validate the config file and player path.")
    return 0


def handle_config_command(store: ConfigStore, args: List[str]) -> int:
    """
    Handles all sub-commands for the 'config' command.

    :param store: The configuration store.
    :param args: A list of string arguments following the 'config' command.
    :return: The exit status.
    """
    sub_command = args[0].lower() if args else "show"

    if sub_command == "show":
        return _config_show(store)
    if sub_command == "set":
        return _config_set(store, args[1:])
    if sub_command == "help":
        return _config_help()
    print(f"Unknown config sub-command: '{sub_command}'. Type 'config help' for available commands.")
    return 1


def handle_check_config(store: ConfigStore) -> int:
    return 0 if check_configuration(store) else 1


def handle_install_service(store: ConfigStore, args: List[str]) -> int:
    """Writes the systemd unit (optionally to a given path) and seeds the config file."""
    unit_path = Path(args[0]) if args else settings.SERVICE_UNIT_PATH
    return 0 if write_service_files(store, unit_path) else 1


def print_help() -> int:
    """Prints the main help text."""
    print("\nUsage: camplayer [--verbose] [--config PATH] <command> [args]")
    print("\nAvailable commands:")
    print("  run                    - Supervise the player and serve the web UI (default).")
    print("  config <cmd>           - Manage configuration. Use 'config help' for more details.")
    print("  check-config           - Validate the config file and the player executable.")
    print("  install-service [path] - Write the systemd unit and a default config file.")
    print("  help                   - Show this help message.")
    print()
    return 0
