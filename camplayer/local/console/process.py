import logging
from typing import List

from camplayer.local.config import ConfigStore
from camplayer.local.supervisor.startup import run_service
from camplayer.local.console.handler import (handle_check_config, handle_config_command,
                                             handle_install_service, print_help)

log = logging.getLogger(__name__)


def execute_command(command: str, args: List[str], store: ConfigStore) -> int:
    """
    Executes a single command.

    :param command: The main command string (e.g., 'run', 'config').
    :param args: A list of arguments for the command.
    :param store: The configuration store the command operates on.
    :return int: The process exit status.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "run": lambda: run_service(store),
        "config": lambda: handle_config_command(store, args),
        "check-config": lambda: handle_check_config(store),
        "install-service": lambda: handle_install_service(store, args),
        "help": print_help,
    }

    if command not in command_map:
        log.info(f"Unknown command: '{command}'. Type 'help' for a list of commands.")
        return 1
    return command_map[command]()
