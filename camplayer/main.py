import sys
import logging
from typing import List, Optional

from camplayer import settings
from camplayer.log.setup import setup_logging, toggle_verbose_logging
from camplayer.local.config import ConfigStore
import camplayer.local.console as console

log = logging.getLogger("console")


def parse_args(argv: List[str]):
    """
    Splits the command line into (command, args, config_path, verbose).

    `--verbose` and `--config PATH` may appear anywhere; the first remaining
    word is the command and defaults to 'run'.
    """
    args = list(argv)
    verbose = False
    config_path = settings.CONFIG_PATH

    if "--verbose" in args:
        verbose = True
        args.remove("--verbose")

    if "--config" in args:
        index = args.index("--config")
        if index + 1 >= len(args):
            raise ValueError("--config requires a path")
        config_path = args[index + 1]
        del args[index:index + 2]

    command = args[0].lower() if args else "run"
    return command, args[1:], config_path, verbose


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the camplayer executable."""
    setup_logging(logging.INFO)

    try:
        command, args, config_path, verbose = parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as e:
        log.error(str(e))
        console.print_help()
        return 1

    if verbose and not settings.VERBOSE_LOGGING:
        toggle_verbose_logging()

    try:
        return console.execute_command(command, args, ConfigStore(config_path))
    except KeyboardInterrupt:
        log.warning("Interrupted.")
        return 130
    except Exception as e:
        log.critical(f"An unexpected error occurred: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
