import logging
import sys

from camplayer import settings
from camplayer.log.handler import LokiHandler

LOG_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'


class MainFormatter(logging.Formatter):
    """The console formatter; keeps multi-line messages readable in the journal."""

    def __init__(self):
        super().__init__(LOG_FORMAT)

    def format(self, record):
        formatted_message = super().format(record)
        return formatted_message.replace("\n", "\n    ")


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the application.
    This sets up handlers for console and optionally Loki,
    clearing any previously configured handlers to prevent duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # Third-party libraries are chatty at DEBUG.
    for noisy in ("watchdog", "urllib3", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.INFO)

    # --- Loki Handler (conditional) ---
    if settings.LOKI_ENABLED:
        try:
            loki_handler = LokiHandler(url=settings.LOKI_URL, org_id=settings.LOKI_ORG_ID)
            loki_handler.setLevel(logging.INFO)  # Avoid spamming Loki with DEBUG logs
            loki_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root_logger.addHandler(loki_handler)
            root_logger.info(f"Grafana Loki logging handler initialized for {settings.LOKI_URL}.")
        except Exception as e:
            root_logger.error(f"Failed to initialize Grafana Loki logging handler: {e}")


def toggle_verbose_logging() -> bool:
    """
    Toggles verbose (DEBUG level) logging for the console handler.

    :return: The new verbose state.
    """
    settings.VERBOSE_LOGGING = not settings.VERBOSE_LOGGING
    new_level = logging.DEBUG if settings.VERBOSE_LOGGING else logging.INFO

    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(new_level)
    return settings.VERBOSE_LOGGING
