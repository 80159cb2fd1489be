import logging
import threading
from pathlib import Path
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from camplayer import settings
from camplayer.local.errors import (ConfigError, ConfigNotFoundError, ConfigParseError, ConfigUnreadableError,
                                    ConfigValueError)

log = logging.getLogger(__name__)

# Keys written by save(), in file order.
KEY_RTSP_URL = "RTSP_URL"
KEY_VLC_PATH = "VLC_PATH"
KEY_VLC_EXTRA_ARGS = "VLC_EXTRA_ARGS"
KNOWN_KEYS = (KEY_RTSP_URL, KEY_VLC_PATH, KEY_VLC_EXTRA_ARGS)


def clean_rtsp_url(rtsp_url: str) -> str:
    """
    Strips a stream address submitted by a user and checks it can be stored.

    :param rtsp_url: The address as typed.
    :return: The stripped address.
    :raises ConfigValueError: If the address is empty or spans several lines.
    """
    rtsp_url = rtsp_url.strip()
    if not rtsp_url:
        raise ConfigValueError("RTSP URL cannot be empty")
    if "\r" in rtsp_url or "\n" in rtsp_url:
        raise ConfigValueError("RTSP URL cannot contain line breaks")
    return rtsp_url


@dataclass(frozen=True)
class Configuration:
    """
    The desired running state of the player process.

    Instances are immutable. Empty optional fields mean "unset"; the
    ConfigStore fills in defaults when it loads a file.
    """
    rtsp_url: str = ""
    vlc_path: str = ""
    extra_args: Tuple[str, ...] = ()

    def launch_args(self) -> List[str]:
        """Returns the full argv used to start the player."""
        return [self.vlc_path, *self.extra_args, self.rtsp_url]

    def with_rtsp_url(self, rtsp_url: str) -> "Configuration":
        return replace(self, rtsp_url=rtsp_url)


class ConfigStore:
    """
    Thread-safe access to the flat `KEY=value` configuration file.

    This is the only place that knows the default values. `load()` and
    `save()` are serialized by a single lock so a reader never sees a
    partially written file.
    """

    def __init__(self, path: Path = settings.CONFIG_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        # The last configuration written by save(), with defaults applied.
        self.last_saved: Optional[Configuration] = None

    @staticmethod
    def apply_defaults(cfg: Configuration) -> Configuration:
        """Fills unset optional fields with the built-in defaults."""
        return replace(
            cfg,
            vlc_path=cfg.vlc_path or settings.DEFAULT_VLC_PATH,
            extra_args=tuple(cfg.extra_args) or tuple(settings.DEFAULT_VLC_EXTRA_ARGS),
        )

    def load(self) -> Configuration:
        """
        Reads and parses the configuration file.

        Malformed lines and unknown keys are skipped with a warning.

        :return: A fresh Configuration with defaults applied.
        :raises ConfigNotFoundError: If the file does not exist.
        :raises ConfigUnreadableError: On any other I/O failure.
        :raises ConfigParseError: If the file cannot be decoded.
        """
        with self._lock:
            try:
                with self.path.open("r", encoding="utf-8") as f:
                    values = self._parse_lines(f)
            except FileNotFoundError as e:
                raise ConfigNotFoundError(f"Config file '{self.path}' does not exist") from e
            except UnicodeDecodeError as e:
                raise ConfigParseError(f"Config file '{self.path}' could not be decoded: {e}") from e
            except OSError as e:
                raise ConfigUnreadableError(f"Failed to read config file '{self.path}': {e}") from e

        cfg = Configuration(
            rtsp_url=values.get(KEY_RTSP_URL, ""),
            vlc_path=values.get(KEY_VLC_PATH, ""),
            extra_args=tuple(values.get(KEY_VLC_EXTRA_ARGS, "").split()),
        )
        return self.apply_defaults(cfg)

    def _parse_lines(self, lines) -> dict:
        values = {}
        for line_no, raw_line in enumerate(lines, start=1):
            line = raw_line.strip()

            # Skip comments and blank lines
            if not line or line.startswith("#"):
                continue

            key, sep, value = line.partition("=")
            if not sep:
                log.warning(f"Ignoring malformed config line {line_no} in '{self.path}': {line}")
                continue

            key = key.strip()
            if key not in KNOWN_KEYS:
                log.warning(f"Ignoring unknown config key '{key}' on line {line_no} in '{self.path}'")
                continue
            values[key] = value.strip()
        return values

    def save(self, cfg: Configuration) -> None:
        """
        Overwrites the configuration file with the non-empty known keys.

        Comments and unknown keys from the previous file are not preserved.
        The file is rewritten in place since the service user may own the
        file but not its directory.

        :param cfg: The configuration to persist.
        :raises ConfigValueError: If a value contains a line break.
        :raises ConfigUnreadableError: If the file cannot be written.
        """
        values = (
            (KEY_RTSP_URL, cfg.rtsp_url),
            (KEY_VLC_PATH, cfg.vlc_path),
            (KEY_VLC_EXTRA_ARGS, " ".join(cfg.extra_args)),
        )
        lines = []
        for key, value in values:
            if not value:
                continue
            # One entry per line.
            if "\r" in value or "\n" in value:
                raise ConfigValueError(f"{key} cannot contain line breaks")
            lines.append(f"{key}={value}\n")

        with self._lock:
            try:
                with self.path.open("w", encoding="utf-8") as f:
                    f.writelines(lines)
            except OSError as e:
                raise ConfigUnreadableError(f"Failed to write config file '{self.path}': {e}") from e
            self.last_saved = self.apply_defaults(cfg)
        log.info(f"Configuration saved to {self.path}")

    def update_rtsp_url(self, rtsp_url: str) -> Configuration:
        """
        Replaces the stream address and keeps the stored player settings.

        The address is checked before the file is touched. If the current
        file cannot be loaded the defaults are used for the other fields.

        :param rtsp_url: The new stream address, as submitted.
        :return: The saved configuration, with defaults applied.
        :raises ConfigValueError: If the address is empty or spans several lines.
        :raises ConfigUnreadableError: If the file cannot be written.
        """
        rtsp_url = clean_rtsp_url(rtsp_url)
        try:
            cfg = self.load()
        except ConfigError as e:
            log.warning(f"Could not load existing config before saving, starting from defaults: {e}")
            cfg = Configuration()

        updated = cfg.with_rtsp_url(rtsp_url)
        self.save(updated)
        return self.apply_defaults(updated)
