import sys
import threading

import pytest

from camplayer.local.config import ConfigStore
from camplayer.local.restart_signal import RestartSignal

# Player stand-ins built from the running interpreter. Arguments must not
# contain whitespace since VLC_EXTRA_ARGS is split on it.
EXIT_NOW_ARGS = "-c pass"
EXIT_FAIL_ARGS = "-c __import__('sys').exit(3)"
SLEEP_ARGS = "-c __import__('time').sleep(60)"


def write_config(path, rtsp_url="rtsp://cam/1", vlc_path=sys.executable, extra_args=EXIT_NOW_ARGS):
    lines = []
    if rtsp_url is not None:
        lines.append(f"RTSP_URL={rtsp_url}")
    if vlc_path is not None:
        lines.append(f"VLC_PATH={vlc_path}")
    if extra_args is not None:
        lines.append(f"VLC_EXTRA_ARGS={extra_args}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "camplayer-vlc.conf"


@pytest.fixture
def store(config_path):
    return ConfigStore(config_path)


@pytest.fixture
def restart_signal():
    return RestartSignal()


@pytest.fixture
def shutdown_event():
    event = threading.Event()
    yield event
    event.set()
