import sys
import time
import subprocess

import psutil
import pytest

from camplayer.local.config import Configuration
from camplayer.local.errors import AbnormalExitError, SpawnFailedError
from camplayer.local.supervisor import process_utils


def _config(*extra_args, vlc_path=sys.executable):
    return Configuration(rtsp_url="rtsp://cam/1", vlc_path=vlc_path, extra_args=extra_args)


def test_launch_appends_rtsp_url_as_last_argument():
    cfg = _config("-c", "import sys; sys.exit(0 if sys.argv[-1] == 'rtsp://cam/1' else 5)")

    proc = process_utils.launch_player(cfg)

    assert proc.wait(timeout=30) == 0


def test_launch_of_missing_executable_raises(tmp_path):
    cfg = _config(vlc_path=str(tmp_path / "missing-player"))

    with pytest.raises(SpawnFailedError):
        process_utils.launch_player(cfg)


def _is_dead(proc):
    try:
        proc.wait(timeout=10)
        return True
    except psutil.NoSuchProcess:
        return True
    except psutil.TimeoutExpired:
        # Orphans are only reaped by init; a zombie is already dead.
        return proc.status() == psutil.STATUS_ZOMBIE


def test_kill_process_tree_kills_player_and_children():
    script = (
        "import subprocess, sys, time;"
        "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)']);"
        "time.sleep(60)"
    )
    proc = process_utils.launch_player(_config("-c", script))
    parent = psutil.Process(proc.pid)
    children = []
    for _ in range(200):
        children = parent.children(recursive=True)
        if children:
            break
        time.sleep(0.05)

    returncode = process_utils.kill_process_tree(proc, timeout=10)

    assert returncode is not None
    assert proc.poll() is not None
    assert children
    for child in children:
        assert _is_dead(child)


def test_kill_process_tree_on_exited_player_returns_code():
    proc = subprocess.Popen([sys.executable, "-c", "raise SystemExit(4)"])
    proc.wait()

    assert process_utils.kill_process_tree(proc) == 4


def test_clean_exit_is_not_an_error():
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()

    assert process_utils.exit_error(proc) is None
    assert "exited cleanly" in process_utils.describe_exit(proc)


def test_nonzero_exit_is_an_error():
    proc = subprocess.Popen([sys.executable, "-c", "raise SystemExit(7)"])
    proc.wait()

    error = process_utils.exit_error(proc)

    assert isinstance(error, AbnormalExitError)
    assert error.returncode == 7
    assert "exit status 7" in process_utils.describe_exit(proc)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
def test_killed_player_reports_signal_name():
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    proc.kill()
    proc.wait()

    error = process_utils.exit_error(proc)

    assert error.signal_name == "SIGKILL"
    assert "killed by SIGKILL" in str(error)


def test_running_player_has_not_exited():
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    try:
        assert process_utils.exit_error(proc) is None
        assert "has not exited" in process_utils.describe_exit(proc)
    finally:
        proc.kill()
        proc.wait()
