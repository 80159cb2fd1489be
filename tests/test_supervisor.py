import sys
import time
import threading

from camplayer.local.config import Configuration
from camplayer.local.supervisor import process_utils
from camplayer.local.supervisor.backoff import Backoff
from camplayer.local.supervisor.supervisor import Supervisor, SupervisorState
from camplayer.local.supervisor.waiting import WakeReason, wait_first

from conftest import EXIT_FAIL_ARGS, SLEEP_ARGS, write_config


class ScriptedWaiter:
    """
    Stands in for wait_first without sleeping.

    Running players are waited on until they exit. Backoff waits are recorded
    and return TIMER at once; after `limit` of them shutdown is requested.
    """

    def __init__(self, limit, on_backoff=None, report_stable=False):
        self.limit = limit
        self.on_backoff = on_backoff
        self.report_stable = report_stable
        self.backoff_waits = []

    def __call__(self, shutdown_event, restart_signal, process=None, timeout=None):
        if shutdown_event.is_set():
            return WakeReason.SHUTDOWN
        if process is not None:
            if self.report_stable and timeout is not None:
                return WakeReason.TIMER
            process.wait(timeout=30)
            return WakeReason.EXITED

        self.backoff_waits.append(timeout)
        if self.on_backoff is not None:
            self.on_backoff(len(self.backoff_waits))
        if restart_signal.consume():
            return WakeReason.RESTART
        if len(self.backoff_waits) >= self.limit:
            shutdown_event.set()
            return WakeReason.SHUTDOWN
        return WakeReason.TIMER


class RecordingLauncher:
    def __init__(self, on_launch=None):
        self.launched = []
        self.on_launch = on_launch

    def __call__(self, cfg):
        proc = process_utils.launch_player(cfg)
        self.launched.append((cfg, proc))
        if self.on_launch is not None:
            self.on_launch(len(self.launched))
        return proc


def run_in_thread(supervisor):
    thread = threading.Thread(target=supervisor.run, daemon=True)
    thread.start()
    return thread


def wait_until(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


def test_immediate_exits_follow_backoff_sequence(store, config_path, restart_signal, shutdown_event):
    write_config(config_path)
    waiter = ScriptedWaiter(limit=7)
    launcher = RecordingLauncher()

    Supervisor(store, restart_signal, shutdown_event, stable_run_seconds=60,
               launcher=launcher, waiter=waiter).run()

    assert waiter.backoff_waits[:6] == [2, 4, 8, 16, 30, 30]
    assert len(launcher.launched) == 7
    assert all(proc.returncode == 0 for _, proc in launcher.launched)


def test_abnormal_exit_is_logged_and_backed_off(store, config_path, restart_signal, shutdown_event, caplog):
    write_config(config_path, extra_args=EXIT_FAIL_ARGS)
    waiter = ScriptedWaiter(limit=1)

    Supervisor(store, restart_signal, shutdown_event, stable_run_seconds=60, waiter=waiter).run()

    assert waiter.backoff_waits == [2]
    assert "exit status 3" in caplog.text


def test_stable_run_resets_backoff(store, config_path, restart_signal, shutdown_event):
    write_config(config_path)
    backoff = Backoff()
    backoff.current = 16
    waiter = ScriptedWaiter(limit=1, report_stable=True)

    Supervisor(store, restart_signal, shutdown_event, backoff=backoff, waiter=waiter).run()

    assert waiter.backoff_waits == [2]


def test_missing_config_backs_off_without_launching(store, restart_signal, shutdown_event):
    waiter = ScriptedWaiter(limit=3)
    launcher = RecordingLauncher()

    Supervisor(store, restart_signal, shutdown_event, launcher=launcher, waiter=waiter).run()

    assert launcher.launched == []
    assert waiter.backoff_waits == [2, 4, 8]


def test_empty_rtsp_url_backs_off_without_launching(store, config_path, restart_signal, shutdown_event):
    write_config(config_path, rtsp_url="")
    waiter = ScriptedWaiter(limit=2)
    launcher = RecordingLauncher()

    Supervisor(store, restart_signal, shutdown_event, launcher=launcher, waiter=waiter).run()

    assert launcher.launched == []
    assert waiter.backoff_waits == [2, 4]


def test_spawn_failure_backs_off(store, config_path, restart_signal, shutdown_event, tmp_path, caplog):
    write_config(config_path, vlc_path=str(tmp_path / "no-such-player"))
    waiter = ScriptedWaiter(limit=2)

    supervisor = Supervisor(store, restart_signal, shutdown_event, waiter=waiter)
    supervisor.run()

    assert waiter.backoff_waits == [2, 4]
    assert supervisor.process is None
    assert "Failed to start player" in caplog.text


def test_restart_during_backoff_relaunches_with_latest_config(store, config_path, restart_signal,
                                                              shutdown_event):
    def fix_config(count):
        if count == 1:
            store.save(Configuration(rtsp_url="rtsp://cam/fixed", vlc_path=sys.executable,
                                     extra_args=("-c", "pass")))
            restart_signal.request()

    def stop_after_first_launch(count):
        shutdown_event.set()

    waiter = ScriptedWaiter(limit=5, on_backoff=fix_config)
    launcher = RecordingLauncher(on_launch=stop_after_first_launch)

    Supervisor(store, restart_signal, shutdown_event, launcher=launcher, waiter=waiter).run()

    # Exactly one backoff wait: the restart cut it short.
    assert waiter.backoff_waits == [2]
    assert [cfg.rtsp_url for cfg, _ in launcher.launched] == ["rtsp://cam/fixed"]
    assert launcher.launched[0][1].poll() is not None


def test_restart_kills_running_player_and_uses_new_config(store, config_path, restart_signal,
                                                          shutdown_event):
    write_config(config_path, extra_args=SLEEP_ARGS)
    launcher = RecordingLauncher()
    supervisor = Supervisor(store, restart_signal, shutdown_event, launcher=launcher)
    thread = run_in_thread(supervisor)
    try:
        assert wait_until(lambda: supervisor.state is SupervisorState.RUNNING and launcher.launched)

        store.save(store.load().with_rtsp_url("rtsp://cam/2"))
        restart_signal.request()

        assert wait_until(lambda: len(launcher.launched) == 2)
        first_proc = launcher.launched[0][1]
        assert first_proc.poll() is not None
        assert launcher.launched[1][0].rtsp_url == "rtsp://cam/2"
    finally:
        shutdown_event.set()
        thread.join(timeout=15)

    assert not thread.is_alive()
    assert all(proc.poll() is not None for _, proc in launcher.launched)


def test_shutdown_kills_running_player(store, config_path, restart_signal, shutdown_event):
    write_config(config_path, extra_args=SLEEP_ARGS)
    launcher = RecordingLauncher()
    supervisor = Supervisor(store, restart_signal, shutdown_event, launcher=launcher)
    thread = run_in_thread(supervisor)

    assert wait_until(lambda: supervisor.state is SupervisorState.RUNNING and launcher.launched)
    proc = launcher.launched[0][1]
    shutdown_event.set()
    thread.join(timeout=15)

    assert not thread.is_alive()
    assert proc.poll() is not None
    assert supervisor.state is SupervisorState.TERMINATING
    assert supervisor.process is None


def test_shutdown_during_backoff_returns_promptly(store, restart_signal, shutdown_event):
    supervisor = Supervisor(store, restart_signal, shutdown_event, backoff=Backoff(base=30, maximum=30))
    thread = run_in_thread(supervisor)

    assert wait_until(lambda: supervisor.state is SupervisorState.BACKOFF)
    start = time.monotonic()
    shutdown_event.set()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert time.monotonic() - start < 5


def test_shutdown_before_run_never_launches(store, config_path, restart_signal, shutdown_event):
    write_config(config_path)
    launcher = RecordingLauncher()
    shutdown_event.set()

    supervisor = Supervisor(store, restart_signal, shutdown_event, launcher=launcher)
    supervisor.run()

    assert launcher.launched == []
    assert supervisor.state is SupervisorState.TERMINATING


def test_defaults_use_real_waiter_and_launcher(store, restart_signal, shutdown_event):
    supervisor = Supervisor(store, restart_signal, shutdown_event)

    assert supervisor.state is SupervisorState.IDLE
    assert supervisor.waiter is wait_first
    assert supervisor.launcher is process_utils.launch_player
    assert supervisor.backoff.current == 2
