import logging

import pytest
import requests

from camplayer import settings
from camplayer.log.handler import loki
from camplayer.log.handler.loki import LokiHandler
from camplayer.log.setup import MainFormatter, toggle_verbose_logging


class FakeResponse:
    status_code = 204
    text = ""


@pytest.fixture
def posts(monkeypatch):
    sent = []

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.append((url, json, headers))
        return FakeResponse()

    monkeypatch.setattr(loki.requests, "post", fake_post)
    return sent


def _record(msg, level=logging.INFO):
    return logging.LogRecord("camplayer.test", level, __file__, 1, msg, None, None)


def test_loki_batches_until_flush(posts):
    handler = LokiHandler("http://loki:3100/", org_id="tenant", flush_interval=60, batch_size=100)
    try:
        handler.emit(_record("first"))
        handler.emit(_record("second", logging.WARNING))
        assert posts == []

        handler.flush()
    finally:
        handler.close()

    assert len(posts) == 1
    url, body, headers = posts[0]
    assert url == "http://loki:3100/loki/api/v1/push"
    assert headers["X-Scope-OrgID"] == "tenant"
    streams = body["streams"]
    assert [s["values"][0][1] for s in streams] == ["first", "second"]
    assert streams[1]["stream"]["level"] == "warning"


def test_loki_flushes_when_batch_is_full(posts):
    handler = LokiHandler("http://loki:3100", flush_interval=60, batch_size=2)
    try:
        handler.emit(_record("a"))
        handler.emit(_record("b"))
        assert len(posts) == 1
        assert "X-Scope-OrgID" not in posts[0][2]
    finally:
        handler.close()


def test_loki_close_flushes_remaining(posts):
    handler = LokiHandler("http://loki:3100", flush_interval=60, batch_size=100)
    handler.emit(_record("late"))

    handler.close()

    assert len(posts) == 1
    assert not handler.flush_thread.is_alive()


def test_loki_network_error_is_reported_not_raised(monkeypatch, capsys):
    def broken_post(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(loki.requests, "post", broken_post)
    handler = LokiHandler("http://loki:3100", flush_interval=60, batch_size=100)
    try:
        handler.emit(_record("lost"))
        handler.flush()
    finally:
        handler.close()

    assert "Failed to send 1 logs to Loki" in capsys.readouterr().err


def test_main_formatter_indents_continuation_lines():
    text = MainFormatter().format(_record("line one\nline two"))

    assert "line one\n    line two" in text


def test_toggle_verbose_logging(monkeypatch):
    monkeypatch.setattr(settings, "VERBOSE_LOGGING", False)
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    root = logging.getLogger()
    root.addHandler(handler)
    try:
        assert toggle_verbose_logging() is True
        assert handler.level == logging.DEBUG
        assert toggle_verbose_logging() is False
        assert handler.level == logging.INFO
    finally:
        root.removeHandler(handler)
