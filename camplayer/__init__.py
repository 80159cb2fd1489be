"""camplayer - keeps an RTSP player running on an always-on display."""

__version__ = "1.0.0"
