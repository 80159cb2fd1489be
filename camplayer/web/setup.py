import json
import asyncio
import logging
from html import escape
from typing import Tuple

from starlette.routing import Route
from starlette.requests import Request
from starlette.middleware import Middleware
from starlette.applications import Starlette
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from camplayer import settings
from camplayer.local.config import ConfigStore
from camplayer.local.errors import ConfigError, ConfigNotFoundError, ConfigValueError
from camplayer.local.restart_signal import RestartSignal
from camplayer.web.middleware import SecurityHeadersMiddleware

log = logging.getLogger(__name__)


# --- Helper Functions ---
def render_page(store: ConfigStore, rtsp_url: str = "", message: str = "", error: str = "",
                status_code: int = 200) -> HTMLResponse:
    """Renders the configuration form."""
    banner = ""
    if message:
        banner += f'<div class="msg">{escape(message)}</div>'
    if error:
        banner += f'<div class="error">{escape(error)}</div>'
    html = settings.PAGE_TEMPLATE.format(
        banner=banner,
        rtsp_url=escape(rtsp_url, quote=True),
        config_path=escape(str(store.path)),
    )
    return HTMLResponse(html, status_code=status_code)


def apply_rtsp_url(store: ConfigStore, restart_signal: RestartSignal, rtsp_url: str) -> Tuple[int, str]:
    """
    Saves a new stream address and asks the supervisor to restart the player.

    The existing player path and arguments are kept. Nothing is saved and no
    restart is requested when the address is rejected or the save fails.

    :return: A tuple of (HTTP status code, message).
    """
    try:
        store.update_rtsp_url(rtsp_url)
    except ConfigValueError as e:
        return 400, str(e)
    except ConfigError as e:
        log.error(f"Failed to save config: {e}")
        return 500, f"Failed to save config: {e}"

    restart_signal.request()
    return 200, "Configuration saved. VLC is restarting..."


# --- Request Handlers ---
async def run_blocking(func, *args):
    """Runs a short blocking store call off the event loop."""
    return await asyncio.get_running_loop().run_in_executor(None, func, *args)


async def index(request: Request) -> Response:
    """Shows the form with the current stream address."""
    store: ConfigStore = request.app.state.store
    try:
        cfg = await run_blocking(store.load)
    except ConfigError as e:
        return render_page(store, error=f"Failed to load config: {e}")
    return render_page(store, rtsp_url=cfg.rtsp_url)


async def update(request: Request) -> Response:
    """Handles the form submission."""
    if request.method != "POST":
        return RedirectResponse("/", status_code=303)

    store: ConfigStore = request.app.state.store
    form = await request.form()
    rtsp_url = str(form.get("rtsp_url", "")).strip()

    status_code, message = await run_blocking(
        apply_rtsp_url, store, request.app.state.restart_signal, rtsp_url
    )
    if status_code == 200:
        log.info(f"RTSP URL updated from web UI by {request.client.host if request.client else 'unknown'}")
        return render_page(store, rtsp_url=rtsp_url, message=message)
    return render_page(store, rtsp_url=rtsp_url, error=message, status_code=status_code)


async def get_config(request: Request) -> Response:
    """JSON view of the current configuration."""
    store: ConfigStore = request.app.state.store
    try:
        cfg = await run_blocking(store.load)
    except ConfigNotFoundError as e:
        return JSONResponse({"error": "Not Found", "detail": str(e)}, status_code=404)
    except ConfigError as e:
        return JSONResponse({"error": "Failed to load config", "detail": str(e)}, status_code=500)

    return JSONResponse({
        "rtsp_url": cfg.rtsp_url,
        "vlc_path": cfg.vlc_path,
        "extra_args": list(cfg.extra_args),
        "config_path": str(store.path),
    })


async def post_config(request: Request) -> Response:
    """JSON equivalent of the form: {"rtsp_url": "..."}."""
    try:
        payload = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse({"error": "Bad Request", "detail": "Invalid JSON"}, status_code=400)

    rtsp_url = payload.get("rtsp_url") if isinstance(payload, dict) else None
    if not isinstance(rtsp_url, str):
        return JSONResponse({"error": "Bad Request", "detail": "'rtsp_url' is required."}, status_code=400)

    status_code, message = await run_blocking(
        apply_rtsp_url, request.app.state.store, request.app.state.restart_signal, rtsp_url
    )
    if status_code == 200:
        return JSONResponse({"status": "success", "message": message})
    return JSONResponse({"error": "Update Failed", "detail": message}, status_code=status_code)


# --- Application Instance Creation ---
def create_app(store: ConfigStore, restart_signal: RestartSignal, debug: bool = False) -> Starlette:
    """
    Builds the control surface application around the shared handles.

    :param store: The configuration store shared with the supervisor.
    :param restart_signal: The restart signal drained by the supervisor.
    :return: The Starlette application to be served by Hypercorn.
    """
    routes = [
        Route("/", endpoint=index, methods=["GET"]),
        Route("/update", endpoint=update, methods=["GET", "POST"]),
        Route("/api/config", endpoint=get_config, methods=["GET"]),
        Route("/api/config", endpoint=post_config, methods=["POST"]),
    ]
    middleware = [
        Middleware(SecurityHeadersMiddleware),
    ]

    app = Starlette(debug=debug, routes=routes, middleware=middleware)
    app.state.store = store
    app.state.restart_signal = restart_signal
    log.debug("Control surface application configured.")
    return app
