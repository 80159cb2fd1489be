import json
import time
import logging
import requests
from typing import Any, Dict, Optional, Tuple

log = logging.getLogger(__name__)


def fetch_config_from_service(host: str, port: int, retries: int = 1, delay: float = 0.5) -> Optional[Dict[str, Any]]:
    """
    Fetches the live configuration from a running camplayer's web API.

    :param host: The host of the control surface.
    :param port: The port of the control surface.
    :param retries: Number of attempts before giving up.
    :param delay: Delay in seconds between retries.
    :return: A dictionary containing the configuration, or None on failure.
    """
    url = f"http://{host}:{port}/api/config"
    for attempt in range(retries):
        try:
            response = requests.get(url, timeout=2)
            response.raise_for_status()
            config_data = response.json()
            log.debug(f"Fetched configuration from '{url}'.")
            return config_data
        except json.JSONDecodeError as e:
            log.error(f"Failed to decode configuration JSON from camplayer API: {e}")
            return None  # Do not retry on malformed data
        except requests.exceptions.RequestException as e:
            log.debug(f"Could not reach camplayer API (attempt {attempt + 1}/{retries}): {e}")
            if attempt + 1 < retries:
                time.sleep(delay)
    return None


def post_rtsp_url_to_service(host: str, port: int, rtsp_url: str) -> Tuple[bool, str]:
    """
    Posts a new stream address to a running camplayer's web API.

    :param host: The host of the control surface.
    :param port: The port of the control surface.
    :param rtsp_url: The new stream address.
    :return: A tuple of (success, message). A connection failure is reported
             with the message "unreachable".
    """
    url = f"http://{host}:{port}/api/config"
    try:
        response = requests.post(url, json={"rtsp_url": rtsp_url}, timeout=5)
    except requests.exceptions.ConnectionError:
        return False, "unreachable"
    except requests.exceptions.RequestException as e:
        log.error(f"Failed to post configuration update: {e}")
        return False, str(e)

    try:
        body = response.json()
    except ValueError:
        body = {}
    if response.ok:
        log.info(f"Successfully posted RTSP URL update to '{url}'.")
        return True, body.get("message", "Configuration saved.")
    return False, body.get("detail", f"HTTP {response.status_code}")
