import time
import logging
import requests
from typing import Optional, Tuple

from yashell.local.config import effective_settings as config

log = logging.getLogger(__name__)


def health_url(host: Optional[str] = None, port: Optional[int] = None) -> str:
    host = host or config.SIDECAR_HOST
    port = port or config.SIDECAR_PORT
    return f"http://{host}:{port}{config.SIDECAR_HEALTH_PATH}"


def check_health(url: Optional[str] = None, timeout: Optional[float] = None) -> Tuple[bool, str]:
    """
    Performs one request against the sidecar's health endpoint.

    :param url: The health endpoint; defaults to the configured host and port.
    :param timeout: Request timeout in seconds.
    :return tuple: (healthy, detail).
    """
    url = url or health_url()
    timeout = timeout if timeout is not None else config.HEALTH_CHECK_REQUEST_TIMEOUT
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        return False, str(e)

    try:
        payload = response.json()
    except ValueError:
        return True, response.text.strip() or "ok"
    status = payload.get("status", "ok") if isinstance(payload, dict) else "ok"
    return True, str(status)


def wait_until_healthy(url: Optional[str] = None, retries: Optional[int] = None,
                       delay: Optional[float] = None) -> bool:
    """
    Polls the health endpoint until it answers or the retries run out.

    This never touches the supervisor lock, so it is safe to call while
    other callers query or stop the sidecar.

    :param url: The health endpoint; defaults to the configured host and port.
    :param retries: Number of attempts.
    :param delay: Delay in seconds between attempts.
    :return bool: True once the sidecar answered, False on timeout.
    """
    url = url or health_url()
    retries = retries if retries is not None else int(config.HEALTH_CHECK_RETRIES)
    delay = delay if delay is not None else config.HEALTH_CHECK_DELAY

    for attempt in range(retries):
        healthy, detail = check_health(url)
        if healthy:
            log.info(f"{config.SIDECAR_NAME} is healthy at '{url}' ({detail}).")
            return True
        log.debug(
            f"{config.SIDECAR_NAME} not ready (attempt {attempt + 1}/{retries}): {detail}. "
            f"Retrying in {delay}s..."
        )
        time.sleep(delay)

    log.warning(f"{config.SIDECAR_NAME} did not become healthy at '{url}' after {retries} attempts.")
    return False
