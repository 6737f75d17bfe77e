"""Post-deploy health check of the restarted service."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests
import urllib3

from .decorators import retry
from .exceptions import HealthCheckError

logger = logging.getLogger(__name__)


def probe(url: str, *, verify_tls: bool = False, timeout: float = 5.0) -> int:
    try:
        response = requests.get(url, timeout=timeout, verify=verify_tls)
    except requests.RequestException as exc:
        raise HealthCheckError(f"{url} unreachable: {exc}") from exc
    if response.status_code >= 500:
        raise HealthCheckError(f"{url} answered {response.status_code}")
    return response.status_code


def check_health(
    url: str,
    *,
    attempts: int = 10,
    delay: float = 3.0,
    verify_tls: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Poll ``url`` until it answers with a status below 500.

    The image ships a self-signed certificate, so TLS verification is off
    unless ``verify_tls`` is set. Returns the final status code and raises
    ``HealthCheckError`` once every attempt has failed.
    """
    if not verify_tls:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    checked = retry(
        attempts=attempts,
        initial_delay=delay,
        exceptions=(HealthCheckError,),
        sleep=sleep,
    )(probe)
    status = checked(url, verify_tls=verify_tls)
    logger.info("Health check OK: %s -> %s", url, status)
    return status


__all__ = ["check_health", "probe"]
