"""Network probes.

Probes are best-effort and never raise: any failure is a negative result.
"""

import socket
from dataclasses import dataclass

import httpx

DEFAULT_PROBE_TIMEOUT = 3.0
LOCALHOST = "127.0.0.1"


@dataclass(frozen=True, slots=True)
class HttpProbeResult:
    """Outcome of an HTTP health probe.

    Attributes:
        healthy: True when a response arrived with status below 500.
        status_code: HTTP status, or None when no response arrived.
        error: Failure description when no response arrived.
    """

    healthy: bool
    status_code: int | None = None
    error: str | None = None


def check_port(
    port: int,
    *,
    host: str = LOCALHOST,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> bool:
    """Return True if something accepts TCP connections on ``host:port``."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except (OSError, OverflowError, ValueError):
        return False


def check_http(url: str, *, timeout: float = DEFAULT_PROBE_TIMEOUT) -> HttpProbeResult:
    """GET ``url`` and report whether the service answered sanely.

    Certificate verification is disabled for ``https`` URLs so self-signed
    development certificates still count as reachable.
    """
    verify = not url.lower().startswith("https")
    try:
        with httpx.Client(timeout=timeout, verify=verify, follow_redirects=True) as client:
            response = client.get(url)
    except httpx.TimeoutException:
        return HttpProbeResult(healthy=False, error="timeout")
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        return HttpProbeResult(healthy=False, error=str(e) or type(e).__name__)
    return HttpProbeResult(
        healthy=response.status_code < 500,  # noqa: PLR2004
        status_code=response.status_code,
    )
