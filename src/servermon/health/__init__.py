"""Service health evaluation and network probes."""

from ._evaluator import HealthEvaluator, HealthRecord, HealthStatus, HttpProbe, PortProbe
from ._probes import DEFAULT_PROBE_TIMEOUT, HttpProbeResult, check_http, check_port

__all__ = [
    "DEFAULT_PROBE_TIMEOUT",
    "HealthEvaluator",
    "HealthRecord",
    "HealthStatus",
    "HttpProbe",
    "HttpProbeResult",
    "PortProbe",
    "check_http",
    "check_port",
]
