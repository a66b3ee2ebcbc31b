"""Reconciliation of the manifest against the supervisor.

Example:
    >>> from servermon.engine import ReconciliationEngine
    >>> engine = ReconciliationEngine(ManifestStore(path), LaunchctlControlPlane())
    >>> [r.ok for r in engine.start(all_services=True)]
    [True, True]
"""

from ._engine import ReconciliationEngine, ServiceAction
from ._models import RemovalReport, ServiceHealth, ServiceResult

__all__ = [
    "ReconciliationEngine",
    "RemovalReport",
    "ServiceAction",
    "ServiceHealth",
    "ServiceResult",
]
