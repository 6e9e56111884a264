"""
Alerts Application Layer
========================

Contains:
- Interfaces: IAlertStore, IBroadcaster
- Services: AlertLifecycleManager, AlertDispatchService
- DTOs: BatchResult, BatchFailure
"""

from priority_alerts.alerts.application.dto import (
    BatchFailure,
    BatchResult,
)
from priority_alerts.alerts.application.services import (
    IAlertStore,
    IBroadcaster,
    AlertLifecycleManager,
    AlertDispatchService,
)

__all__ = [
    # DTOs
    "BatchFailure",
    "BatchResult",
    # Interfaces
    "IAlertStore",
    "IBroadcaster",
    # Services
    "AlertLifecycleManager",
    "AlertDispatchService",
]
