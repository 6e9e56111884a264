"""
Alerts Domain Layer
===================

Contains:
- Entities: Alert
- Factory: AlertFactory
"""

from priority_alerts.alerts.domain.entities import Alert
from priority_alerts.alerts.domain.factory import AlertFactory, ALERT_TYPE_BY_KIND

__all__ = [
    "Alert",
    "AlertFactory",
    "ALERT_TYPE_BY_KIND",
]
