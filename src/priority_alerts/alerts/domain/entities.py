"""
Alert Domain Entities
=====================

Pure Python domain entities for alert tracking.

Alerts are immutable records. Every lifecycle transition returns a new
Alert; the previous value is never modified in place.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from priority_alerts.config import (
    AlertType,
    ESCALATED_TITLE_PREFIX,
    UrgencyLevel,
)
from priority_alerts.core import DomainException
from priority_alerts.triage.domain import GeoPoint


@dataclass(frozen=True)
class Alert:
    """
    Alert entity raised for an item that matched an alert rule.

    Lifecycle:
        open -> (acknowledged by 0..n users) -> escalated? -> resolved

    A resolved alert is terminal. Transition methods on a resolved alert
    return the alert unchanged.
    """

    id: str
    type: AlertType
    priority: UrgencyLevel
    title: str
    message: str
    source: str
    created_at: datetime
    location: Optional[GeoPoint] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    acknowledged_by: Tuple[str, ...] = ()
    resolved: bool = False

    def __post_init__(self):
        """Validate alert on initialization."""
        for name in ("id", "title", "message", "source"):
            if not getattr(self, name):
                raise DomainException(f"Alert {name} must not be empty", {"alert_id": self.id})

        if len(set(self.acknowledged_by)) != len(self.acknowledged_by):
            raise DomainException(
                "acknowledged_by must not contain duplicates",
                {"alert_id": self.id}
            )

    # ========== Transitions ==========

    def acknowledge(self, user_id: str) -> "Alert":
        """Add user to acknowledged_by (idempotent)."""
        if self.resolved or user_id in self.acknowledged_by:
            return self
        return replace(self, acknowledged_by=self.acknowledged_by + (user_id,))

    @property
    def can_escalate(self) -> bool:
        return not self.resolved and self.priority != UrgencyLevel.CRITICAL

    def escalate(self) -> "Alert":
        """Raise priority to critical and mark the title."""
        if not self.can_escalate:
            return self
        return replace(
            self,
            priority=UrgencyLevel.CRITICAL,
            title=ESCALATED_TITLE_PREFIX + self.title
        )

    def resolve(self, user_id: str) -> "Alert":
        """Close the alert; the resolver becomes the only acknowledger."""
        if self.resolved:
            return self
        return replace(self, resolved=True, acknowledged_by=(user_id,))

    # ========== Serialization ==========

    def to_dict(self) -> Dict[str, Any]:
        """Broadcast payload and storage shape."""
        return {
            "id": self.id,
            "type": self.type.value,
            "priority": self.priority.value,
            "title": self.title,
            "message": self.message,
            "source": self.source,
            "location": self.location.to_dict() if self.location else None,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
            "acknowledged_by": list(self.acknowledged_by),
            "resolved": self.resolved,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Alert":
        location = data.get("location")
        created_at = data["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        return cls(
            id=data["id"],
            type=AlertType(data["type"]),
            priority=UrgencyLevel(data["priority"]),
            title=data["title"],
            message=data["message"],
            source=data["source"],
            created_at=created_at,
            location=GeoPoint(**location) if location else None,
            metadata=dict(data.get("metadata") or {}),
            acknowledged_by=tuple(data.get("acknowledged_by") or ()),
            resolved=bool(data.get("resolved", False)),
        )
