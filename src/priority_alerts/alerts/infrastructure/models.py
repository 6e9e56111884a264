"""
Alerts Infrastructure Models
============================

SQLAlchemy ORM models for the alerts module.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from priority_alerts.infrastructure.database import Base


class AlertModel(Base):
    """
    Database model for the Alert entity.

    Location, metadata and acknowledgements are stored as JSON documents.
    """
    __tablename__ = "priority_alerts"

    # Primary key (alert_{epoch_ms}_{suffix})
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Classification
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, index=True)

    # Content
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String(64), nullable=False)

    # JSON documents ("metadata" is reserved on declarative classes)
    location: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    alert_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    acknowledged_by: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # State
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_priority_alerts_resolved_created", "resolved", "created_at"),
    )
