"""
Alerts Infrastructure Repositories
==================================

Alert store implementations:
- SQLAlchemyAlertStore: async SQLAlchemy (PostgreSQL via asyncpg, SQLite via aiosqlite)
- InMemoryAlertStore: process-local dict, used when no database is configured
"""

import asyncio
from datetime import timezone
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from priority_alerts.alerts.application import IAlertStore
from priority_alerts.alerts.domain import Alert
from priority_alerts.alerts.infrastructure.models import AlertModel
from priority_alerts.core import PersistenceException
from priority_alerts.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _to_model(alert: Alert) -> AlertModel:
    return AlertModel(
        id=alert.id,
        type=alert.type.value,
        priority=alert.priority.value,
        title=alert.title,
        message=alert.message,
        source=alert.source,
        location=alert.location.to_dict() if alert.location else None,
        alert_metadata=alert.metadata,
        acknowledged_by=list(alert.acknowledged_by),
        resolved=alert.resolved,
        created_at=alert.created_at,
    )


def _to_domain(model: AlertModel) -> Alert:
    created_at = model.created_at
    if created_at.tzinfo is None:
        # SQLite drops tzinfo; values are always written in UTC
        created_at = created_at.replace(tzinfo=timezone.utc)

    return Alert.from_dict({
        "id": model.id,
        "type": model.type,
        "priority": model.priority,
        "title": model.title,
        "message": model.message,
        "source": model.source,
        "location": model.location,
        "metadata": model.alert_metadata,
        "acknowledged_by": model.acknowledged_by,
        "resolved": model.resolved,
        "created_at": created_at,
    })


class SQLAlchemyAlertStore(IAlertStore):
    """SQLAlchemy implementation of the alert store."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def insert(self, alert: Alert) -> None:
        """Insert a new alert row."""
        try:
            async with self._session_maker() as session:
                session.add(_to_model(alert))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Alert insert failed", extra={"alert_id": alert.id, "error": str(e)})
            raise PersistenceException("insert", alert.id) from e

    async def update(self, alert: Alert) -> None:
        """Overwrite the mutable columns of an existing alert."""
        try:
            async with self._session_maker() as session:
                model = await session.get(AlertModel, alert.id)
                if model is None:
                    raise PersistenceException("update", alert.id, {"reason": "missing row"})

                model.priority = alert.priority.value
                model.title = alert.title
                model.acknowledged_by = list(alert.acknowledged_by)
                model.resolved = alert.resolved
                model.alert_metadata = alert.metadata
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Alert update failed", extra={"alert_id": alert.id, "error": str(e)})
            raise PersistenceException("update", alert.id) from e

    async def get(self, alert_id: str) -> Optional[Alert]:
        """Get alert by ID."""
        try:
            async with self._session_maker() as session:
                model = await session.get(AlertModel, alert_id)
                return _to_domain(model) if model else None
        except SQLAlchemyError as e:
            raise PersistenceException("get", alert_id) from e

    async def list_unresolved(self) -> List[Alert]:
        """List unresolved alerts, newest first."""
        stmt = (
            select(AlertModel)
            .where(AlertModel.resolved.is_(False))
            .order_by(AlertModel.created_at.desc())
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return [_to_domain(model) for model in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceException("list_unresolved") from e


class InMemoryAlertStore(IAlertStore):
    """Process-local alert store."""

    def __init__(self):
        self._alerts: Dict[str, Alert] = {}
        self._lock = asyncio.Lock()

    async def insert(self, alert: Alert) -> None:
        async with self._lock:
            if alert.id in self._alerts:
                raise PersistenceException("insert", alert.id, {"reason": "duplicate id"})
            self._alerts[alert.id] = alert

    async def update(self, alert: Alert) -> None:
        async with self._lock:
            if alert.id not in self._alerts:
                raise PersistenceException("update", alert.id, {"reason": "missing alert"})
            self._alerts[alert.id] = alert

    async def get(self, alert_id: str) -> Optional[Alert]:
        return self._alerts.get(alert_id)

    async def list_unresolved(self) -> List[Alert]:
        # Newest first; insertion order breaks timestamp ties
        unresolved = [a for a in reversed(list(self._alerts.values())) if not a.resolved]
        return sorted(unresolved, key=lambda a: a.created_at, reverse=True)

    def __len__(self) -> int:
        return len(self._alerts)
