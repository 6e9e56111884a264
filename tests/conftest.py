"""Shared fixtures and fakes for the alert engine tests."""

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from priority_alerts.alerts.application import AlertDispatchService, IBroadcaster
from priority_alerts.alerts.domain import AlertFactory
from priority_alerts.alerts.infrastructure.repositories import InMemoryAlertStore
from priority_alerts.config import UrgencyLevel
from priority_alerts.core import BroadcastException, PersistenceException
from priority_alerts.triage.application import ClassifierBridge, IUrgencyClassifier
from priority_alerts.triage.domain import (
    DEFAULT_ALERT_RULES,
    GeoPoint,
    SocialMediaPost,
    UrgencyClassification,
    UrgencyScorer,
    UserReport,
)
from priority_alerts.triage.infrastructure.cache import TTLCache

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClassifier(IUrgencyClassifier):
    """Returns a fixed answer, or raises / hangs when told to."""

    def __init__(
        self,
        urgency: UrgencyLevel = UrgencyLevel.HIGH,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.urgency = urgency
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    async def classify(self, text: str) -> UrgencyClassification:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return UrgencyClassification(self.urgency, ("fake",), "fake answer")


class RecordingBroadcaster(IBroadcaster):
    """Keeps every published event in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.user_messages: List[Tuple[str, Dict[str, Any]]] = []

    async def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        if self.fail:
            raise BroadcastException("gateway down")
        self.events.append((event, payload))

    async def publish_to_user(self, user_id: str, payload: Dict[str, Any]) -> None:
        if self.fail:
            raise BroadcastException("gateway down")
        self.user_messages.append((user_id, payload))

    def event_names(self) -> List[str]:
        return [event for event, _ in self.events]


class FailingStore(InMemoryAlertStore):
    """Store whose writes always fail."""

    async def insert(self, alert) -> None:
        raise PersistenceException("insert", alert.id)


class UpdateFailingStore(InMemoryAlertStore):
    """Store that accepts inserts but fails every update."""

    def __init__(self):
        super().__init__()
        self.inserts = 0

    async def insert(self, alert) -> None:
        self.inserts += 1
        await super().insert(alert)

    async def update(self, alert) -> None:
        raise PersistenceException("update", alert.id)


class YieldingStore(InMemoryAlertStore):
    """Store that yields to the event loop on every read and write, like a real driver."""

    async def get(self, alert_id):
        await asyncio.sleep(0)
        return await super().get(alert_id)

    async def update(self, alert) -> None:
        await asyncio.sleep(0)
        await super().update(alert)


class TickingClock:
    """Clock that advances one second per call."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


# ---------------------------------------------------------------------------
# Item builders
# ---------------------------------------------------------------------------


def make_post(text: str, item_id: str = "post-1", **overrides) -> SocialMediaPost:
    fields = {
        "id": item_id,
        "text": text,
        "author": "@resident",
        "platform": "twitter",
        "timestamp": BASE_TIME,
    }
    fields.update(overrides)
    return SocialMediaPost(**fields)


def make_report(text: str, item_id: str = "report-1", **overrides) -> UserReport:
    fields = {
        "id": item_id,
        "text": text,
        "author": "user-7",
        "location": GeoPoint(29.7604, -95.3698, "Houston"),
        "disaster_id": "dis-1",
    }
    fields.update(overrides)
    return UserReport(**fields)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def store():
    return InMemoryAlertStore()


@pytest.fixture
def factory():
    return AlertFactory(clock=TickingClock(), rng=random.Random(42))


@pytest.fixture
def bridge(classifier):
    return ClassifierBridge(classifier, cache=TTLCache(ttl_seconds=3600), timeout_seconds=1.0)


@pytest.fixture
def service(bridge, store, broadcaster, factory):
    return AlertDispatchService(
        rules=DEFAULT_ALERT_RULES,
        scorer=UrgencyScorer(),
        classifier_bridge=bridge,
        store=store,
        broadcaster=broadcaster,
        factory=factory,
        batch_concurrency=4,
    )
