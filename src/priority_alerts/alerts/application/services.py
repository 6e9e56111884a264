"""
Alerts Application Services
===========================

Application services orchestrate alert creation, lifecycle transitions
and notification side effects.

Following SOLID principles:
- Single Responsibility: the lifecycle manager owns state transitions,
  the dispatch service owns the item pipeline
- Dependency Inversion: depend on store and broadcaster abstractions
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Tuple

from priority_alerts.config import AlertEvent
from priority_alerts.core import ResourceNotFoundException
from priority_alerts.alerts.application.dto import BatchFailure, BatchResult
from priority_alerts.alerts.domain import Alert, AlertFactory
from priority_alerts.shared.infrastructure.logging import (
    get_context_logger,
    get_logger,
    log_latency,
)
from priority_alerts.triage.application import ClassifierBridge, RuleMatcher
from priority_alerts.triage.domain import (
    AlertRule,
    AlertRuleSet,
    IncidentItem,
    TriageAnalysis,
    UrgencyLadder,
    UrgencyScorer,
)

logger = get_logger(__name__)


# ========== Collaborator Interfaces (Dependency Inversion) ==========

class IAlertStore(ABC):
    """
    Interface for alert persistence.

    Implementations raise PersistenceException on any storage failure.
    """

    @abstractmethod
    async def insert(self, alert: Alert) -> None:
        """Store a new alert."""

    @abstractmethod
    async def update(self, alert: Alert) -> None:
        """Replace a stored alert with a new version."""

    @abstractmethod
    async def get(self, alert_id: str) -> Optional[Alert]:
        """Get alert by ID."""

    @abstractmethod
    async def list_unresolved(self) -> List[Alert]:
        """List unresolved alerts, newest first."""


class IBroadcaster(ABC):
    """Interface for realtime notification delivery."""

    @abstractmethod
    async def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        """Publish an event to every connected client."""

    @abstractmethod
    async def publish_to_user(self, user_id: str, payload: Dict[str, Any]) -> None:
        """Publish an alert to a single user's topic."""

    async def close(self) -> None:
        """Release network resources (no-op by default)."""


# ========== Lifecycle ==========

class _AlertLock:
    """Per-alert lock plus the number of coroutines holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class AlertLifecycleManager:
    """
    Owns the alert state machine and its notification side effects.

    Every read-modify-write on an alert runs under that alert's lock, so
    concurrent acknowledgements and escalations never lose updates. A lock
    lives only while some coroutine holds or awaits it.
    Store failures propagate; broadcast failures are logged and dropped.
    """

    def __init__(self, store: IAlertStore, broadcaster: IBroadcaster):
        self._store = store
        self._broadcaster = broadcaster
        self._locks: Dict[str, _AlertLock] = {}

    @property
    def active_locks(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def _alert_lock(self, alert_id: str) -> AsyncIterator[None]:
        entry = self._locks.get(alert_id)
        if entry is None:
            entry = self._locks[alert_id] = _AlertLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(alert_id, None)

    async def _load(self, alert_id: str) -> Alert:
        alert = await self._store.get(alert_id)
        if alert is None:
            raise ResourceNotFoundException("Alert", alert_id)
        return alert

    async def _notify(self, event: str, payload: Dict[str, Any], alert_id: str) -> None:
        try:
            await self._broadcaster.broadcast(event, payload)
        except Exception as e:
            logger.error(
                "Alert broadcast failed",
                extra={"event": event, "alert_id": alert_id, "error": str(e)}
            )

    async def _notify_user(self, user_id: str, payload: Dict[str, Any], alert_id: str) -> None:
        try:
            await self._broadcaster.publish_to_user(user_id, payload)
        except Exception as e:
            logger.error(
                "User notification failed",
                extra={"user_id": user_id, "alert_id": alert_id, "error": str(e)}
            )

    async def create(self, alert: Alert, rule: AlertRule) -> Alert:
        """
        Persist a new alert and notify.

        When the rule auto-escalates, the alert is escalated before it is
        stored, so a single insert holds the final state. Subscribers get
        ``priority_alert`` followed by ``alert_escalated``.

        Raises:
            PersistenceException: If the alert could not be stored; nothing
                is broadcast in that case
        """
        stored = alert
        if rule.auto_escalate and alert.can_escalate:
            stored = alert.escalate()

        await self._store.insert(stored)

        logger.info(
            "Alert created",
            extra={
                "alert_id": stored.id,
                "rule_id": rule.id,
                "priority": stored.priority.value,
            }
        )

        payload = stored.to_dict()
        await self._notify(AlertEvent.PRIORITY_ALERT, payload, stored.id)
        for user_id in rule.notify_users:
            await self._notify_user(user_id, payload, stored.id)

        if stored is not alert:
            logger.warning(
                "Alert escalated",
                extra={"alert_id": stored.id, "previous_priority": alert.priority.value}
            )
            await self._notify(AlertEvent.ALERT_ESCALATED, payload, stored.id)

        return stored

    async def acknowledge(self, alert_id: str, user_id: str) -> Alert:
        """Record a user acknowledgement; repeats and resolved alerts are no-ops."""
        async with self._alert_lock(alert_id):
            alert = await self._load(alert_id)
            updated = alert.acknowledge(user_id)
            if updated is alert:
                return alert
            await self._store.update(updated)

        logger.info("Alert acknowledged", extra={"alert_id": alert_id, "user_id": user_id})
        await self._notify(
            AlertEvent.ALERT_ACKNOWLEDGED,
            {"alert_id": alert_id, "acknowledged_by": user_id},
            alert_id
        )
        return updated

    async def escalate(self, alert_id: str) -> Alert:
        """
        Raise an alert to critical.

        Escalation is monotonic: a critical or resolved alert is returned
        unchanged and nothing is broadcast.
        """
        async with self._alert_lock(alert_id):
            alert = await self._load(alert_id)
            if not alert.can_escalate:
                return alert
            updated = alert.escalate()
            await self._store.update(updated)

        logger.warning(
            "Alert escalated",
            extra={
                "alert_id": alert_id,
                "previous_priority": alert.priority.value,
            }
        )
        await self._notify(AlertEvent.ALERT_ESCALATED, updated.to_dict(), alert_id)
        return updated

    async def resolve(self, alert_id: str, user_id: str) -> Alert:
        """Resolve an alert. Resolving twice is a no-op."""
        async with self._alert_lock(alert_id):
            alert = await self._load(alert_id)
            if alert.resolved:
                return alert
            updated = alert.resolve(user_id)
            await self._store.update(updated)

        logger.info("Alert resolved", extra={"alert_id": alert_id, "resolved_by": user_id})
        await self._notify(
            AlertEvent.ALERT_RESOLVED,
            {"alert_id": alert_id, "resolved_by": user_id},
            alert_id
        )
        return updated


# ========== Dispatch Facade ==========

class AlertDispatchService:
    """
    Single entry point of the engine.

    Item pipeline:
        score -> classify (advisory) -> match rule -> build alert
        -> escalate when the rule says so -> persist and notify
    """

    def __init__(
        self,
        rules: AlertRuleSet,
        scorer: UrgencyScorer,
        classifier_bridge: ClassifierBridge,
        store: IAlertStore,
        broadcaster: IBroadcaster,
        factory: Optional[AlertFactory] = None,
        batch_concurrency: int = 8
    ):
        self._scorer = scorer
        self._bridge = classifier_bridge
        self._matcher = RuleMatcher(rules)
        self._factory = factory or AlertFactory()
        self._store = store
        self._broadcaster = broadcaster
        self._lifecycle = AlertLifecycleManager(store, broadcaster)
        self._batch_concurrency = max(1, batch_concurrency)

    @property
    def lifecycle(self) -> AlertLifecycleManager:
        return self._lifecycle

    @property
    def store(self) -> IAlertStore:
        return self._store

    @property
    def broadcaster(self) -> IBroadcaster:
        return self._broadcaster

    async def analyze_item(self, item: IncidentItem) -> TriageAnalysis:
        """
        Score and classify an item without creating anything.

        Args:
            item: Social media post or user report

        Returns:
            TriageAnalysis with score, ladder urgency and classifier answer
        """
        score_result = self._scorer.score(
            item.text,
            location=item.location_text,
            hashtags=getattr(item, "hashtags", None)
        )
        classification = await self._bridge.classify(item.text)
        scored_text = self._scorer.build_text(
            item.text, item.location_text, getattr(item, "hashtags", None)
        )

        return TriageAnalysis(
            item=item,
            score=score_result,
            urgency=UrgencyLadder.classify(score_result.score),
            classification=classification,
            urgency_indicators=self._scorer.extract_urgency_indicators(scored_text),
            credibility_factors=self._scorer.extract_credibility_factors(scored_text),
        )

    async def _process(self, item: IncidentItem) -> Tuple[TriageAnalysis, Optional[Alert]]:
        item_logger = get_context_logger(__name__, item.id)
        analysis = await self.analyze_item(item)

        rule = self._matcher.match(item, analysis.score, analysis.classification)
        if rule is None:
            item_logger.debug(
                "No alert rule matched",
                extra={"score": analysis.score.score, "urgency": analysis.urgency.value}
            )
            return analysis, None

        if not rule.create_alert:
            item_logger.info("Matched rule does not create alerts", extra={"rule_id": rule.id})
            return analysis, None

        alert = self._factory.build(item, rule, analysis.score, analysis.classification)
        alert = await self._lifecycle.create(alert, rule)
        return analysis, alert

    async def process_item(self, item: IncidentItem) -> Optional[Alert]:
        """
        Run one item through the pipeline.

        Returns:
            The stored (possibly escalated) alert, or None when no rule
            produced one

        Raises:
            PersistenceException: If the alert could not be stored
        """
        _, alert = await self._process(item)
        return alert

    async def process_batch(self, items: Iterable[IncidentItem]) -> BatchResult:
        """
        Process items concurrently with per-item failure isolation.

        A failing item is recorded in ``failures`` and never aborts the
        rest of the batch. Alerts keep input order.
        """
        items = list(items)
        semaphore = asyncio.Semaphore(self._batch_concurrency)

        async def run(item: IncidentItem):
            async with semaphore:
                try:
                    return await self._process(item)
                except Exception as e:
                    logger.error(
                        "Batch item failed",
                        extra={"item_id": item.id, "error": str(e)}
                    )
                    return BatchFailure(item.id, type(e).__name__, str(e))

        with log_latency(logger, "process_batch", items=len(items)):
            outcomes = await asyncio.gather(*(run(item) for item in items))

        result = BatchResult(items_processed=len(items))
        for outcome in outcomes:
            if isinstance(outcome, BatchFailure):
                result.failures.append(outcome)
                continue
            analysis, alert = outcome
            result.analysis_summary[analysis.urgency.value] += 1
            if alert is not None:
                result.alerts.append(alert)
                result.summary_by_priority[alert.priority.value] += 1

        return result

    async def acknowledge(self, alert_id: str, user_id: str) -> Alert:
        return await self._lifecycle.acknowledge(alert_id, user_id)

    async def resolve(self, alert_id: str, user_id: str) -> Alert:
        return await self._lifecycle.resolve(alert_id, user_id)

    async def escalate(self, alert_id: str) -> Alert:
        return await self._lifecycle.escalate(alert_id)

    async def get_alert(self, alert_id: str) -> Optional[Alert]:
        return await self._store.get(alert_id)

    async def list_unresolved(self) -> List[Alert]:
        """Unresolved alerts, newest first."""
        alerts = await self._store.list_unresolved()
        return sorted(alerts, key=lambda a: a.created_at, reverse=True)
