"""End-to-end tests for AlertDispatchService."""

import pytest

from priority_alerts.alerts.application import AlertDispatchService
from priority_alerts.config import AlertEvent, UrgencyLevel
from priority_alerts.core import PersistenceException
from priority_alerts.triage.application import ClassifierBridge
from priority_alerts.triage.domain import (
    AlertRule,
    AlertRuleSet,
    DEFAULT_ALERT_RULES,
    UrgencyScorer,
)

from conftest import (
    FailingStore,
    FakeClassifier,
    RecordingBroadcaster,
    UpdateFailingStore,
    make_post,
    make_report,
)

SOS_TEXT = "URGENT SOS trapped in building, need rescue now"


class TestProcessItem:
    async def test_sos_post_is_escalated_to_critical(self, service, store, broadcaster):
        alert = await service.process_item(make_post(SOS_TEXT))

        assert alert.priority == UrgencyLevel.CRITICAL
        assert alert.title == "ESCALATED: Priority Alert: Urgent SOS"
        assert await store.get(alert.id) == alert
        assert broadcaster.event_names() == [AlertEvent.PRIORITY_ALERT, AlertEvent.ALERT_ESCALATED]
        assert broadcaster.user_messages[0][0] == "emergency_coordinator"

    async def test_offer_of_help_creates_nothing(self, service, store, broadcaster):
        alert = await service.process_item(make_post("Volunteers offering shelter and donations"))

        assert alert is None
        assert await store.list_unresolved() == []
        assert broadcaster.events == []

    async def test_medical_report_is_not_escalated(self, service):
        alert = await service.process_item(make_report("Injured man needs medical help on 5th street"))

        assert alert.priority == UrgencyLevel.HIGH
        assert alert.title == "Priority Alert: Medical Emergency"
        assert alert.metadata["rule_id"] == "medical_emergency"

    async def test_classifier_answer_is_metadata_only(self, store, broadcaster, factory):
        service = AlertDispatchService(
            rules=DEFAULT_ALERT_RULES,
            scorer=UrgencyScorer(),
            classifier_bridge=ClassifierBridge(FakeClassifier(UrgencyLevel.LOW)),
            store=store,
            broadcaster=broadcaster,
            factory=factory,
        )

        alert = await service.process_item(make_post(SOS_TEXT))

        assert alert.priority == UrgencyLevel.CRITICAL
        assert alert.metadata["classification"]["urgency"] == "low"

    async def test_classifier_outage_does_not_block_alerts(self, store, broadcaster, factory):
        service = AlertDispatchService(
            rules=DEFAULT_ALERT_RULES,
            scorer=UrgencyScorer(),
            classifier_bridge=ClassifierBridge(FakeClassifier(error=RuntimeError("down"))),
            store=store,
            broadcaster=broadcaster,
            factory=factory,
        )

        alert = await service.process_item(make_post(SOS_TEXT))

        assert alert is not None
        assert alert.metadata["classification"] == {
            "urgency": "medium",
            "keywords": [],
            "reasoning": "error",
        }

    async def test_rule_without_alert_creation(self, bridge, store, broadcaster):
        rules = AlertRuleSet(rules=[
            AlertRule(id="mute", name="Mute", keywords=["sos"], threshold="low", create_alert=False),
        ])
        service = AlertDispatchService(rules, UrgencyScorer(), bridge, store, broadcaster)

        assert await service.process_item(make_post("sos")) is None
        assert broadcaster.events == []

    async def test_persistence_failure_propagates(self, bridge, factory):
        broadcaster = RecordingBroadcaster()
        service = AlertDispatchService(
            DEFAULT_ALERT_RULES, UrgencyScorer(), bridge, FailingStore(), broadcaster, factory
        )

        with pytest.raises(PersistenceException):
            await service.process_item(make_post(SOS_TEXT))

        assert broadcaster.events == []

    async def test_auto_escalation_needs_no_store_update(self, bridge, broadcaster, factory):
        store = UpdateFailingStore()
        service = AlertDispatchService(
            DEFAULT_ALERT_RULES, UrgencyScorer(), bridge, store, broadcaster, factory
        )

        alert = await service.process_item(make_post(SOS_TEXT))

        assert alert.priority == UrgencyLevel.CRITICAL
        assert await store.get(alert.id) == alert
        assert store.inserts == 1


class TestAnalyzeItem:
    async def test_analysis_fields(self, service, classifier):
        analysis = await service.analyze_item(make_post(SOS_TEXT))

        assert analysis.urgency == UrgencyLevel.CRITICAL
        assert analysis.requires_immediate_action
        assert analysis.confidence == 1.0
        assert analysis.classification.urgency == UrgencyLevel.HIGH
        assert {i["priority"] for i in analysis.urgency_indicators} == {"urgent", "high"}
        assert analysis.credibility_factors == ["specific_details_1"]
        assert classifier.calls == [SOS_TEXT]

    async def test_analysis_creates_nothing(self, service, store):
        await service.analyze_item(make_post(SOS_TEXT))

        assert await store.list_unresolved() == []


class TestProcessBatch:
    async def test_batch_summary(self, service):
        items = [
            make_post(SOS_TEXT, item_id="p1"),
            make_post("Volunteers offering shelter and donations", item_id="p2"),
            make_report("Injured man needs medical help on 5th street", item_id="r1"),
            make_post("weather update", item_id="p3"),
        ]

        result = await service.process_batch(items)

        assert result.items_processed == 4
        assert result.failures == []
        assert [a.metadata["source_id"] for a in result.alerts] == ["p1", "r1"]
        assert result.summary_by_priority == {"critical": 1, "high": 1, "medium": 0, "low": 0}
        assert sum(result.analysis_summary.values()) == 4
        assert result.analysis_summary["low"] == 1

    async def test_failing_item_does_not_abort_batch(self, bridge, store, broadcaster, factory):
        class FlakyStore(type(store)):
            async def insert(self, alert):
                if alert.metadata["source_id"] == "bad":
                    raise PersistenceException("insert", alert.id)
                await super().insert(alert)

        service = AlertDispatchService(
            DEFAULT_ALERT_RULES, UrgencyScorer(), bridge, FlakyStore(), broadcaster, factory
        )

        result = await service.process_batch([
            make_post(SOS_TEXT, item_id="bad"),
            make_post(SOS_TEXT, item_id="good"),
        ])

        assert len(result.alerts) == 1
        assert result.alerts[0].metadata["source_id"] == "good"
        assert [f.item_id for f in result.failures] == ["bad"]
        assert result.failures[0].error_type == "PersistenceException"

    async def test_auto_escalating_batch_records_no_failures(self, bridge, broadcaster, factory):
        store = UpdateFailingStore()
        service = AlertDispatchService(
            DEFAULT_ALERT_RULES, UrgencyScorer(), bridge, store, broadcaster, factory
        )

        result = await service.process_batch([make_post(SOS_TEXT)])

        assert result.failures == []
        assert result.alerts[0].priority == UrgencyLevel.CRITICAL
        assert await store.list_unresolved() == result.alerts
        assert broadcaster.event_names() == [AlertEvent.PRIORITY_ALERT, AlertEvent.ALERT_ESCALATED]

    async def test_empty_batch(self, service):
        result = await service.process_batch([])

        assert result.items_processed == 0
        assert result.alerts == []
        assert result.to_dict()["alerts_generated"] == 0


class TestAlertQueries:
    async def test_list_unresolved_newest_first(self, service):
        first = await service.process_item(make_post(SOS_TEXT, item_id="a"))
        second = await service.process_item(make_post(SOS_TEXT, item_id="b"))
        third = await service.process_item(make_post(SOS_TEXT, item_id="c"))

        await service.resolve(second.id, "coordinator")

        unresolved = await service.list_unresolved()
        assert [a.id for a in unresolved] == [third.id, first.id]

    async def test_facade_delegates_transitions(self, service):
        alert = await service.process_item(make_report("Injured man needs medical help on 5th street"))

        acked = await service.acknowledge(alert.id, "medic-1")
        escalated = await service.escalate(alert.id)
        resolved = await service.resolve(alert.id, "medic-1")

        assert acked.acknowledged_by == ("medic-1",)
        assert escalated.priority == UrgencyLevel.CRITICAL
        assert resolved.resolved
        assert await service.get_alert(alert.id) == resolved
