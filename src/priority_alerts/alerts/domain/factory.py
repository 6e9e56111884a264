"""
Alert Factory
=============

Builds Alert entities from a matched rule and the item that triggered it.
"""

import random
import string
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from priority_alerts.config import (
    ALERT_TITLE_PREFIX,
    AlertType,
    MESSAGE_EXCERPT_LENGTH,
)
from priority_alerts.alerts.domain.entities import Alert
from priority_alerts.triage.domain import (
    AlertRule,
    IncidentItem,
    ScoreResult,
    UrgencyClassification,
)

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9

ALERT_TYPE_BY_KIND = {
    "social_media": AlertType.SOCIAL_MEDIA,
    "user_report": AlertType.DISASTER,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertFactory:
    """
    Creates alerts with ``alert_{epoch_ms}_{suffix}`` identifiers.

    Clock and random source are injectable so ids and timestamps are
    reproducible in tests.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = _utcnow,
        rng: Optional[random.Random] = None
    ):
        self._clock = clock
        self._rng = rng or random.SystemRandom()

    def new_id(self, now: datetime) -> str:
        suffix = "".join(self._rng.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
        return f"alert_{int(now.timestamp() * 1000)}_{suffix}"

    def build(
        self,
        item: IncidentItem,
        rule: AlertRule,
        score_result: Optional[ScoreResult] = None,
        classification: Optional[UrgencyClassification] = None
    ) -> Alert:
        """
        Build an alert for an item that matched a rule.

        Args:
            item: Triggering item
            rule: Matched alert rule
            score_result: Scorer output, copied into metadata when given
            classification: Classifier answer, copied into metadata when given

        Returns:
            New unresolved, unacknowledged Alert
        """
        now = self._clock()

        metadata: Dict[str, Any] = dict(item.source_metadata())
        metadata["rule_id"] = rule.id
        if score_result is not None:
            metadata["score"] = score_result.score
            metadata["confidence"] = score_result.confidence
            metadata["disaster_types"] = list(score_result.disaster_types)
        if classification is not None:
            metadata["classification"] = classification.to_dict()

        return Alert(
            id=self.new_id(now),
            type=ALERT_TYPE_BY_KIND.get(item.kind, AlertType.SYSTEM),
            priority=rule.threshold,
            title=ALERT_TITLE_PREFIX + rule.name,
            message=item.text[:MESSAGE_EXCERPT_LENGTH] + "...",
            source=getattr(item, "platform", None) or item.kind,
            created_at=now,
            location=item.location,
            metadata=metadata,
        )
