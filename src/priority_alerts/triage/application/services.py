"""
Triage Application Services
============================

Application services for urgency classification and rule matching.

Orchestrates business logic between domain objects and the external
classifier.
"""

import asyncio
import hashlib
from abc import ABC, abstractmethod
from typing import Optional

from priority_alerts.config import UrgencyLevel
from priority_alerts.shared.infrastructure.logging import get_logger
from priority_alerts.triage.domain import (
    AlertRule,
    AlertRuleSet,
    IncidentItem,
    ScoreResult,
    UrgencyClassification,
    UrgencyLadder,
)
from priority_alerts.triage.infrastructure.cache import TTLCache

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class IUrgencyClassifier(ABC):
    """Interface for the external free-text urgency classifier."""

    @abstractmethod
    async def classify(self, text: str) -> UrgencyClassification:
        """Classify text. May raise or hang; callers bound and guard it."""


# ========== Application Services ==========

FALLBACK_CLASSIFICATION = UrgencyClassification(
    urgency=UrgencyLevel.MEDIUM,
    keywords=(),
    reasoning="error",
    is_fallback=True,
)


class ClassifierBridge:
    """
    Advisory, never-blocking access to the external classifier.

    Answers are cached by content hash for a bounded TTL. Failures and
    timeouts produce FALLBACK_CLASSIFICATION, which is never cached. Without
    a classifier every call answers with the fallback.
    """

    def __init__(
        self,
        classifier: Optional[IUrgencyClassifier],
        cache: Optional[TTLCache] = None,
        timeout_seconds: float = 10.0
    ):
        self._classifier = classifier
        self._cache = cache if cache is not None else TTLCache()
        self._timeout = timeout_seconds

    @staticmethod
    def cache_key(text: str) -> str:
        return "urgency:" + hashlib.sha256(text.encode("utf-8")).hexdigest()

    async def classify(self, text: str) -> UrgencyClassification:
        """
        Classify text through the cache and the external classifier.

        Args:
            text: Free text of the item

        Returns:
            UrgencyClassification, the fallback when the classifier failed
        """
        if self._classifier is None:
            return FALLBACK_CLASSIFICATION

        key = self.cache_key(text)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            result = await asyncio.wait_for(
                self._classifier.classify(text),
                timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Urgency classifier timed out, using fallback",
                extra={"timeout_seconds": self._timeout}
            )
            return FALLBACK_CLASSIFICATION
        except Exception as e:
            logger.warning(
                "Urgency classifier failed, using fallback",
                extra={"error": str(e)}
            )
            return FALLBACK_CLASSIFICATION

        self._cache.set(key, result)
        return result


class RuleMatcher:
    """
    First-match evaluation of the ordered alert rule set.

    Effective urgency is the keyword ladder applied to the score; the
    classifier answer is advisory and does not take part in matching.
    """

    def __init__(self, rules: AlertRuleSet):
        self._rules = rules

    @property
    def rules(self) -> AlertRuleSet:
        return self._rules

    def match(
        self,
        item: IncidentItem,
        score_result: ScoreResult,
        classification: Optional[UrgencyClassification] = None
    ) -> Optional[AlertRule]:
        """
        Find the first enabled rule satisfied by the item.

        Args:
            item: Incoming item
            score_result: Scorer output for the item
            classification: Classifier answer (informational only)

        Returns:
            The first matching AlertRule, or None
        """
        urgency = UrgencyLadder.classify(score_result.score)

        for rule in self._rules.enabled_rules:
            if not rule.keyword_in(item.text):
                continue
            if urgency.rank < rule.threshold.rank:
                continue
            if not rule.allows_platform(getattr(item, "platform", None)):
                continue
            if rule.location is not None and not rule.location.contains(item.location):
                continue

            logger.debug(
                "Rule matched",
                extra={"rule_id": rule.id, "item_id": item.id, "urgency": urgency.value}
            )
            return rule

        return None
