"""
Triage Application Layer
========================

Use cases around the scorer: advisory classification and rule matching.
"""

from priority_alerts.triage.application.services import (
    IUrgencyClassifier,
    ClassifierBridge,
    RuleMatcher,
    FALLBACK_CLASSIFICATION,
)

__all__ = [
    "IUrgencyClassifier",
    "ClassifierBridge",
    "RuleMatcher",
    "FALLBACK_CLASSIFICATION",
]
