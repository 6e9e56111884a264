"""
Triage Domain Layer
===================

Domain layer for the triage module.

Contains:
- Entities: incident items, score results, classifier answers, analyses
- Value Objects & Services: UrgencyScorer, UrgencyLadder, AlertRule

This layer is framework-agnostic and contains pure business logic.
"""

from priority_alerts.triage.domain.entities import (
    GeoPoint,
    Engagement,
    IncidentItem,
    SocialMediaPost,
    UserReport,
    CategoryMatch,
    ScoreResult,
    UrgencyClassification,
    TriageAnalysis,
    ClassificationPromptBuilder,
)
from priority_alerts.triage.domain.value_objects import (
    UrgencyScorer,
    UrgencyLadder,
    LocationConstraint,
    AlertRule,
    AlertRuleSet,
    DEFAULT_ALERT_RULES,
    haversine_km,
)

__all__ = [
    # Entities
    "GeoPoint",
    "Engagement",
    "IncidentItem",
    "SocialMediaPost",
    "UserReport",
    "CategoryMatch",
    "ScoreResult",
    "UrgencyClassification",
    "TriageAnalysis",
    "ClassificationPromptBuilder",
    # Value Objects & Services
    "UrgencyScorer",
    "UrgencyLadder",
    "LocationConstraint",
    "AlertRule",
    "AlertRuleSet",
    "DEFAULT_ALERT_RULES",
    "haversine_km",
]
