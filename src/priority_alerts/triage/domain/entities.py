"""
Triage Domain Entities
======================

Domain entities for the triage module.

Contains pure Python business objects for incoming incident items, their
urgency scores and classifier answers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Any

from priority_alerts.config import UrgencyLevel


# ========== Incident Items ==========

@dataclass(frozen=True)
class GeoPoint:
    """A coordinate with an optional human readable place name."""
    lat: float
    lng: float
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng, "name": self.name}


@dataclass(frozen=True)
class Engagement:
    """Engagement counters reported by a social platform."""
    likes: int = 0
    shares: int = 0
    comments: int = 0

    def to_dict(self) -> dict:
        return {"likes": self.likes, "shares": self.shares, "comments": self.comments}


@dataclass(frozen=True)
class IncidentItem:
    """
    Common shape of every item entering triage.

    Scorer and matcher only read ``text``, ``location``, ``platform`` and
    ``hashtags``. Anything source specific is exposed through
    ``source_metadata()`` and ends up in the alert's metadata.
    """
    id: str
    text: str
    location: Optional[GeoPoint] = None
    timestamp: Optional[datetime] = None
    author: Optional[str] = None

    kind = "incident"

    @property
    def location_text(self) -> Optional[str]:
        """Place name used as extra scoring text."""
        return self.location.name if self.location else None

    def source_metadata(self) -> Dict[str, Any]:
        """Source specific payload carried into alert metadata."""
        return {"source_id": self.id, "author": self.author, "engagement": None}


@dataclass(frozen=True)
class SocialMediaPost(IncidentItem):
    """A post pulled from a social platform."""
    platform: str = "twitter"
    author_verified: bool = False
    hashtags: Tuple[str, ...] = ()
    engagement: Optional[Engagement] = None

    kind = "social_media"

    def source_metadata(self) -> Dict[str, Any]:
        return {
            "source_id": self.id,
            "author": self.author,
            "author_verified": self.author_verified,
            "engagement": self.engagement.to_dict() if self.engagement else None,
        }


@dataclass(frozen=True)
class UserReport(IncidentItem):
    """A report submitted by a user, optionally tied to a known disaster."""
    disaster_id: Optional[str] = None
    platform: str = field(default="user_report", init=False)
    hashtags: Tuple[str, ...] = field(default=(), init=False)

    kind = "user_report"

    @property
    def reporter(self) -> Optional[str]:
        return self.author

    def source_metadata(self) -> Dict[str, Any]:
        return {
            "source_id": self.id,
            "author": self.author,
            "engagement": None,
            "disaster_id": self.disaster_id,
        }


# ========== Scoring ==========

@dataclass(frozen=True)
class CategoryMatch:
    """Contribution of a single scoring category."""
    category: str
    matched_keywords: Tuple[str, ...]
    weight: float


@dataclass(frozen=True)
class ScoreResult:
    """
    Result of keyword scoring.

    ``score`` is additive and unbounded. ``max_weight`` is the largest
    keyword-tier weight that matched and drives ``normalized_score``.
    """
    score: float
    max_weight: int
    normalized_score: float
    breakdown: Tuple[CategoryMatch, ...] = ()
    disaster_types: Tuple[str, ...] = ()

    @property
    def confidence(self) -> float:
        """Saturates at 1.0 once normalized score or raw score (at 20) is high."""
        base_confidence = min(self.normalized_score * 0.8, 1.0)
        score_confidence = min(self.score / 20, 1.0)
        return max(base_confidence, score_confidence)

    def matched(self, category: str) -> Tuple[str, ...]:
        """Keywords matched for a category, empty when it did not fire."""
        for entry in self.breakdown:
            if entry.category == category:
                return entry.matched_keywords
        return ()


@dataclass(frozen=True)
class UrgencyClassification:
    """
    Advisory urgency answer from the external classifier.

    ``is_fallback`` marks answers produced locally after the classifier
    failed or timed out.
    """
    urgency: UrgencyLevel
    keywords: Tuple[str, ...] = ()
    reasoning: str = ""
    is_fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "urgency": self.urgency.value,
            "keywords": list(self.keywords),
            "reasoning": self.reasoning,
        }


@dataclass
class TriageAnalysis:
    """Everything triage learned about one item."""
    item: IncidentItem
    score: ScoreResult
    urgency: UrgencyLevel
    classification: UrgencyClassification
    urgency_indicators: List[dict] = field(default_factory=list)
    credibility_factors: List[str] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        return self.score.confidence

    @property
    def disaster_types(self) -> Tuple[str, ...]:
        return self.score.disaster_types

    @property
    def requires_immediate_action(self) -> bool:
        """Top ladder level with a raw score of at least 20."""
        return self.urgency == UrgencyLevel.CRITICAL and self.score.score >= 20


class ClassificationPromptBuilder:
    """
    Builds prompts for urgency classification.

    All prompt logic in one place.
    """

    SYSTEM_PROMPT = """You are an urgency triage system for disaster response coordinators.

Your task is to analyze incoming posts and reports and decide how urgent they are.

URGENCY LEVELS:
- critical: lives at immediate risk, SOS, people trapped, active evacuation
- high: injuries, people stranded or missing, urgent requests for help
- medium: offers of help, shelter or supplies, developing situations
- low: general updates, news, announcements

Look for keywords like "urgent", "help", "SOS", "emergency", "critical",
"immediate".

Respond ONLY in JSON format:
{
    "urgency": "low|medium|high|critical",
    "keywords": ["found", "keywords"],
    "reasoning": "brief explanation"
}"""

    @classmethod
    def build_prompt(cls, text: str) -> str:
        """Build classification prompt from item text."""
        return f"""Text:
"{text}"

Classify this text (respond with JSON only):"""

    @classmethod
    def get_system_prompt(cls) -> str:
        """Get the system prompt for classification."""
        return cls.SYSTEM_PROMPT
