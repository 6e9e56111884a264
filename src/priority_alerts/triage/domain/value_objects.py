"""
Triage Value Objects
====================

Immutable value objects and stateless services for the triage domain.

- UrgencyScorer: keyword and bonus scoring of free text
- UrgencyLadder: score to UrgencyLevel thresholds
- AlertRule / AlertRuleSet: declarative alert rules loaded from YAML

Scoring tables
--------------

    Tier      Weight   Contribution
    ──────    ──────   ─────────────────────────────────
    urgent    10       matched keyword count × weight
    high      7        matched keyword count × weight
    medium    4        matched keyword count × weight
    low       1        matched keyword count × weight

Bonuses are added on top: disaster type (matched count × type weight),
sensitive location (presence), time proximity (every matching tier adds),
credibility (+3 official wording, +0.5 per structural detail).
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from priority_alerts.config import UrgencyLevel
from priority_alerts.triage.domain.entities import CategoryMatch, GeoPoint, ScoreResult


# ========== Scoring Tables ==========

PRIORITY_KEYWORDS: Dict[str, Tuple[Tuple[str, ...], int]] = {
    "urgent": (
        ("urgent", "sos", "emergency", "evacuate", "evacuation",
         "immediate", "critical", "life-threatening"),
        10,
    ),
    "high": (
        ("need", "help", "stranded", "trapped", "injured",
         "medical", "rescue", "missing", "danger"),
        7,
    ),
    "medium": (
        ("offering", "volunteer", "shelter", "donate",
         "available", "assistance", "support"),
        4,
    ),
    "low": (
        ("update", "information", "status", "report", "news", "announcement"),
        1,
    ),
}

DISASTER_TYPE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "flood": ("flood", "flooding", "water", "rain", "storm", "hurricane", "tsunami"),
    "fire": ("fire", "burning", "smoke", "blaze", "wildfire", "arson"),
    "earthquake": ("earthquake", "quake", "tremor", "seismic", "shaking"),
    "tornado": ("tornado", "twister", "funnel", "storm"),
    "hurricane": ("hurricane", "cyclone", "typhoon", "storm"),
    "landslide": ("landslide", "mudslide", "avalanche", "rockfall"),
    "explosion": ("explosion", "blast", "bomb", "detonation"),
    "chemical": ("chemical", "spill", "leak", "toxic", "hazardous"),
}

DISASTER_TYPE_WEIGHTS: Dict[str, int] = {
    "explosion": 9,
    "fire": 8,
    "chemical": 8,
    "earthquake": 7,
    "tornado": 7,
    "flood": 6,
    "hurricane": 6,
    "landslide": 5,
}

LOCATION_URGENCY: Dict[str, int] = {
    "hospital": 8,
    "school": 7,
    "residential": 6,
    "downtown": 5,
    "highway": 4,
    "airport": 3,
}

TIME_URGENCY_TIERS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("now", "immediately", "asap"), 5),
    (("today", "tonight", "this hour"), 3),
    (("yesterday", "last night"), 1),
)

OFFICIAL_INDICATORS = ("official", "authority", "government", "police", "fire", "emergency")
DETAIL_INDICATORS = ("street", "avenue", "building", "room", "floor", "block")

OFFICIAL_BONUS = 3.0
DETAIL_BONUS = 0.5


class UrgencyScorer:
    """
    Pure keyword scoring of free text.

    Stateless utility class - all scoring logic in one place. Matching is
    case-insensitive substring matching, so "flooding" also counts as
    "flood".
    """

    @staticmethod
    def build_text(
        text: str,
        location: Optional[str] = None,
        hashtags: Optional[Sequence[str]] = None
    ) -> str:
        """Join text, location name and hashtags into one lower-cased string."""
        parts = [text or "", location or "", " ".join(hashtags or ())]
        return " ".join(parts).lower()

    @classmethod
    def score(
        cls,
        text: str,
        location: Optional[str] = None,
        hashtags: Optional[Sequence[str]] = None
    ) -> ScoreResult:
        """
        Score a piece of text.

        Args:
            text: Free text of the item
            location: Optional place name, scored like text
            hashtags: Optional hashtags, scored like text

        Returns:
            ScoreResult with total score, max tier weight and breakdown
        """
        lower_text = cls.build_text(text, location, hashtags)
        breakdown: List[CategoryMatch] = []
        total = 0.0
        max_weight = 0

        for tier, (keywords, weight) in PRIORITY_KEYWORDS.items():
            matches = tuple(k for k in keywords if k in lower_text)
            if matches:
                points = len(matches) * weight
                total += points
                max_weight = max(max_weight, weight)
                breakdown.append(CategoryMatch(tier, matches, points))

        disaster_types = []
        for disaster_type, keywords in DISASTER_TYPE_KEYWORDS.items():
            matches = tuple(k for k in keywords if k in lower_text)
            if matches:
                points = len(matches) * DISASTER_TYPE_WEIGHTS[disaster_type]
                total += points
                disaster_types.append(disaster_type)
                breakdown.append(CategoryMatch(f"disaster:{disaster_type}", matches, points))

        location_hits = tuple(name for name in LOCATION_URGENCY if name in lower_text)
        if location_hits:
            points = sum(LOCATION_URGENCY[name] for name in location_hits)
            total += points
            breakdown.append(CategoryMatch("location", location_hits, points))

        time_hits: List[str] = []
        time_points = 0
        for keywords, weight in TIME_URGENCY_TIERS:
            hits = [k for k in keywords if k in lower_text]
            if hits:
                time_hits.extend(hits)
                time_points += weight
        if time_points:
            total += time_points
            breakdown.append(CategoryMatch("time", tuple(time_hits), time_points))

        credibility_points, credibility_hits = cls._credibility(lower_text)
        if credibility_points:
            total += credibility_points
            breakdown.append(CategoryMatch("credibility", credibility_hits, credibility_points))

        return ScoreResult(
            score=total,
            max_weight=max_weight,
            normalized_score=total / max(max_weight, 1),
            breakdown=tuple(breakdown),
            disaster_types=tuple(disaster_types),
        )

    @staticmethod
    def _credibility(lower_text: str) -> Tuple[float, Tuple[str, ...]]:
        official = tuple(k for k in OFFICIAL_INDICATORS if k in lower_text)
        details = tuple(k for k in DETAIL_INDICATORS if k in lower_text)

        points = OFFICIAL_BONUS if official else 0.0
        points += len(details) * DETAIL_BONUS
        return points, official + details

    @classmethod
    def extract_disaster_types(cls, text: str) -> List[str]:
        """Disaster types mentioned in the text, in table order."""
        lower_text = text.lower()
        return [
            disaster_type
            for disaster_type, keywords in DISASTER_TYPE_KEYWORDS.items()
            if any(k in lower_text for k in keywords)
        ]

    @classmethod
    def extract_urgency_indicators(cls, text: str) -> List[dict]:
        """Matched keywords per priority tier."""
        lower_text = text.lower()
        indicators = []
        for tier, (keywords, weight) in PRIORITY_KEYWORDS.items():
            matches = [k for k in keywords if k in lower_text]
            if matches:
                indicators.append({"priority": tier, "keywords": matches, "weight": weight})
        return indicators

    @classmethod
    def extract_credibility_factors(cls, text: str) -> List[str]:
        """Human readable credibility factors found in the text."""
        lower_text = text.lower()
        factors = []

        if "official" in lower_text or "authority" in lower_text:
            factors.append("official_source")
        if "police" in lower_text or "fire" in lower_text:
            factors.append("emergency_service")

        detail_count = sum(1 for k in DETAIL_INDICATORS if k in lower_text)
        if detail_count:
            factors.append(f"specific_details_{detail_count}")

        return factors


class UrgencyLadder:
    """Deterministic score to UrgencyLevel mapping used for rule matching."""

    THRESHOLDS: Tuple[Tuple[float, UrgencyLevel], ...] = (
        (15, UrgencyLevel.CRITICAL),
        (10, UrgencyLevel.HIGH),
        (5, UrgencyLevel.MEDIUM),
    )

    @classmethod
    def classify(cls, score: float) -> UrgencyLevel:
        for threshold, level in cls.THRESHOLDS:
            if score >= threshold:
                return level
        return UrgencyLevel.LOW


# ========== Geography ==========

EARTH_RADIUS_KM: float = 6_371.0088


def haversine_km(a: GeoPoint, b_lat: float, b_lng: float) -> float:
    """Great-circle distance in kilometres between a point and a coordinate."""
    phi1, phi2 = math.radians(a.lat), math.radians(b_lat)
    d_phi = math.radians(b_lat - a.lat)
    d_lambda = math.radians(b_lng - a.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


# ========== Alert Rules ==========

class LocationConstraint(BaseModel):
    """Circle an item must fall into for a rule to apply."""
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius_km: float = Field(gt=0)

    def contains(self, point: Optional[GeoPoint]) -> bool:
        if point is None:
            return False
        return haversine_km(point, self.lat, self.lng) <= self.radius_km


class AlertRule(BaseModel):
    """
    Declarative alert rule.

    Static configuration - loaded once at process start and never
    mutated afterwards.
    """
    model_config = {"frozen": True}

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    keywords: Tuple[str, ...] = Field(min_length=1)
    threshold: UrgencyLevel = UrgencyLevel.MEDIUM
    platforms: Optional[Tuple[str, ...]] = None
    location: Optional[LocationConstraint] = None
    notify_users: Tuple[str, ...] = ()
    create_alert: bool = True
    auto_escalate: bool = False
    enabled: bool = True

    @field_validator("threshold", mode="before")
    @classmethod
    def parse_threshold(cls, v):
        """Accept "urgent" and mixed case labels from YAML."""
        if isinstance(v, str):
            return UrgencyLevel.parse(v)
        return v

    @field_validator("keywords", "platforms")
    @classmethod
    def lowercase_terms(cls, v, info):
        if v is None:
            return v
        terms = tuple(term.strip().lower() for term in v if term.strip())
        if not terms and info.field_name == "keywords":
            raise ValueError("keywords must contain at least one non-blank term")
        return terms

    def keyword_in(self, text: str) -> bool:
        lower_text = text.lower()
        return any(keyword in lower_text for keyword in self.keywords)

    def allows_platform(self, platform: Optional[str]) -> bool:
        if not self.platforms:
            return True
        return (platform or "").lower() in self.platforms


class AlertRuleSet(BaseModel):
    """
    Ordered alert rule configuration loaded from YAML.

    Order matters: matching stops at the first satisfied rule.
    """
    rules: List[AlertRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "AlertRuleSet":
        seen = set()
        for rule in self.rules:
            if rule.id in seen:
                raise ValueError(f"duplicate alert rule id: {rule.id}")
            seen.add(rule.id)
        return self

    @property
    def enabled_rules(self) -> List[AlertRule]:
        return [rule for rule in self.rules if rule.enabled]

    def get(self, rule_id: str) -> Optional[AlertRule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None


DEFAULT_ALERT_RULES = AlertRuleSet(rules=[
    AlertRule(
        id="urgent_sos",
        name="Urgent SOS",
        keywords=("sos", "urgent", "trapped", "help me", "mayday"),
        threshold=UrgencyLevel.HIGH,
        notify_users=("emergency_coordinator",),
        auto_escalate=True,
    ),
    AlertRule(
        id="medical_emergency",
        name="Medical Emergency",
        keywords=("medical", "injured", "ambulance", "bleeding", "unconscious"),
        threshold=UrgencyLevel.HIGH,
        notify_users=("medical_team",),
    ),
    AlertRule(
        id="evacuation_alert",
        name="Evacuation Alert",
        keywords=("evacuate", "evacuation", "evacuating"),
        threshold=UrgencyLevel.MEDIUM,
        notify_users=("evacuation_team",),
    ),
])
