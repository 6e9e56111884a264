"""
Alerts Application DTOs
=======================

Result objects returned by the dispatch facade.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from priority_alerts.config import URGENCY_LEVELS
from priority_alerts.alerts.domain import Alert


def empty_priority_counts() -> Dict[str, int]:
    """Counter with every urgency level present."""
    return {level.value: 0 for level in URGENCY_LEVELS}


@dataclass
class BatchFailure:
    """An item that could not be processed."""
    item_id: str
    error_type: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"item_id": self.item_id, "error_type": self.error_type, "error": self.error}


@dataclass
class BatchResult:
    """
    Outcome of process_batch.

    ``summary_by_priority`` counts generated alerts; ``analysis_summary``
    counts analyzed items by ladder urgency.
    """
    alerts: List[Alert] = field(default_factory=list)
    summary_by_priority: Dict[str, int] = field(default_factory=empty_priority_counts)
    items_processed: int = 0
    failures: List[BatchFailure] = field(default_factory=list)
    analysis_summary: Dict[str, int] = field(default_factory=empty_priority_counts)

    @property
    def alerts_generated(self) -> int:
        return len(self.alerts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alerts": [alert.to_dict() for alert in self.alerts],
            "summary_by_priority": dict(self.summary_by_priority),
            "items_processed": self.items_processed,
            "alerts_generated": self.alerts_generated,
            "failures": [failure.to_dict() for failure in self.failures],
            "analysis_summary": dict(self.analysis_summary),
        }
