"""
Triage External Service Integrations
====================================

External services for triage:
- LLM-backed urgency classifier
- YAML alert rule loader
"""

import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from priority_alerts.config import UrgencyLevel
from priority_alerts.core import ConfigurationException, LLMException
from priority_alerts.infrastructure.llm import ILLMClient
from priority_alerts.shared.infrastructure.logging import get_logger
from priority_alerts.triage.application.services import IUrgencyClassifier
from priority_alerts.triage.domain import (
    AlertRuleSet,
    ClassificationPromptBuilder,
    DEFAULT_ALERT_RULES,
    UrgencyClassification,
)

logger = get_logger(__name__)


class LLMUrgencyClassifier(IUrgencyClassifier):
    """Urgency classifier backed by a chat completion model."""

    def __init__(
        self,
        llm_client: ILLMClient,
        temperature: float = 0.3,
        max_tokens: int = 500
    ):
        self._llm = llm_client
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def classify(self, text: str) -> UrgencyClassification:
        """
        Classify text with the LLM.

        Raises:
            LLMException: If the call fails or the answer cannot be parsed
        """
        messages = [
            {"role": "system", "content": ClassificationPromptBuilder.get_system_prompt()},
            {"role": "user", "content": ClassificationPromptBuilder.build_prompt(text)}
        ]

        response = await self._llm.chat_completion(
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            operation="urgency_classification"
        )

        return self.parse_response(response.content)

    @staticmethod
    def parse_response(content_text: str) -> UrgencyClassification:
        """Extract the JSON answer, tolerating markdown fences."""
        if "```json" in content_text:
            content_text = content_text.split("```json")[1].split("```")[0].strip()
        elif "```" in content_text:
            content_text = content_text.split("```")[1].split("```")[0].strip()

        try:
            result_data = json.loads(content_text)
        except json.JSONDecodeError as e:
            raise LLMException(f"Failed to parse classification response: {e}")

        if not isinstance(result_data, dict):
            raise LLMException("Classification response is not a JSON object")

        try:
            urgency = UrgencyLevel.parse(result_data.get("urgency", UrgencyLevel.MEDIUM))
        except ValueError as e:
            raise LLMException(f"Unknown urgency label: {e}")

        keywords = result_data.get("keywords") or []
        if not isinstance(keywords, list):
            keywords = [keywords]

        return UrgencyClassification(
            urgency=urgency,
            keywords=tuple(str(k) for k in keywords),
            reasoning=str(result_data.get("reasoning") or "Standard classification"),
        )


class AlertRuleConfigLoader:
    """
    Loads the ordered alert rule set from YAML.

    Expected layout:

        rules:
          - id: urgent_sos
            name: Urgent SOS
            keywords: [sos, urgent]
            threshold: high
            notify_users: [emergency_coordinator]
            auto_escalate: true
    """

    @staticmethod
    def load(path: Path) -> AlertRuleSet:
        """
        Load rules from a YAML file.

        A missing file yields the built-in default rule table.

        Raises:
            ConfigurationException: If the file is not valid YAML or rules
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Alert rule file not found: {path}, using defaults")
            return DEFAULT_ALERT_RULES

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Invalid alert rule YAML in {path}: {e}")

        if isinstance(data, list):
            data = {"rules": data}

        try:
            rule_set = AlertRuleSet(**data)
        except (ValidationError, TypeError) as e:
            raise ConfigurationException(f"Invalid alert rules in {path}: {e}")

        logger.info(
            "Alert rules loaded",
            extra={"path": str(path), "rule_count": len(rule_set.rules)}
        )
        return rule_set
