"""Tests for alert rules, first-match evaluation and the YAML rule loader."""

import pytest
from pydantic import ValidationError

from priority_alerts.config import UrgencyLevel
from priority_alerts.core import ConfigurationException
from priority_alerts.triage.application import RuleMatcher
from priority_alerts.triage.domain import (
    AlertRule,
    AlertRuleSet,
    DEFAULT_ALERT_RULES,
    GeoPoint,
    LocationConstraint,
    UrgencyScorer,
    haversine_km,
)
from priority_alerts.triage.infrastructure.external import AlertRuleConfigLoader

from conftest import make_post, make_report


def _match(rules: AlertRuleSet, item):
    return RuleMatcher(rules).match(item, UrgencyScorer.score(item.text))


class TestRuleMatcher:
    def test_default_rules_match_sos_post(self):
        rule = _match(DEFAULT_ALERT_RULES, make_post("URGENT SOS trapped in building, need rescue now"))

        assert rule.id == "urgent_sos"

    def test_offers_of_help_match_nothing(self):
        assert _match(DEFAULT_ALERT_RULES, make_post("Volunteers offering shelter and donations")) is None

    def test_threshold_blocks_low_scores(self):
        # "evacuating" is a rule keyword but scores nothing on its own
        assert _match(DEFAULT_ALERT_RULES, make_post("evacuating")) is None

    def test_first_match_wins(self):
        rules = AlertRuleSet(rules=[
            AlertRule(id="first", name="First", keywords=["sos"], threshold="low"),
            AlertRule(id="second", name="Second", keywords=["sos"], threshold="low"),
        ])

        assert _match(rules, make_post("sos")).id == "first"

    def test_disabled_rules_are_skipped(self):
        rules = AlertRuleSet(rules=[
            AlertRule(id="off", name="Off", keywords=["sos"], threshold="low", enabled=False),
            AlertRule(id="on", name="On", keywords=["sos"], threshold="low"),
        ])

        assert _match(rules, make_post("sos")).id == "on"

    def test_platform_allow_list(self):
        rules = AlertRuleSet(rules=[
            AlertRule(id="tw", name="Twitter", keywords=["sos"], threshold="low", platforms=["Twitter"]),
        ])

        assert _match(rules, make_post("sos", platform="twitter")) is not None
        assert _match(rules, make_post("sos", platform="facebook")) is None
        assert _match(rules, make_report("sos")) is None

    def test_location_radius(self):
        houston = LocationConstraint(lat=29.76, lng=-95.37, radius_km=50)
        rules = AlertRuleSet(rules=[
            AlertRule(id="geo", name="Houston", keywords=["sos"], threshold="low", location=houston),
        ])

        assert _match(rules, make_report("sos")) is not None
        assert _match(rules, make_report("sos", location=GeoPoint(32.78, -96.80))) is None
        assert _match(rules, make_post("sos")) is None

    def test_rule_without_alert_creation_still_wins(self):
        rules = AlertRuleSet(rules=[
            AlertRule(id="mute", name="Mute", keywords=["sos"], threshold="low", create_alert=False),
            AlertRule(id="loud", name="Loud", keywords=["sos"], threshold="low"),
        ])

        assert _match(rules, make_post("sos")).id == "mute"

    def test_keywords_match_case_insensitively(self):
        rules = AlertRuleSet(rules=[
            AlertRule(id="r", name="R", keywords=["MayDay"], threshold="low"),
        ])

        assert _match(rules, make_post("mayday mayday")) is not None


class TestAlertRuleModel:
    def test_urgent_threshold_parses_to_critical(self):
        rule = AlertRule(id="r", name="R", keywords=["x"], threshold="URGENT")

        assert rule.threshold == UrgencyLevel.CRITICAL

    def test_keywords_required(self):
        with pytest.raises(ValidationError):
            AlertRule(id="r", name="R", keywords=[])

    def test_blank_keywords_rejected(self):
        with pytest.raises(ValidationError, match="non-blank"):
            AlertRule(id="r", name="R", keywords=[" ", ""])

    def test_terms_are_stripped_and_lowercased(self):
        rule = AlertRule(id="r", name="R", keywords=[" Flood "], platforms=[" "])

        assert rule.keywords == ("flood",)
        assert rule.platforms == ()

    def test_duplicate_ids_rejected(self):
        rule = AlertRule(id="r", name="R", keywords=["x"])
        with pytest.raises(ValidationError):
            AlertRuleSet(rules=[rule, rule])

    def test_haversine_distance(self):
        # Houston to Dallas is roughly 360 km
        distance = haversine_km(GeoPoint(29.7604, -95.3698), 32.7767, -96.7970)

        assert 350 < distance < 370


class TestAlertRuleConfigLoader:
    def test_missing_file_uses_defaults(self, tmp_path):
        assert AlertRuleConfigLoader.load(tmp_path / "absent.yaml") is DEFAULT_ALERT_RULES

    def test_loads_rules_in_order(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "rules:\n"
            "  - id: fire_watch\n"
            "    name: Fire Watch\n"
            "    keywords: [wildfire, smoke]\n"
            "    threshold: medium\n"
            "    platforms: [twitter]\n"
            "    location: {lat: 34.05, lng: -118.24, radius_km: 100}\n"
            "  - id: catch_all\n"
            "    name: Catch All\n"
            "    keywords: [help]\n"
            "    create_alert: false\n"
        )

        rule_set = AlertRuleConfigLoader.load(path)

        assert [rule.id for rule in rule_set.rules] == ["fire_watch", "catch_all"]
        assert rule_set.get("fire_watch").location.radius_km == 100
        assert rule_set.get("catch_all").create_alert is False

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules: [unclosed\n")

        with pytest.raises(ConfigurationException):
            AlertRuleConfigLoader.load(path)

    def test_invalid_rule_raises(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  - id: broken\n    name: Broken\n    threshold: extreme\n")

        with pytest.raises(ConfigurationException):
            AlertRuleConfigLoader.load(path)

    def test_blank_keyword_rule_raises(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  - id: blank\n    name: Blank\n    keywords: [\" \"]\n")

        with pytest.raises(ConfigurationException):
            AlertRuleConfigLoader.load(path)

    def test_shipped_rule_file_matches_defaults(self):
        from pathlib import Path

        shipped = Path(__file__).resolve().parent.parent / "alert_rules.yaml"

        assert AlertRuleConfigLoader.load(shipped) == DEFAULT_ALERT_RULES
