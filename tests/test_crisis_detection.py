"""Tests for tiered crisis detection."""
import pytest

from models.reflection import PatternType
from services.crisis_detection import (
    CRISIS_RECOMMENDATION,
    MILD_RECOMMENDATION,
    MODERATE_RECOMMENDATION,
    SEVERE_RECOMMENDATION,
    URGENT_RECOMMENDATION,
    CrisisDetectionService,
    PatternSeverity,
)


@pytest.fixture
def service():
    return CrisisDetectionService()


class TestAnalyze:
    """Severity tiers for free text."""

    def test_crisis_keyword(self, service):
        result = service.analyze("Sometimes I think everyone would be better off dead without me")
        assert result.is_crisis
        assert result.severity == PatternSeverity.CRISIS
        assert result.requires_immediate_intervention
        assert result.detected_keywords == ["better off dead"]
        assert result.recommendation == CRISIS_RECOMMENDATION

    def test_three_severe_keywords_are_urgent(self, service):
        result = service.analyze("I feel hopeless and worthless, I just want to give up")
        assert result.is_crisis
        assert result.severity == PatternSeverity.SEVERE
        assert result.recommendation == URGENT_RECOMMENDATION
        assert len(result.concerning_phrases) == 3

    def test_two_severe_and_two_moderate_are_urgent(self, service):
        """Mixed distress signals escalate to immediate intervention."""
        result = service.analyze("It's pointless and I'm useless. I'm falling apart and completely alone.")
        assert result.requires_immediate_intervention
        assert result.recommendation == URGENT_RECOMMENDATION

    def test_single_severe_keyword(self, service):
        result = service.analyze("Everything feels pointless this week")
        assert not result.is_crisis
        assert result.severity == PatternSeverity.SEVERE
        assert result.recommendation == SEVERE_RECOMMENDATION

    def test_three_moderate_keywords(self, service):
        result = service.analyze("It's unbearable, I'm breaking down and nobody cares")
        assert result.severity == PatternSeverity.SEVERE
        assert not result.requires_immediate_intervention
        assert result.detected_keywords == []

    def test_moderate(self, service):
        result = service.analyze("Work has been unbearable lately")
        assert result.severity == PatternSeverity.MODERATE
        assert result.recommendation == MODERATE_RECOMMENDATION

    def test_mild(self, service):
        result = service.analyze("Had a quiet walk and a good lunch")
        assert result.severity == PatternSeverity.MILD
        assert result.recommendation == MILD_RECOMMENDATION
        assert result.concerning_phrases == []

    def test_case_insensitive(self, service):
        assert service.requires_immediate_intervention("I WANT TO DIE")

    def test_phrase_is_ellipsised(self, service):
        text = "a" * 80 + " suicidal " + "b" * 80
        phrase = service.analyze(text).concerning_phrases[0]
        assert phrase.startswith("...")
        assert phrase.endswith("...")
        assert "suicidal" in phrase


class TestPatternSeverity:

    @pytest.mark.parametrize("pattern, confidence, count, expected", [
        (PatternType.IMPULSE_CONTROL, 0.8, 5, PatternSeverity.SEVERE),
        (PatternType.IMPULSE_CONTROL, 0.8, 4, PatternSeverity.MODERATE),
        (PatternType.NEGATIVE_THOUGHT_SPIRALS, 0.9, 1, PatternSeverity.SEVERE),
        (PatternType.SELF_CRITICISM, 0.8, 4, PatternSeverity.SEVERE),
        (PatternType.AVOIDANCE, 0.5, 3, PatternSeverity.MODERATE),
        (PatternType.OVERWHELM, 0.4, 1, PatternSeverity.MILD),
    ])
    def test_thresholds(self, service, pattern, confidence, count, expected):
        assert service.assess_pattern_severity(pattern, confidence, count) == expected


def test_crisis_actions_lead_with_helpline(service):
    assert service.get_crisis_actions()[0] == "Call Samaritans: 116 123 (24/7, free)"
    assert len(service.get_safety_check_questions()) == 4
