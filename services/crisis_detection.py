"""Crisis Detection

Keyword and phrase matching that flags suicidal ideation, self-harm and
severe distress in free text. Recommendations and helplines follow UK
mental health guidance.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from models.reflection import PatternType

logger = logging.getLogger(__name__)


class PatternSeverity(Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRISIS = "crisis"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def description(self) -> str:
        return {
            PatternSeverity.MILD: "Manageable with self-help techniques",
            PatternSeverity.MODERATE: "Consider speaking to a professional",
            PatternSeverity.SEVERE: "Strongly recommend professional support",
            PatternSeverity.CRISIS: "Immediate help needed",
        }[self]


@dataclass
class CrisisDetectionResult:
    is_crisis: bool
    severity: PatternSeverity
    detected_keywords: List[str] = field(default_factory=list)
    concerning_phrases: List[str] = field(default_factory=list)
    recommendation: str = ""
    requires_immediate_intervention: bool = False


# Immediate danger: suicidal ideation, active self-harm, plans.
CRISIS_KEYWORDS = [
    "kill myself", "end my life", "want to die", "better off dead",
    "suicide", "suicidal", "end it all", "not worth living",
    "no reason to live", "goodbye cruel world",
    "hurt myself", "harm myself", "cut myself", "cutting myself", "burn myself",
    "going to kill", "planning to die", "have a plan", "wrote a note",
    "said goodbye", "final message",
]

# High distress: hopelessness, severe depression or panic, contemplated self-harm.
SEVERE_KEYWORDS = [
    "no hope", "hopeless", "nothing will help", "will never get better",
    "pointless", "can't go on", "give up",
    "worthless", "useless", "burden to everyone",
    "everyone better off without me", "hate myself so much",
    "having a panic attack", "cannot breathe", "heart racing uncontrollably",
    "think i am dying",
    "thinking about hurting", "thoughts of self-harm", "urge to hurt", "want to cut",
]

# Elevated risk: passive ideation, emotional pain, isolation, loss of control.
MODERATE_KEYWORDS = [
    "wish i was dead", "wish i could disappear", "don't want to be here",
    "tired of living",
    "unbearable", "cannot take it anymore", "can't cope", "falling apart",
    "breaking down",
    "completely alone", "nobody cares", "no one understands", "abandoned",
    "losing my mind", "going crazy", "cannot control", "spiraling",
]

CRISIS_RECOMMENDATION = (
    "You mentioned thoughts of ending your life. Your safety is the top priority. "
    "Please reach out for immediate help:\n\n"
    "• Samaritans: 116 123 (24/7)\n"
    "• Shout Crisis Text: Text SHOUT to 85258\n"
    "• NHS 111 for mental health crisis\n"
    "• 999 if in immediate danger\n\n"
    "You don't have to go through this alone. There are people who want to help."
)

URGENT_RECOMMENDATION = (
    "What you're describing sounds very difficult and distressing. "
    "Please consider speaking to a mental health professional urgently:\n\n"
    "• Contact your GP for urgent referral\n"
    "• Call NHS 111 for mental health support\n"
    "• Samaritans: 116 123 (24/7 to talk)\n\n"
    "This app can support you, but professional help is important when you're struggling this much."
)

SEVERE_RECOMMENDATION = (
    "It sounds like you're going through a really tough time. "
    "Speaking to a mental health professional could be helpful:\n\n"
    "• Book an appointment with your GP\n"
    "• Call Samaritans (116 123) if you need to talk\n"
    "• Mind Infoline: 0300 123 3393\n\n"
    "Remember, asking for help is a sign of strength, not weakness."
)

MODERATE_RECOMMENDATION = (
    "I notice you're struggling. Consider:\n\n"
    "• Talking to someone you trust\n"
    "• Booking a GP appointment if this continues\n"
    "• Using your safety plan if you have one\n"
    "• Practicing self-care and coping strategies\n\n"
    "Monitor how you're feeling. If things get worse, please reach out for professional support."
)

MILD_RECOMMENDATION = (
    "Continue using self-help strategies. If your mood worsens, don't hesitate to seek support."
)


def _extract_phrase(text: str, keyword: str, radius: int = 50) -> str:
    """About `radius` characters either side of the keyword, ellipsised where cut."""
    index = text.lower().find(keyword.lower())
    if index == -1:
        return ""
    start = max(0, index - radius)
    end = min(len(text), index + len(keyword) + radius)
    phrase = text[start:end].strip()
    if start > 0:
        phrase = f"...{phrase}"
    if end < len(text):
        phrase = f"{phrase}..."
    return phrase


class CrisisDetectionService:
    """Tiered keyword matching over user text."""

    def analyze(self, text: str) -> CrisisDetectionResult:
        lower = text.lower()
        concerning_phrases: List[str] = []

        crisis_matches = [k for k in CRISIS_KEYWORDS if k in lower]
        for keyword in crisis_matches:
            concerning_phrases.append(_extract_phrase(text, keyword))

        severe_matches = [k for k in SEVERE_KEYWORDS if k in lower]
        for keyword in severe_matches:
            if len(concerning_phrases) < 3:
                concerning_phrases.append(_extract_phrase(text, keyword))

        moderate_matches = [k for k in MODERATE_KEYWORDS if k in lower]

        is_crisis = False
        immediate = False
        if crisis_matches:
            severity = PatternSeverity.CRISIS
            is_crisis = immediate = True
            recommendation = CRISIS_RECOMMENDATION
        elif len(severe_matches) >= 3 or (len(severe_matches) >= 2 and len(moderate_matches) >= 2):
            severity = PatternSeverity.SEVERE
            is_crisis = immediate = True
            recommendation = URGENT_RECOMMENDATION
        elif severe_matches or len(moderate_matches) >= 3:
            severity = PatternSeverity.SEVERE
            recommendation = SEVERE_RECOMMENDATION
        elif moderate_matches:
            severity = PatternSeverity.MODERATE
            recommendation = MODERATE_RECOMMENDATION
        else:
            severity = PatternSeverity.MILD
            recommendation = MILD_RECOMMENDATION

        if is_crisis:
            logger.warning(f"Crisis indicators detected (severity={severity.value}, "
                           f"{len(crisis_matches) + len(severe_matches)} keywords)")

        return CrisisDetectionResult(
            is_crisis=is_crisis,
            severity=severity,
            detected_keywords=crisis_matches + severe_matches,
            concerning_phrases=concerning_phrases,
            recommendation=recommendation,
            requires_immediate_intervention=immediate,
        )

    def assess_pattern_severity(self, pattern: PatternType, confidence: float,
                                occurrence_count: int) -> PatternSeverity:
        """Severity for a recurring thinking pattern."""
        if pattern == PatternType.IMPULSE_CONTROL and confidence >= 0.8 and occurrence_count >= 5:
            return PatternSeverity.SEVERE
        if pattern == PatternType.NEGATIVE_THOUGHT_SPIRALS and confidence >= 0.9:
            return PatternSeverity.SEVERE
        if pattern in (PatternType.SELF_CRITICISM, PatternType.AVOIDANCE) \
                and confidence >= 0.8 and occurrence_count >= 4:
            return PatternSeverity.SEVERE
        if confidence >= 0.6 or occurrence_count >= 3:
            return PatternSeverity.MODERATE
        return PatternSeverity.MILD

    def requires_immediate_intervention(self, text: str) -> bool:
        return self.analyze(text).requires_immediate_intervention

    def get_safety_check_questions(self) -> List[str]:
        return [
            "Are you thinking about harming yourself right now?",
            "Are you safe where you are?",
            "Do you have a plan to end your life?",
            "Is there someone with you who can help keep you safe?",
        ]

    def get_crisis_actions(self) -> List[str]:
        return [
            "Call Samaritans: 116 123 (24/7, free)",
            "Text SHOUT to 85258 (crisis text line)",
            "Call NHS 111 for mental health crisis",
            "Call 999 if in immediate danger",
            "Go to A&E if you cannot keep yourself safe",
            "Call someone you trust to stay with you",
            "Use your safety plan if you have one",
            "Remove any means of self-harm from your environment",
        ]


_crisis_service = None


def get_crisis_detection_service() -> CrisisDetectionService:
    """Get or create the global crisis detection service."""
    global _crisis_service
    if _crisis_service is None:
        _crisis_service = CrisisDetectionService()
    return _crisis_service
