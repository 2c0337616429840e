"""Shared fixtures: a scripted stand-in for the Gemini model and fresh providers."""
import json

import pytest

from providers.goal_provider import GoalProvider
from providers.habit_provider import HabitProvider
from providers.journal_provider import JournalProvider
from providers.win_provider import WinProvider
from services.ai_service import AIService


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """
    Replays scripted replies in order, one per generate_content call.

    A reply may be a string, a dict (sent as JSON) or an exception to raise.
    Prompts are recorded in `prompts` for assertions.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def generate_content(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        if not self.replies:
            raise RuntimeError("FakeModel has no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            reply = json.dumps(reply)
        return FakeResponse(reply)


@pytest.fixture
def scripted_ai():
    """Factory: scripted_ai(*replies) -> AIService backed by a FakeModel."""
    def make(*replies):
        return AIService(FakeModel(*replies))
    return make


@pytest.fixture
def offline_ai():
    """AI service with no model configured (missing API key)."""
    return AIService(None)


@pytest.fixture
def wins():
    return WinProvider()


@pytest.fixture
def goals():
    return GoalProvider()


@pytest.fixture
def habits(wins):
    return HabitProvider(win_provider=wins)


@pytest.fixture
def journal():
    return JournalProvider()
