"""AI Service

Thin wrapper around the Gemini model so every agent talks to the AI the
same way: a prompt goes in, text or JSON comes out. Agents never touch
`google.generativeai` directly, which lets tests swap in a fake model.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

from config.llm import get_gemini_model

logger = logging.getLogger(__name__)

JSON_CONFIG = {"response_mime_type": "application/json"}


class AIUnavailableError(RuntimeError):
    """Raised when an AI call is made without a configured model."""


def strip_code_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def extract_json_object(text: str, pattern: str = r"\{[\s\S]*\}") -> Dict[str, Any]:
    """
    Pull a JSON object out of a model reply.

    Tries the whole (fence-stripped) reply first, then the first regex match,
    so chatty replies like "Sure! {...}" still parse.

    Raises:
        ValueError: if no JSON object can be parsed.
    """
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    match = re.search(pattern, cleaned)
    if not match:
        raise ValueError("No JSON object found in AI response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in AI response: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError("AI response JSON is not an object")
    return parsed


class AIService:
    """Request/response access to the mentor model."""

    def __init__(self, model=None):
        self.model = model

    def has_api_key(self) -> bool:
        return self.model is not None

    def get_coaching_response(self, prompt: str) -> str:
        """Plain-text reply for conversational prompts."""
        if self.model is None:
            raise AIUnavailableError("AI model not configured (GOOGLE_API_KEY missing)")
        response = self.model.generate_content(prompt)
        return response.text.strip()

    def get_json_response(self, prompt: str) -> Dict[str, Any]:
        """Structured reply; the model is asked for JSON and the result is parsed."""
        if self.model is None:
            raise AIUnavailableError("AI model not configured (GOOGLE_API_KEY missing)")
        response = self.model.generate_content(prompt, generation_config=JSON_CONFIG)
        return extract_json_object(response.text)


_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    """Get or create the global AI service."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService(get_gemini_model())
    return _ai_service
