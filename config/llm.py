"""LLM Configuration for the MentorMe coach.

This module handles Gemini model initialization with appropriate safety settings.
"""
import logging
import google.generativeai as genai
from config.settings import GOOGLE_API_KEY, GEMINI_MODEL_NAME

logger = logging.getLogger(__name__)


def get_gemini_model(model_name: str = GEMINI_MODEL_NAME):
    """
    Configures and returns a Gemini model instance.

    Args:
        model_name: Gemini model to use (default from GEMINI_MODEL_NAME)

    Returns:
        GenerativeModel instance or None if API key is missing.
    """
    if not GOOGLE_API_KEY:
        logger.warning("GOOGLE_API_KEY not set. Mentor agents will use fallback mode.")
        return None

    genai.configure(api_key=GOOGLE_API_KEY)

    # Crisis disclosures must still get a reply: dangerous content blocks at HIGH only.
    safety_settings = [
        {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
        {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
        {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
        {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_ONLY_HIGH"},
    ]

    model = genai.GenerativeModel(
        model_name=model_name,
        safety_settings=safety_settings,
    )
    return model
