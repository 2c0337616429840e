"""NutritionAgent - Food Log Nutrition Estimates

Turns a free-text meal description ("caesar salad with grilled chicken")
into a NutritionEstimate for the food log.

Design Decisions:
    1. Returns None instead of raising: a missing estimate never blocks
       logging the meal itself
    2. Lenient parsing: the first flat JSON object in the reply is used, so
       chatty answers still work
    3. Key aliases: camelCase, snake_case and short legacy keys ("protein",
       "cal") all map onto the same fields; numeric strings are coerced
"""
import json
import logging
import re
from typing import Any, Dict, Optional

from core.observability import trace_agent
from models.wellness import NutritionEstimate
from services.ai_service import AIService, get_ai_service

logger = logging.getLogger(__name__)

FLAT_JSON_PATTERN = re.compile(r"\{[^{}]*\}")

# field -> accepted keys, in priority order
FIELD_ALIASES = {
    "calories": ("calories", "cal"),
    "protein_grams": ("proteinGrams", "protein_grams", "protein"),
    "carbs_grams": ("carbsGrams", "carbs_grams", "carbs"),
    "fat_grams": ("fatGrams", "fat_grams", "fat"),
    "saturated_fat_grams": ("saturatedFatGrams", "saturated_fat_grams", "saturatedFat"),
    "unsaturated_fat_grams": ("unsaturatedFatGrams", "unsaturated_fat_grams", "unsaturatedFat"),
    "trans_fat_grams": ("transFatGrams", "trans_fat_grams", "transFat"),
    "fiber_grams": ("fiberGrams", "fiber_grams", "fiber"),
    "sugar_grams": ("sugarGrams", "sugar_grams", "sugar"),
}

ESTIMATE_PROMPT = """Estimate the nutritional content of this food/meal. Be reasonable with portion sizes based on typical serving amounts.

Food: {description}

Respond with ONLY valid JSON in this exact format (no markdown, no explanation):
{{"calories": 450, "proteinGrams": 35, "carbsGrams": 20, "fatGrams": 28, "saturatedFatGrams": 8, "unsaturatedFatGrams": 18, "transFatGrams": 0, "fiberGrams": 4, "sugarGrams": 3, "confidence": "medium", "notes": "Estimated based on typical caesar salad with grilled chicken"}}

Guidelines:
- calories: total estimated calories (integer)
- proteinGrams, carbsGrams, fatGrams: grams (integer)
- saturatedFatGrams: from animal products, butter, cheese
- unsaturatedFatGrams: from olive oil, nuts, fish
- transFatGrams: typically 0 for whole foods
- fiberGrams, sugarGrams: grams (integer)
- confidence: "high" for common foods with clear portions, "medium" for typical meals, "low" for vague descriptions
- notes: brief explanation of your estimate (optional)

JSON:"""


def parse_int_safe(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def normalize_estimate(parsed: Dict[str, Any]) -> NutritionEstimate:
    values = {}
    for field_name, aliases in FIELD_ALIASES.items():
        raw = next((parsed[k] for k in aliases if parsed.get(k) is not None), None)
        values[field_name] = parse_int_safe(raw)

    confidence = parsed.get("confidence")
    notes = parsed.get("notes")
    return NutritionEstimate(
        confidence=str(confidence) if confidence is not None else None,
        notes=str(notes) if notes is not None else None,
        **values,
    )


class NutritionAgent:
    """Estimates calories and macros for a meal description."""

    def __init__(self, ai_service: Optional[AIService] = None):
        self.ai = ai_service or get_ai_service()

    @trace_agent
    def estimate(self, description: str) -> Optional[NutritionEstimate]:
        if not self.ai.has_api_key():
            logger.warning("Cannot estimate nutrition: no API key")
            return None
        if not description.strip():
            return None

        try:
            response = self.ai.get_coaching_response(ESTIMATE_PROMPT.format(description=description))
            match = FLAT_JSON_PATTERN.search(response)
            if not match:
                logger.warning(f"No JSON found in nutrition response: {response[:200]}")
                return None

            estimate = normalize_estimate(json.loads(match.group(0)))
            logger.info(f"Nutrition estimated: {estimate.calories} cal, {estimate.protein_grams}g protein "
                        f"({estimate.confidence})")
            return estimate
        except Exception as e:
            logger.error(f"Failed to estimate nutrition: {e}", exc_info=True)
            return None
