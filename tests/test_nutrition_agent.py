"""Tests for nutrition estimates from meal descriptions."""
import pytest

from agents.nutrition_agent import NutritionAgent, normalize_estimate, parse_int_safe


class TestParseIntSafe:

    @pytest.mark.parametrize("value, expected", [
        (12, 12),
        (12.9, 12),
        (" 30 ", 30),
        ("12.5", 0),
        ("lots", 0),
        (None, 0),
        (True, 0),
        ([1], 0),
    ])
    def test_values(self, value, expected):
        assert parse_int_safe(value) == expected

    def test_custom_default(self):
        assert parse_int_safe(None, default=-1) == -1


class TestNormalizeEstimate:

    def test_camel_case_keys(self):
        estimate = normalize_estimate({"calories": 450, "proteinGrams": 35, "fatGrams": "28",
                                       "confidence": "medium"})
        assert (estimate.calories, estimate.protein_grams, estimate.fat_grams) == (450, 35, 28)
        assert estimate.carbs_grams == 0
        assert estimate.confidence == "medium"
        assert estimate.notes is None

    def test_legacy_keys(self):
        estimate = normalize_estimate({"cal": 200, "protein": 5, "carbs": 30, "sugar": 12})
        assert (estimate.calories, estimate.protein_grams, estimate.carbs_grams,
                estimate.sugar_grams) == (200, 5, 30, 12)

    def test_first_present_alias_wins(self):
        estimate = normalize_estimate({"proteinGrams": None, "protein_grams": 9, "protein": 1})
        assert estimate.protein_grams == 9


class TestNutritionAgent:

    def test_estimate_from_chatty_reply(self, scripted_ai):
        ai = scripted_ai('Sure! {"calories": 520, "proteinGrams": 40, "confidence": "high"} Enjoy.')
        estimate = NutritionAgent(ai).estimate("Chicken caesar salad")
        assert estimate.calories == 520
        assert estimate.protein_grams == 40
        assert estimate.confidence == "high"
        assert "Food: Chicken caesar salad" in ai.model.prompts[0]

    def test_no_api_key(self, offline_ai):
        assert NutritionAgent(offline_ai).estimate("Toast") is None

    def test_blank_description_skips_call(self, scripted_ai):
        ai = scripted_ai()
        assert NutritionAgent(ai).estimate("   ") is None
        assert ai.model.prompts == []

    def test_no_json(self, scripted_ai):
        assert NutritionAgent(scripted_ai("I can't tell from that.")).estimate("stuff") is None

    def test_model_error(self, scripted_ai):
        assert NutritionAgent(scripted_ai(RuntimeError("quota"))).estimate("Toast") is None
