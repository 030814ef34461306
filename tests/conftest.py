import copy

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings, get_settings
from app.main import app
from app.meal_plans.ai_service import PlanGenerated
from app.meal_plans.router import get_generator
from app.schemas.meal_plan import MealPlanResponse

from .fakes import FakeGenerator

SAMPLE_PLAN = {
    "assumptions": {"mealsPerDay": 4, "notes": "Assumed no allergies."},
    "dailyTargets": {"calories": 2000, "protein": 150, "carbs": 200, "fat": 70},
    "meals": [
        {
            "name": "Greek Yogurt Oats",
            "mealType": "breakfast",
            "description": "Overnight oats with yogurt and berries.",
            "portionGuidance": "1 cup oats, 200g yogurt, handful of berries",
            "estimatedMacros": {"calories": 500, "protein": 40, "carbs": 60, "fat": 12},
            "swapOptions": ["Swap yogurt for cottage cheese"],
        },
        {
            "name": "Chicken Rice Bowl",
            "mealType": "lunch",
            "description": "Grilled chicken over rice with greens.",
            "portionGuidance": "150g chicken, 1 cup rice",
            "estimatedMacros": {"calories": 600, "protein": 45, "carbs": 65, "fat": 18},
            "swapOptions": [],
        },
        {
            "name": "Salmon and Potatoes",
            "mealType": "dinner",
            "description": "Baked salmon with roasted potatoes.",
            "portionGuidance": "150g salmon, 200g potatoes",
            "estimatedMacros": {"calories": 650, "protein": 45, "carbs": 50, "fat": 28},
            "swapOptions": ["Use trout", "Use sweet potato"],
        },
        {
            "name": "Apple and Peanut Butter",
            "mealType": "snack",
            "description": "Sliced apple with peanut butter.",
            "portionGuidance": "1 apple, 1 tbsp peanut butter",
            "estimatedMacros": {"calories": 250, "protein": 20, "carbs": 25, "fat": 12},
            "swapOptions": [],
        },
    ],
    "notes": "Macros are rough estimates.",
}


@pytest.fixture
def plan_dict():
    return copy.deepcopy(SAMPLE_PLAN)


@pytest.fixture
def settings():
    return Settings(GEMINI_API_KEY="test-key", PRIVACY_MODE="strict")


@pytest.fixture
def fake_generator(plan_dict):
    return FakeGenerator(PlanGenerated(MealPlanResponse.model_validate(plan_dict)))


@pytest.fixture
def client(fake_generator, settings):
    app.dependency_overrides[get_generator] = lambda: fake_generator
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()
