import asyncio
import json

import pytest

from app.core.config import Settings
from app.meal_plans.ai_service import (
    MealPlanGenerator,
    PlanCallError,
    PlanFormatError,
    PlanGenerated,
    response_schema,
)
from app.schemas.meal_plan import PlanConstraints


class FakeResponse:
    def __init__(self, text=None, blocked=False):
        self._text = text
        self._blocked = blocked

    @property
    def text(self):
        if self._blocked:
            raise ValueError("response was blocked")
        return self._text


class FakeModel:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    async def generate_content_async(self, prompt, generation_config=None, request_options=None):
        self.calls.append({"prompt": prompt, "config": generation_config, "options": request_options})
        if self.exc is not None:
            raise self.exc
        return self.response


def _run(generator, prompt="Calories: 2000"):
    return asyncio.run(generator.generate(prompt))


@pytest.fixture
def settings():
    return Settings(GEMINI_API_KEY="k", REQUEST_TIMEOUT=12)


def test_valid_output_is_generated(settings, plan_dict):
    model = FakeModel(FakeResponse(json.dumps(plan_dict)))
    result = _run(MealPlanGenerator(settings, model=model))
    assert isinstance(result, PlanGenerated)
    assert [m.meal_type for m in result.plan.meals] == ["breakfast", "lunch", "dinner", "snack"]
    assert len(model.calls) == 1
    assert model.calls[0]["prompt"] == "Calories: 2000"
    assert model.calls[0]["options"] == {"timeout": 12}


def test_fenced_json_is_accepted(settings, plan_dict):
    text = "```json\n" + json.dumps(plan_dict) + "\n```"
    result = _run(MealPlanGenerator(settings, model=FakeModel(FakeResponse(text))))
    assert isinstance(result, PlanGenerated)


def test_three_meals_is_a_format_error(settings, plan_dict):
    plan_dict["meals"] = plan_dict["meals"][:3]
    result = _run(MealPlanGenerator(settings, model=FakeModel(FakeResponse(json.dumps(plan_dict)))))
    assert isinstance(result, PlanFormatError)


def test_unknown_meal_type_is_a_format_error(settings, plan_dict):
    plan_dict["meals"][3]["mealType"] = "dessert"
    result = _run(MealPlanGenerator(settings, model=FakeModel(FakeResponse(json.dumps(plan_dict)))))
    assert isinstance(result, PlanFormatError)


def test_repeated_meal_type_is_a_format_error(settings, plan_dict):
    plan_dict["meals"][3]["mealType"] = "lunch"
    result = _run(MealPlanGenerator(settings, model=FakeModel(FakeResponse(json.dumps(plan_dict)))))
    assert isinstance(result, PlanFormatError)


def test_overlong_name_is_a_format_error(settings, plan_dict):
    plan_dict["meals"][0]["name"] = "x" * 61
    result = _run(MealPlanGenerator(settings, model=FakeModel(FakeResponse(json.dumps(plan_dict)))))
    assert isinstance(result, PlanFormatError)


@pytest.mark.parametrize("text", ["", "not json at all", "{\"meals\": "])
def test_unparsable_text_is_a_format_error(settings, text):
    result = _run(MealPlanGenerator(settings, model=FakeModel(FakeResponse(text))))
    assert isinstance(result, PlanFormatError)


def test_blocked_response_is_a_format_error(settings):
    result = _run(MealPlanGenerator(settings, model=FakeModel(FakeResponse(blocked=True))))
    assert isinstance(result, PlanFormatError)


def test_provider_exception_is_a_call_error(settings):
    boom = ConnectionError("network down")
    model = FakeModel(exc=boom)
    result = _run(MealPlanGenerator(settings, model=model))
    assert isinstance(result, PlanCallError)
    assert result.error is boom
    assert len(model.calls) == 1


def test_missing_api_key_is_a_call_error():
    result = _run(MealPlanGenerator(Settings(GEMINI_API_KEY="")))
    assert isinstance(result, PlanCallError)


def test_schema_pins_meal_count():
    schema = response_schema(PlanConstraints(meal_count=3, one_of_each_type=True))
    meals = schema["properties"]["meals"]
    assert meals["min_items"] == meals["max_items"] == 3
    item = meals["items"]
    assert item["properties"]["mealType"]["enum"] == ["breakfast", "lunch", "dinner", "snack"]
    assert item["properties"]["swapOptions"]["max_items"] == 2


def test_constraints_reject_impossible_combination():
    with pytest.raises(ValueError):
        PlanConstraints(meal_count=5, one_of_each_type=True)
