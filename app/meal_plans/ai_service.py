import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import google.generativeai as genai
from pydantic import ValidationError

from app.core.config import Settings
from app.schemas.meal_plan import MEAL_TYPES, MealPlanResponse, PlanConstraints
from .prompts import system_prompt


@dataclass
class PlanGenerated:
    plan: MealPlanResponse


@dataclass
class PlanFormatError:
    reason: str


@dataclass
class PlanCallError:
    error: Exception


PlanResult = Union[PlanGenerated, PlanFormatError, PlanCallError]


def _macro_schema() -> Dict[str, Any]:
    keys = ["calories", "protein", "carbs", "fat"]
    return {
        "type": "object",
        "properties": {k: {"type": "number"} for k in keys},
        "required": keys,
    }


def response_schema(constraints: PlanConstraints) -> Dict[str, Any]:
    """Gemini response_schema mirroring MealPlanResponse.

    Length caps are not expressible here; they are checked locally.
    """
    meal = {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "mealType": {"type": "string", "enum": list(MEAL_TYPES)},
            "description": {"type": "string"},
            "portionGuidance": {"type": "string"},
            "estimatedMacros": _macro_schema(),
            "swapOptions": {"type": "array", "items": {"type": "string"}, "max_items": 2},
        },
        "required": ["name", "mealType", "description", "portionGuidance", "estimatedMacros", "swapOptions"],
    }
    return {
        "type": "object",
        "properties": {
            "assumptions": {
                "type": "object",
                "properties": {
                    "mealsPerDay": {"type": "integer"},
                    "notes": {"type": "string"},
                },
                "required": ["mealsPerDay", "notes"],
            },
            "dailyTargets": _macro_schema(),
            "meals": {
                "type": "array",
                "items": meal,
                "min_items": constraints.meal_count,
                "max_items": constraints.meal_count,
            },
            "notes": {"type": "string"},
        },
        "required": ["assumptions", "dailyTargets", "meals", "notes"],
    }


def _extract_json(text: str) -> str:
    m = re.search(r"```json\s*({.*})\s*```", text, re.DOTALL | re.IGNORECASE)
    if m:
        return m.group(1)
    start = text.find("{"); end = text.rfind("}") + 1
    return text[start:end] if start != -1 and end > start else text


class MealPlanGenerator:
    """Single schema-constrained call to Gemini, no retries."""

    def __init__(self, settings: Settings, model: Optional[Any] = None):
        self.settings = settings
        self.constraints = settings.plan_constraints()
        self._model = model

    def _get_model(self):
        if self._model is None:
            genai.configure(api_key=self.settings.GEMINI_API_KEY)
            self._model = genai.GenerativeModel(
                self.settings.MODEL_NAME,
                system_instruction=system_prompt(self.constraints),
            )
        return self._model

    def _generation_config(self):
        return genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=response_schema(self.constraints),
            max_output_tokens=self.settings.MAX_TOKENS,
            temperature=self.settings.TEMPERATURE,
        )

    def parse(self, raw: str) -> PlanResult:
        """Validate provider text against MealPlanResponse."""
        if not raw.strip():
            return PlanFormatError("empty response")
        try:
            data = json.loads(_extract_json(raw))
        except json.JSONDecodeError as e:
            return PlanFormatError(f"invalid json: {e}")
        try:
            plan = MealPlanResponse.model_validate(data, context={"constraints": self.constraints})
        except ValidationError as e:
            return PlanFormatError(f"schema mismatch: {e.error_count()} error(s): {e.errors()[:3]}")
        return PlanGenerated(plan)

    async def generate(self, user_prompt: str) -> PlanResult:
        if not self.settings.GEMINI_API_KEY and self._model is None:
            return PlanCallError(RuntimeError("GEMINI_API_KEY is not configured"))
        try:
            model = self._get_model()
            response = await model.generate_content_async(
                user_prompt,
                generation_config=self._generation_config(),
                request_options={"timeout": self.settings.REQUEST_TIMEOUT},
            )
        except Exception as e:
            return PlanCallError(e)

        try:
            raw = response.text or ""
        except ValueError as e:
            # .text raises when the candidate was blocked or carries no parts
            return PlanFormatError(f"no text in response: {e}")
        return self.parse(raw)
