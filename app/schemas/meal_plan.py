from typing import Any, Dict, Iterable, List, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")
MealType = Literal["breakfast", "lunch", "dinner", "snack"]

MIN_PLAN_TEXT = 5


class PlanConstraints(BaseModel):
    """Shape rules for a generated plan that vary between prompt revisions."""
    meal_count: int = Field(4, ge=1, le=8)
    one_of_each_type: bool = True

    @model_validator(mode="after")
    def _fits_meal_types(self):
        if self.one_of_each_type and self.meal_count > len(MEAL_TYPES):
            raise ValueError("one_of_each_type allows at most 4 meals")
        return self


DEFAULT_CONSTRAINTS = PlanConstraints()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Requests ----------

class MacroTargets(CamelModel):
    calories: int = Field(ge=0, strict=True)
    protein: int = Field(ge=0, strict=True)
    carbs: int = Field(ge=0, strict=True)
    fats: int = Field(ge=0, strict=True)


class MacroPlanRequest(CamelModel):
    macros: MacroTargets
    details: str = ""

    @field_validator("details", mode="before")
    @classmethod
    def _trim_details(cls, v):
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v


class FreeTextPlanRequest(CamelModel):
    plan_text: str

    @field_validator("plan_text")
    @classmethod
    def _trim_plan_text(cls, v: str) -> str:
        v = v.strip()
        if len(v) < MIN_PLAN_TEXT:
            raise ValueError("Please enter your macros and any restrictions.")
        return v


PlanRequest = Union[FreeTextPlanRequest, MacroPlanRequest]


class InvalidPlanRequest(Exception):
    """Raised when an inbound body matches neither request shape."""

    def __init__(self, details: Dict[str, Any]):
        super().__init__("Invalid request body")
        self.details = details


def flatten_errors(errors: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Group pydantic errors into form-level and per-field messages."""
    form_errors: List[str] = []
    field_errors: Dict[str, List[str]] = {}
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        if loc:
            field_errors.setdefault(loc, []).append(err["msg"])
        else:
            form_errors.append(err["msg"])
    return {"formErrors": form_errors, "fieldErrors": field_errors}


def parse_plan_request(raw: Any) -> PlanRequest:
    """Validate an untyped JSON body into one of the two request shapes.

    A body carrying a ``macros`` key is treated as structured targets, anything
    else as free text. Raises ``InvalidPlanRequest`` listing every bad field.
    """
    model = MacroPlanRequest if isinstance(raw, dict) and "macros" in raw else FreeTextPlanRequest
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise InvalidPlanRequest(flatten_errors(exc.errors())) from exc


# ---------- Model output ----------

class MacroTotals(CamelModel):
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)


class Assumptions(CamelModel):
    meals_per_day: int = Field(ge=1, le=8)
    notes: str = Field(max_length=200)


class Meal(CamelModel):
    name: str = Field(max_length=60)
    meal_type: MealType
    description: str = Field(max_length=120)
    portion_guidance: str = Field(max_length=160)
    estimated_macros: MacroTotals
    swap_options: List[str] = Field(default_factory=list, max_length=2)

    @field_validator("swap_options")
    @classmethod
    def _cap_swaps(cls, v: List[str]) -> List[str]:
        for swap in v:
            if len(swap) > 80:
                raise ValueError("swap option longer than 80 characters")
        return v


class MealPlanResponse(CamelModel):
    assumptions: Assumptions
    daily_targets: MacroTotals
    meals: List[Meal]
    notes: str = Field(max_length=200)

    @model_validator(mode="after")
    def _check_meals(self, info: ValidationInfo):
        constraints = (info.context or {}).get("constraints", DEFAULT_CONSTRAINTS)
        if len(self.meals) != constraints.meal_count:
            raise ValueError(f"expected exactly {constraints.meal_count} meals, got {len(self.meals)}")
        if constraints.one_of_each_type:
            seen = [m.meal_type for m in self.meals]
            if len(set(seen)) != len(seen):
                raise ValueError("meals must contain one each of " + ", ".join(MEAL_TYPES))
        return self
