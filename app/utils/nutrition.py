from typing import Dict, Iterable

from app.schemas.meal_plan import Meal, MealPlanResponse

MACRO_KEYS = ("calories", "protein", "carbs", "fat")


def sum_meal_macros(meals: Iterable[Meal]) -> Dict[str, float]:
    total = {k: 0.0 for k in MACRO_KEYS}
    for meal in meals:
        for k in MACRO_KEYS:
            total[k] += float(getattr(meal.estimated_macros, k))
    return {k: round(v, 2) for k, v in total.items()}


def calorie_drift(plan: MealPlanResponse) -> float:
    # fraction of the daily calorie target the meals miss by; 0 when no target
    target = plan.daily_targets.calories
    if target <= 0:
        return 0.0
    eaten = sum_meal_macros(plan.meals)["calories"]
    return abs(eaten - target) / target
