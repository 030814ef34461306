from app.schemas.meal_plan import DEFAULT_CONSTRAINTS, MEAL_TYPES, MacroPlanRequest, PlanConstraints, PlanRequest

BASE_PROMPT = """
You are Chapter Two AI. Create meal ideas that fit the user's macro targets and any dietary restrictions/preferences mentioned.

Rules:
- Output ONLY a single JSON object that matches the provided schema. No extra keys. No markdown.
- Use everyday whole foods. Keep meals simple and realistic, ready in 30 minutes or less.
- Macro numbers are rough estimates, not exact calculations.
- Do not give medical advice or guarantee outcomes.
- If key information is missing, make reasonable assumptions and write them in assumptions.notes. Do NOT ask questions.

OUTPUT CONSTRAINTS (MUST FOLLOW):
- {meal_rule}
- description: 1 sentence, keep it short.
- Keep portionGuidance brief.
- swapOptions: 0-2 items per meal.
- Keep assumptions.notes and notes short.
- Output ONLY valid JSON. No extra text.
"""


def system_prompt(constraints: PlanConstraints = DEFAULT_CONSTRAINTS) -> str:
    if constraints.one_of_each_type and constraints.meal_count == len(MEAL_TYPES):
        meal_rule = f"Return exactly {constraints.meal_count} meals total: {', '.join(MEAL_TYPES)} (one each)."
    elif constraints.one_of_each_type:
        meal_rule = f"Return exactly {constraints.meal_count} meals total, each with a different mealType."
    else:
        meal_rule = f"Return exactly {constraints.meal_count} meals total."
    return BASE_PROMPT.format(meal_rule=meal_rule).strip()


SYSTEM_PROMPT = system_prompt()


def build_user_prompt(req: PlanRequest) -> str:
    if isinstance(req, MacroPlanRequest):
        m = req.macros
        return "\n".join([
            "Daily macro targets:",
            f"Calories: {m.calories}",
            f"Protein: {m.protein}g",
            f"Carbs: {m.carbs}g",
            f"Fat: {m.fats}g",
            f"Details: {req.details or 'none'}",
        ])
    return req.plan_text
