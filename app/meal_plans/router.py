import logging
import time
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from app.core.config import Settings, get_settings
from app.schemas.meal_plan import InvalidPlanRequest, MacroPlanRequest, parse_plan_request
from app.utils.nutrition import calorie_drift, sum_meal_macros
from app.utils.privacy import log_plan_audit
from .ai_service import MealPlanGenerator, PlanCallError, PlanFormatError
from .prompts import build_user_prompt

logger = logging.getLogger(__name__)

router = APIRouter(tags=["plan"])

FORMAT_ERROR_MESSAGE = "AI returned an unexpected format. Please try again."
CALL_ERROR_MESSAGE = "Failed to generate meal plan at this time."


@lru_cache
def _default_generator() -> MealPlanGenerator:
    return MealPlanGenerator(get_settings())


def get_generator() -> MealPlanGenerator:
    return _default_generator()


def request_id_for(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    if not rid:
        rid = str(uuid.uuid4())
        request.state.request_id = rid
    return rid


def error_response(status_code: int, error: str, request_id: Optional[str], details: Any = None) -> JSONResponse:
    content: Dict[str, Any] = {"error": error}
    if request_id:
        content["requestId"] = request_id
    if details is not None:
        content["details"] = details
    headers = {"x-request-id": request_id} if request_id else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@router.post("/analyze")
async def analyze_plan(
    request: Request,
    payload: Any = Body(default=None),
    generator: MealPlanGenerator = Depends(get_generator),
    settings: Settings = Depends(get_settings),
):
    request_id = request_id_for(request)
    received_at = datetime.now(timezone.utc)

    try:
        plan_req = parse_plan_request(payload)
    except InvalidPlanRequest as e:
        logger.info("[PLAN:%s] invalid_request fields=%s", request_id, sorted(e.details["fieldErrors"]))
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body", request_id, e.details)

    prompt = build_user_prompt(plan_req)
    mode = "macros" if isinstance(plan_req, MacroPlanRequest) else "text"
    logger.info("[PLAN:%s] admitted mode=%s prompt_chars=%d", request_id, mode, len(prompt))

    t0 = time.perf_counter()
    result = await generator.generate(prompt)
    provider_ms = (time.perf_counter() - t0) * 1000

    if await request.is_disconnected():
        logger.info("[PLAN:%s] client_disconnected after %.0fms", request_id, provider_ms)

    if isinstance(result, PlanFormatError):
        logger.error("[PLAN:%s] parse_failed %s", request_id, result.reason)
        return error_response(status.HTTP_502_BAD_GATEWAY, FORMAT_ERROR_MESSAGE, request_id)

    if isinstance(result, PlanCallError):
        logger.error("[PLAN:%s] provider_error=%r", request_id, result.error, exc_info=result.error)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, CALL_ERROR_MESSAGE, request_id)

    plan = result.plan
    drift = calorie_drift(plan)
    if drift > settings.MACRO_DRIFT_TOLERANCE:
        logger.warning(
            "[PLAN:%s] calorie_drift=%.0f%% meals_kcal=%s target_kcal=%s",
            request_id, drift * 100, sum_meal_macros(plan.meals)["calories"], plan.daily_targets.calories,
        )

    logger.info(
        "[PLAN:%s] ok provider_ms=%.0f meals=%d targets=%skcal",
        request_id, provider_ms, len(plan.meals), plan.daily_targets.calories,
    )
    log_plan_audit(settings, request_id, prompt, meal_count=len(plan.meals), received_at=received_at)

    return JSONResponse(
        content=plan.model_dump(mode="json", by_alias=True),
        headers={"x-request-id": request_id},
    )
