import os
from pydantic import BaseModel
from dotenv import load_dotenv
from functools import lru_cache
from typing import List

from app.schemas.meal_plan import PlanConstraints

load_dotenv()


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name, "").strip()
    return [o.strip() for o in raw.split(",") if o.strip()] or default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    PROJECT_NAME: str = "Chapter Two API"
    VERSION: str = "1.0.0"
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    MODEL_NAME: str = os.getenv("MEALPLAN_MODEL", "gemini-2.0-flash")
    MAX_TOKENS: int = int(os.getenv("MEALPLAN_MAX_TOKENS", "2000"))
    TEMPERATURE: float = float(os.getenv("MEALPLAN_TEMPERATURE", "0.4"))
    REQUEST_TIMEOUT: float = float(os.getenv("MEALPLAN_TIMEOUT_SECONDS", "60"))
    MEALS_PER_PLAN: int = int(os.getenv("MEALPLAN_MEALS", "4"))
    ONE_MEAL_PER_TYPE: bool = _env_bool("MEALPLAN_ONE_PER_TYPE", True)
    MACRO_DRIFT_TOLERANCE: float = float(os.getenv("MEALPLAN_DRIFT_TOLERANCE", "0.15"))
    PRIVACY_MODE: str = os.getenv("FH_PRIVACY_MODE", "strict")
    CORS_ALLOW_ORIGINS: List[str] = _env_list("CORS_ALLOW_ORIGINS", [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ])
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "text")

    def plan_constraints(self) -> PlanConstraints:
        return PlanConstraints(
            meal_count=self.MEALS_PER_PLAN,
            one_of_each_type=self.ONE_MEAL_PER_TYPE,
        )


@lru_cache
def get_settings():
    return Settings()
