import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.core.config import Settings

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE)
PHONE_RE = re.compile(r"\b(?:\+1[-.\s]?)?(?:\(?\d{3}\)?[-.\s]?)?\d{3}[-.\s]?\d{4}\b")
PREVIEW_CHARS = 120


def scrub_plan_text(raw: str) -> str:
    """Replace email addresses and phone numbers with placeholders."""
    scrubbed = EMAIL_RE.sub("[EMAIL]", raw)
    return PHONE_RE.sub("[PHONE]", scrubbed)


def log_plan_audit(
    settings: Settings,
    request_id: str,
    prompt: str,
    meal_count: Optional[int] = None,
    received_at: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """Emit an audit line about a plan request unless privacy mode is strict.

    Returns the logged record, or None when nothing was logged.
    """
    if settings.PRIVACY_MODE.lower() == "strict":
        return None
    record = {
        "requestId": request_id,
        "planLength": len(prompt),
        "receivedAt": (received_at or datetime.now(timezone.utc)).isoformat(),
        "model": settings.MODEL_NAME,
        "mealCount": meal_count,
        "preview": scrub_plan_text(prompt)[:PREVIEW_CHARS],
    }
    logger.info("plan_audit %s", record)
    return record
