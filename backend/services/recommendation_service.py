"""
recommendation_service.py - AI savings & eco recommendations
Summarizes the last 30 days of spending, asks the language model for a JSON
array of recommendations and coerces whatever comes back into typed drafts.
Unparseable model output yields an empty batch instead of an error.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Literal

from pydantic import BaseModel, field_validator

from config import RECOMMENDATION_TTL_DAYS
from errors import UpstreamError
from services.report_service import app_zone, to_number

logger = logging.getLogger(__name__)

FOCUS_AREAS = ("savings", "eco", "transport", "health")
LOOKBACK_DAYS = 30
MAX_EXPENSES = 500

RECOMMENDATION_SCHEMA = """[
  {
    "title": string,
    "description": string,
    "category": string,
    "potential_savings": number,
    "carbon_reduction": number,
    "action_steps": string[],
    "priority": "low" | "medium" | "high"
  }
]"""


class RecommendationDraft(BaseModel):
    """One recommendation as returned by the model, with defaults for anything missing."""

    title: str = "Recommendation"
    description: str = ""
    category: str = "general"
    potential_savings: float = 0
    carbon_reduction: float = 0
    action_steps: list[str] = []
    priority: Literal["low", "medium", "high"] = "medium"

    @field_validator("title", "description", "category", mode="before")
    @classmethod
    def _text(cls, v, info):
        if not v:
            return cls.model_fields[info.field_name].default
        return str(v)

    @field_validator("potential_savings", "carbon_reduction", mode="before")
    @classmethod
    def _number(cls, v):
        return to_number(v)

    @field_validator("action_steps", mode="before")
    @classmethod
    def _steps(cls, v):
        if not isinstance(v, list):
            return []
        return [str(step) for step in v if step is not None]

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v):
        return v if v in ("low", "medium", "high") else "medium"

    def to_row(self, user_id: str, now: datetime) -> dict:
        return {
            "user_id": user_id,
            **self.model_dump(),
            "seen": False,
            "created_at": now,
            "expires_at": now + timedelta(days=RECOMMENDATION_TTL_DAYS),
        }


def parse_recommendations(content: str | None) -> list[RecommendationDraft]:
    """Parse model output into drafts; a single object counts as a one-item list."""
    items: Any = None
    text = (content or "").strip()
    try:
        items = json.loads(text)
    except ValueError:
        # Models sometimes wrap the array in prose or markdown fences
        start, end = text.find("["), text.rfind("]") + 1
        if start != -1 and end > start:
            try:
                items = json.loads(text[start:end])
            except ValueError:
                items = None

    if items is None:
        logger.warning("Model returned invalid JSON for recommendations: %.200s", text)
        return []
    if not isinstance(items, list):
        items = [items]
    return [RecommendationDraft.model_validate(it) for it in items if isinstance(it, dict)]


class RecommendationService:
    @staticmethod
    def build_messages(total: float, carbon_total: float, focus: str | None) -> list[dict]:
        prompt = (
            "You are a financial and environmental assistant. Generate recommendations as JSON "
            f"following this schema:\n{RECOMMENDATION_SCHEMA}\n"
            f"Based on the last {LOOKBACK_DAYS} days: total={total:.2f}, CO2={carbon_total:.2f}kg, "
            f"focus={focus or 'general'}. Reply only with valid JSON (no markdown)."
        )
        return [
            {"role": "system", "content": "Reply only with valid JSON."},
            {"role": "user", "content": prompt},
        ]

    @staticmethod
    async def generate(db, user_id: str, provider, focus: str | None = None,
                       now: datetime | None = None) -> list[dict]:
        now = now or datetime.now(app_zone())
        expenses = await db.select(
            "expenses",
            columns="amount, category_id, carbon_kg, merchant, description, created_at",
            filters={"user_id": user_id},
            where=[("created_at", "gte", now - timedelta(days=LOOKBACK_DAYS))],
            order=[("created_at", False)],
            limit=MAX_EXPENSES,
        )
        total = sum(to_number(e.get("amount")) for e in expenses)
        carbon_total = sum(to_number(e.get("carbon_kg")) for e in expenses)

        result = await provider.chat(RecommendationService.build_messages(total, carbon_total, focus))
        if result.get("status") != "success":
            raise UpstreamError("Failed to generate recommendations")

        drafts = parse_recommendations(result.get("text") or "[]")
        if not drafts:
            return []
        return await db.insert("recommendations", [d.to_row(user_id, now) for d in drafts])

    @staticmethod
    async def list_active(db, user_id: str, now: datetime | None = None) -> list[dict]:
        """Recommendations that have not expired yet, newest first."""
        now = now or datetime.now(app_zone())
        return await db.select(
            "recommendations",
            filters={"user_id": user_id},
            where=[("expires_at", "gt", now)],
            order=[("created_at", False)],
        )
