"""
chat_service.py - Finance assistant chat
Prepends a system message describing the user's last 30 days of spending
to the conversation and forwards it to the language model.
"""

from datetime import datetime, timedelta

from errors import UpstreamError
from services.report_service import ReportService, app_zone

LOOKBACK_DAYS = 30
MAX_EXPENSES = 500


class ChatService:
    @staticmethod
    def system_context(snapshot: dict) -> str:
        return (
            "You are a friendly financial assistant. Answer briefly and clearly.\n"
            f"User context (last {LOOKBACK_DAYS} days): total=${snapshot['total_amount']:.2f}, "
            f"transactions={snapshot['count']}, CO2={snapshot['total_carbon']:.2f}kg, "
            f"most frequent merchant={snapshot['top_merchant']}.\n"
            "Give practical tips in a casual tone, with no promises or guarantees. "
            "If the user asks for calculations, state your assumptions explicitly."
        )

    @staticmethod
    async def reply(db, user_id: str, provider, messages: list[dict], now: datetime | None = None) -> dict:
        now = now or datetime.now(app_zone())
        expenses = await db.select(
            "expenses",
            columns="amount, carbon_kg, merchant, transport_type, created_at",
            filters={"user_id": user_id},
            where=[("created_at", "gte", now - timedelta(days=LOOKBACK_DAYS))],
            order=[("created_at", False)],
            limit=MAX_EXPENSES,
        )
        snapshot = ReportService.spending_snapshot(expenses)

        payload = [{"role": "system", "content": ChatService.system_context(snapshot)}, *messages]
        result = await provider.chat(payload)
        if result.get("status") != "success":
            raise UpstreamError("Failed to generate a reply")

        return {"role": "assistant", "content": result.get("text") or "No response"}
