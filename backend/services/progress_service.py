"""
progress_service.py - Budget and savings-goal progress
Percent-complete values, the "reached" predicate and additive contributions.
"""

from errors import ValidationError
from services.report_service import to_number


class ProgressService:
    @staticmethod
    def percent(numerator, denominator) -> float:
        """Raw percentage; zero when the denominator is not positive."""
        n = to_number(numerator)
        d = to_number(denominator)
        return (n / d) * 100 if d > 0 else 0

    @staticmethod
    def clamped_percent(numerator, denominator) -> float:
        """Percentage for progress bars, never above 100."""
        return min(100, ProgressService.percent(numerator, denominator))

    @staticmethod
    def reached(numerator, denominator) -> bool:
        return to_number(numerator) >= to_number(denominator)

    @staticmethod
    def contribute(saved_amount, add_amount: float) -> float:
        """New saved amount after adding a contribution. Rejects add_amount <= 0."""
        if add_amount is None or add_amount <= 0:
            raise ValidationError(
                "Contribution must be positive",
                details=[{"field": "addAmount", "message": "Must be greater than 0"}],
            )
        return to_number(saved_amount) + add_amount

    # ------------------------------------------------------------------
    @staticmethod
    def budget_view(row: dict) -> dict:
        limit_amount = to_number(row.get("limit_amount"))
        spent_amount = to_number(row.get("spent_amount"))
        return {
            "id": row.get("id"),
            "category_id": row.get("category_id"),
            "limit_amount": limit_amount,
            "spent_amount": spent_amount,
            "month": row.get("month"),
            "year": row.get("year"),
            "category": row.get("category") or None,
            "percent_used": ProgressService.percent(spent_amount, limit_amount),
            "bar_percent": ProgressService.clamped_percent(spent_amount, limit_amount),
        }

    @staticmethod
    def budget_summary(budgets: list[dict]) -> dict:
        total_limit = sum(b["limit_amount"] for b in budgets)
        total_spent = sum(b["spent_amount"] for b in budgets)
        return {
            "total_limit": total_limit,
            "total_spent": total_spent,
            "percent_used": ProgressService.percent(total_spent, total_limit),
        }

    @staticmethod
    def goal_view(row: dict) -> dict:
        target = to_number(row.get("target_amount"))
        saved = to_number(row.get("saved_amount"))
        return {
            **row,
            "target_amount": target,
            "saved_amount": saved,
            "progress": ProgressService.percent(saved, target),
            "bar_percent": ProgressService.clamped_percent(saved, target),
            "reached": ProgressService.reached(saved, target),
        }
