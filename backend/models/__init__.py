# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.profile import Profile
from models.category import Category
from models.expense import Expense
from models.income import Income
from models.budget import Budget
from models.savings_goal import SavingsGoal
from models.subscription import Subscription
from models.achievement import Achievement, UserAchievement
from models.recommendation import Recommendation

__all__ = [
    "Profile",
    "Category",
    "Expense",
    "Income",
    "Budget",
    "SavingsGoal",
    "Subscription",
    "Achievement",
    "UserAchievement",
    "Recommendation",
]
