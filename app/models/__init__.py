# Import all models so Base.metadata sees every table
from app.models.reward_settings import RewardSettings, RewardType

__all__ = [
    "RewardSettings",
    "RewardType",
]
