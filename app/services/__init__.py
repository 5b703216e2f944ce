# Services module
from app.services.reward_settings_service import RewardSettingsService

__all__ = [
    "RewardSettingsService",
]
