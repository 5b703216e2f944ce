"""Pydantic schemas for the reward settings screen."""
import math
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from app.schemas.base import BaseResponseSchema, BaseCreateSchema
from app.models.reward_settings import RewardType


# Reward categories in display order; each maps to a <key>_type / <key>_value column pair
REWARD_CATEGORIES = ("affiliate_reward", "customer_reward", "next_order_discount")

REWARD_FIELD_NAMES = tuple(
    f"{category}_{suffix}" for category in REWARD_CATEGORIES for suffix in ("type", "value")
)

# Returned by the loader when a shop has never saved settings
DEFAULT_REWARD_SETTINGS = {
    "affiliate_reward_type": RewardType.PERCENTAGE.value,
    "affiliate_reward_value": 10,
    "customer_reward_type": RewardType.PERCENTAGE.value,
    "customer_reward_value": 5,
    "next_order_discount_type": RewardType.PERCENTAGE.value,
    "next_order_discount_value": 5,
}


# ==================== Read path ====================

class RewardSettingsResponse(BaseResponseSchema):
    """Settings as stored, or the defaults when no row exists."""
    id: Optional[int] = None
    shop_domain: Optional[str] = None
    affiliate_reward_type: Optional[str] = None
    affiliate_reward_value: Optional[float] = None
    customer_reward_type: Optional[str] = None
    customer_reward_value: Optional[float] = None
    next_order_discount_type: Optional[str] = None
    next_order_discount_value: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer(
        "affiliate_reward_value",
        "customer_reward_value",
        "next_order_discount_value",
        when_used="json",
    )
    def serialize_value(self, value: Optional[float]) -> Optional[float]:
        # JSON has no NaN/Infinity
        if value is None or not math.isfinite(value):
            return None
        return value


class RewardSettingsViewModel(BaseModel):
    """Data handed from the loader to the settings page."""
    shop: str
    settings: RewardSettingsResponse


# ==================== Write path ====================

class RewardSettingsRecord(BaseCreateSchema):
    """Typed settings row assembled from a submitted field set."""
    shop_domain: str = Field(..., min_length=1, max_length=255)
    affiliate_reward_type: str
    affiliate_reward_value: float
    customer_reward_type: str
    customer_reward_value: float
    next_order_discount_type: str
    next_order_discount_value: float
    updated_at: datetime

    def column_values(self) -> dict:
        """Values for an INSERT into reward_settings."""
        return self.model_dump()


class RewardSettingsSaveResponse(BaseModel):
    """Acknowledgement returned by the save action."""
    success: bool = True
