"""Reward settings model: one reward configuration row per Shopify store.

Three independent reward rules, each a (type, value) pair:
- Affiliate commission on referred sales
- Customer discount when using an affiliate link
- Next-order coupon issued after a purchase without a coupon
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, Float, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class RewardType(str, Enum):
    """How a reward value is interpreted."""
    PERCENTAGE = "percentage"   # 0-100, share of the order
    FIXED = "fixed"             # Currency amount


class RewardSettings(Base):
    """
    Reward configuration for a single store.

    Created implicitly on the first save for a shop and fully overwritten on
    every later save.
    """
    __tablename__ = "reward_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    shop_domain: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Store identifier e.g. shop1.myshopify.com"
    )

    # Affiliate commission
    affiliate_reward_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RewardType.PERCENTAGE.value
    )
    affiliate_reward_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Customer discount
    customer_reward_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RewardType.PERCENTAGE.value
    )
    customer_reward_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Next order coupon
    next_order_discount_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RewardType.PERCENTAGE.value
    )
    next_order_discount_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<RewardSettings(shop_domain='{self.shop_domain}')>"
