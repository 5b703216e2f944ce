"""
Reward settings service: load-with-defaults and upsert for one store.

Usage:
    service = RewardSettingsService(db)

    view_model = await service.load_view_model("shop1.myshopify.com")
    await service.save_form("shop1.myshopify.com", form_fields)
"""
import logging
import math
import re
from datetime import datetime, timezone
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.reward_settings import RewardSettings, RewardType
from app.schemas.reward_settings import (
    DEFAULT_REWARD_SETTINGS,
    REWARD_CATEGORIES,
    RewardSettingsRecord,
    RewardSettingsResponse,
    RewardSettingsViewModel,
)

logger = logging.getLogger(__name__)

# Longest numeric prefix, the way a browser's parseFloat reads form input
_FLOAT_PREFIX = re.compile(
    r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)

_REWARD_TYPES = {reward_type.value for reward_type in RewardType}


class RewardSettingsError(Exception):
    """Base exception for reward settings errors."""
    pass


class RewardSettingsValidationError(RewardSettingsError):
    """Submitted field set rejected by strict parsing."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        detail = "; ".join(f"{field}: {message}" for field, message in errors.items())
        super().__init__(f"Invalid reward settings: {detail}")


class RewardSettingsReadError(RewardSettingsError):
    """Settings could not be read from the database."""
    pass


class RewardSettingsWriteError(RewardSettingsError):
    """Settings upsert failed."""
    pass


def parse_float(raw: Optional[str]) -> float:
    """
    Parse a submitted value like parseFloat: leading whitespace is skipped,
    the longest numeric prefix is used, and anything else is NaN.
    """
    if raw is None:
        return math.nan

    match = _FLOAT_PREFIX.match(str(raw).lstrip())
    if not match:
        return math.nan

    return float(match.group(0).replace("Infinity", "inf"))


def parse_reward_settings_form(
    shop_domain: str,
    fields: Mapping[str, Optional[str]],
    strict: bool = False,
) -> RewardSettingsRecord:
    """
    Turn a flat string field set into a typed settings record.

    Lenient mode stores whatever was submitted: types pass through as-is and
    non-numeric values become NaN. Strict mode rejects unknown types and
    values that are not finite, non-negative numbers.

    Args:
        shop_domain: Store the record belongs to
        fields: Submitted form fields (<category>_type / <category>_value)
        strict: Validate instead of coercing

    Returns:
        RewardSettingsRecord stamped with the current UTC time

    Raises:
        RewardSettingsValidationError: strict mode and at least one bad field
    """
    values = {"shop_domain": shop_domain}
    errors: dict[str, str] = {}

    for category in REWARD_CATEGORIES:
        type_field = f"{category}_type"
        value_field = f"{category}_value"

        reward_type = fields.get(type_field)
        raw_value = fields.get(value_field)
        value = parse_float(raw_value)

        if strict:
            if reward_type not in _REWARD_TYPES:
                errors[type_field] = f"must be one of {sorted(_REWARD_TYPES)}"
            if raw_value is None or raw_value.strip() == "":
                errors[value_field] = "is required"
            else:
                # Store exactly the number that was validated
                value = _strict_float(raw_value)
                if not math.isfinite(value):
                    errors[value_field] = f"'{raw_value}' is not a number"
                elif value < 0:
                    errors[value_field] = "must not be negative"

        values[type_field] = reward_type if reward_type is not None else ""
        values[value_field] = value

    if errors:
        raise RewardSettingsValidationError(errors)

    values["updated_at"] = datetime.now(timezone.utc)
    return RewardSettingsRecord(**values)


def _strict_float(raw: str) -> float:
    # Whole string must be a number; "12abc" is NaN here
    try:
        return float(raw.strip())
    except ValueError:
        return math.nan


class RewardSettingsService:
    """Service for reading and writing a store's reward settings."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_settings(self, shop_domain: str) -> Optional[RewardSettings]:
        """
        Fetch the settings row for a shop.

        Returns:
            The row, or None when the shop has never saved settings

        Raises:
            RewardSettingsReadError: the query itself failed
        """
        try:
            result = await self.db.execute(
                select(RewardSettings).where(RewardSettings.shop_domain == shop_domain)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read reward settings for {shop_domain}: {e}")
            raise RewardSettingsReadError(_error_message(e)) from e

    async def load_view_model(self, shop_domain: str) -> RewardSettingsViewModel:
        """Build the settings page view model, falling back to defaults."""
        row = await self.get_settings(shop_domain)

        if row is None:
            logger.debug(f"No reward settings for {shop_domain}, using defaults")
            settings = RewardSettingsResponse(**DEFAULT_REWARD_SETTINGS)
        else:
            settings = RewardSettingsResponse.model_validate(row)

        return RewardSettingsViewModel(shop=shop_domain, settings=settings)

    async def upsert_settings(self, record: RewardSettingsRecord) -> None:
        """
        Insert or overwrite the row for record.shop_domain in one statement.

        Raises:
            RewardSettingsWriteError: the write failed; carries the database message
        """
        values = record.column_values()
        dialect = self.db.get_bind().dialect.name

        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise RewardSettingsWriteError(f"Upsert not supported for dialect '{dialect}'")

        stmt = insert(RewardSettings).values(
            created_at=record.updated_at,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RewardSettings.shop_domain],
            set_={
                column: stmt.excluded[column]
                for column in values
                if column != "shop_domain"
            },
        )

        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save reward settings for {record.shop_domain}: {e}")
            raise RewardSettingsWriteError(_error_message(e)) from e

        logger.info(f"Saved reward settings for {record.shop_domain}")

    async def save_form(
        self,
        shop_domain: str,
        fields: Mapping[str, Optional[str]],
        strict: bool = False,
    ) -> RewardSettingsRecord:
        """Parse a submitted field set and upsert it for the shop."""
        record = parse_reward_settings_form(shop_domain, fields, strict=strict)
        await self.upsert_settings(record)
        return record


def _error_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)
