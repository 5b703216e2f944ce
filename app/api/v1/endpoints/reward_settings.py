"""API endpoints for a store's reward settings (loader and save action)."""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status

from app.api.deps import CurrentShop, SettingsService
from app.config import settings
from app.schemas.reward_settings import (
    REWARD_FIELD_NAMES,
    RewardSettingsViewModel,
    RewardSettingsSaveResponse,
)
from app.services.reward_settings_service import (
    RewardSettingsService,
    RewardSettingsReadError,
    RewardSettingsValidationError,
    RewardSettingsWriteError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_submitted_fields(request: Request) -> dict[str, Optional[str]]:
    """Pull the six reward fields out of a form-encoded body."""
    form = await request.form()
    fields = {}
    for name in REWARD_FIELD_NAMES:
        value = form.get(name)
        fields[name] = value if isinstance(value, str) else None
    return fields


async def load_settings_or_503(service: RewardSettingsService, shop: str) -> RewardSettingsViewModel:
    try:
        return await service.load_view_model(shop)
    except RewardSettingsReadError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not load reward settings: {e}"
        )


async def save_fields_or_raise(
    service: RewardSettingsService,
    shop: str,
    fields: dict[str, Optional[str]],
) -> None:
    try:
        await service.save_form(shop, fields, strict=settings.STRICT_REWARD_VALIDATION)
    except RewardSettingsValidationError as e:
        logger.info(f"Rejected reward settings for {shop}: {e.errors}")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors
        )
    except RewardSettingsWriteError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.get("", response_model=RewardSettingsViewModel)
async def get_reward_settings(
    shop: CurrentShop,
    service: SettingsService,
):
    """Get the shop's reward settings, or the defaults if none were saved."""
    return await load_settings_or_503(service, shop)


@router.post("", response_model=RewardSettingsSaveResponse)
async def save_reward_settings(
    request: Request,
    shop: CurrentShop,
    service: SettingsService,
):
    """
    Save the shop's reward settings from a form-encoded field set.

    Overwrites all six fields. Reload with GET to see the stored values.
    """
    fields = await read_submitted_fields(request)
    await save_fields_or_raise(service, shop, fields)
    return RewardSettingsSaveResponse(success=True)
