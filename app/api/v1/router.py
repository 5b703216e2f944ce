from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Reward Settings (loader + save action)
    reward_settings,
    # Embedded admin page
    settings_page,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Reward Settings ====================
api_router.include_router(
    reward_settings.router,
    prefix="/reward-settings",
    tags=["Reward Settings"]
)


# Pages served inside the Shopify admin iframe
page_router = APIRouter(prefix="/app")

# ==================== Settings Page ====================
page_router.include_router(
    settings_page.router,
    prefix="/settings",
    tags=["Pages"]
)
