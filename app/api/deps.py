from typing import Annotated, Optional
import logging

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.core.security import verify_page_session_token, verify_session_token
from app.services.reward_settings_service import RewardSettingsService


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme; embedded page loads carry the token as ?id_token= instead
security = HTTPBearer(auto_error=False)

# Form field and query parameter carrying the settings page session
PAGE_SESSION_FIELD = "session_token"


async def get_current_shop(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    """
    Dependency to resolve the calling store.
    Validates the Shopify session token and returns the shop domain.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is not None:
        token = credentials.credentials
    else:
        token = request.query_params.get("id_token")

    if not token:
        logger.warning(f"No session token on {request.method} {request.url.path}")
        raise credentials_exception

    shop = verify_session_token(token)
    if shop is None:
        logger.warning("Session token verification failed - invalid or expired token")
        raise credentials_exception

    return shop


async def get_page_shop(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    """
    Dependency to resolve the store on the settings page.

    Accepts an App Bridge session token like get_current_shop, then falls
    back to the page session token the page hands out (query string on GET,
    hidden form field on POST) so a save still works after the short-lived
    App Bridge token has expired.
    """
    if credentials is not None:
        token = credentials.credentials
    else:
        token = request.query_params.get("id_token")

    shop = verify_session_token(token) if token else None
    if shop is not None:
        return shop

    page_token = request.query_params.get(PAGE_SESSION_FIELD)
    if page_token is None and request.method == "POST":
        form = await request.form()
        value = form.get(PAGE_SESSION_FIELD)
        page_token = value if isinstance(value, str) else None

    shop = verify_page_session_token(page_token) if page_token else None
    if shop is None:
        logger.warning(f"No valid session on {request.method} {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return shop


DB = Annotated[AsyncSession, Depends(get_db)]


def get_reward_settings_service(db: DB) -> RewardSettingsService:
    return RewardSettingsService(db)


# Type aliases for cleaner endpoint signatures
CurrentShop = Annotated[str, Depends(get_current_shop)]
PageShop = Annotated[str, Depends(get_page_shop)]
SettingsService = Annotated[RewardSettingsService, Depends(get_reward_settings_service)]
