from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urlparse

from jose import JWTError, jwt

from app.config import settings


def decode_session_token(token: str) -> Optional[dict[str, Any]]:
    """
    Decode and validate a Shopify session token.

    Session tokens are short-lived JWTs issued by App Bridge, signed with the
    app's API secret and addressed to the app's API key.

    Args:
        token: The encoded session token

    Returns:
        Decoded token payload or None if invalid
    """
    if not token:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.SHOPIFY_API_SECRET,
            algorithms=[settings.SESSION_TOKEN_ALGORITHM],
            audience=settings.SHOPIFY_API_KEY or None,
            options={"leeway": settings.SESSION_TOKEN_LEEWAY_SECONDS},
        )
        return payload
    except JWTError:
        return None


def _host(url: Optional[str]) -> str:
    if not url:
        return ""
    return (urlparse(url).netloc or "").lower()


def shop_from_session_token(payload: dict[str, Any]) -> Optional[str]:
    """
    Extract the shop domain from a decoded session token.

    The shop is the host of the "dest" claim. When an "iss" claim is present
    it must point at the same shop.
    """
    shop = _host(payload.get("dest"))
    if not shop:
        return None

    issuer = payload.get("iss")
    if issuer is not None and _host(issuer) != shop:
        return None

    return shop


def verify_session_token(token: str) -> Optional[str]:
    """
    Verify a session token and return the shop domain it was issued for.

    Args:
        token: The encoded session token

    Returns:
        Shop domain (e.g. "shop1.myshopify.com") or None if invalid
    """
    payload = decode_session_token(token)
    if payload is None:
        return None

    return shop_from_session_token(payload)


PAGE_SESSION_TOKEN_TYPE = "page_session"


def create_page_session_token(shop: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a page session token for the settings form.

    App Bridge session tokens live about a minute, which is shorter than an
    edit on the settings page. The page exchanges the verified load-time
    token for this one and posts it back with the form.

    Args:
        shop: Shop domain the verified session token resolved to
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.PAGE_SESSION_EXPIRE_MINUTES)

    to_encode = {
        "sub": shop,
        "exp": expire,
        "iat": now,
        "type": PAGE_SESSION_TOKEN_TYPE,
    }
    return jwt.encode(to_encode, settings.SHOPIFY_API_SECRET, algorithm=settings.SESSION_TOKEN_ALGORITHM)


def verify_page_session_token(token: str) -> Optional[str]:
    """
    Verify a page session token and return its shop domain.

    App Bridge session tokens carry no "type" claim and are rejected here.
    """
    if not token:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.SHOPIFY_API_SECRET,
            algorithms=[settings.SESSION_TOKEN_ALGORITHM],
            options={"leeway": settings.SESSION_TOKEN_LEEWAY_SECONDS},
        )
    except JWTError:
        return None

    if payload.get("type") != PAGE_SESSION_TOKEN_TYPE:
        return None

    return payload.get("sub") or None
