"""Embedded admin page for editing reward settings."""
from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from app.api.deps import PAGE_SESSION_FIELD, PageShop, SettingsService
from app.api.v1.endpoints.reward_settings import (
    load_settings_or_503,
    read_submitted_fields,
    save_fields_or_raise,
)
from app.core.security import create_page_session_token
from app.views.reward_settings_page import (
    RewardSettingsFormState,
    render_reward_settings_page,
)

router = APIRouter()


def _page_url(request: Request, **params: str) -> str:
    # Tokens never go back into the action URL; the page session replaces them
    url = request.url.remove_query_params(["id_token", PAGE_SESSION_FIELD, "saved"])
    if params:
        url = url.include_query_params(**params)
    if url.query:
        return f"{url.path}?{url.query}"
    return url.path


@router.get("", response_class=HTMLResponse)
async def reward_settings_page(
    request: Request,
    shop: PageShop,
    service: SettingsService,
):
    """Render the settings form hydrated from the stored (or default) settings."""
    view_model = await load_settings_or_503(service, shop)
    state = RewardSettingsFormState.from_view_model(view_model)

    html_content = render_reward_settings_page(
        state,
        shop=view_model.shop,
        action_url=_page_url(request),
        session_token=create_page_session_token(shop),
        saved=request.query_params.get("saved") == "1",
    )
    return HTMLResponse(content=html_content)


@router.post("")
async def submit_reward_settings_page(
    request: Request,
    shop: PageShop,
    service: SettingsService,
):
    """Save the submitted form, then send the browser back to the page to reload."""
    fields = await read_submitted_fields(request)
    await save_fields_or_raise(service, shop, fields)

    return RedirectResponse(
        url=_page_url(
            request,
            **{PAGE_SESSION_FIELD: create_page_session_token(shop), "saved": "1"},
        ),
        status_code=status.HTTP_303_SEE_OTHER
    )
