"""
Template Routes
===============

Server-rendered HTML loaded by the headless browser.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import HTMLResponse

from naotimes_og.api.dependencies import AppState, get_app_state
from naotimes_og.api.responses import error_response
from naotimes_og.core.rendering.templates import TemplateRenderError
from naotimes_og.models.schemas import UserCardRequest

router = APIRouter(tags=["Templates"])


@router.get("/_/template/user_card")
async def handle_template_user_card(
    params: Annotated[UserCardRequest, Query()],
    state: AppState = Depends(get_app_state),
) -> Response:
    try:
        html = state.templates.render_user_card(params)
    except TemplateRenderError:
        return error_response("Error rendering template")
    return HTMLResponse(html)
