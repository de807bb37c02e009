"""
User Card Generator Routes
==========================

Screenshot the server-rendered user card and return it as a PNG.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from naotimes_og.api.dependencies import AppState, get_app_state
from naotimes_og.api.responses import error_response, image_response, report_render
from naotimes_og.config.logging import get_logger
from naotimes_og.core.telemetry.metadata import extract_client_metadata
from naotimes_og.models.schemas import ArtifactKind, TelemetryPolicy, UserCardRequest

logger = get_logger(__name__)

router = APIRouter(tags=["User Card"])

GENERATOR_PATH = "/_/generator/user_card"
TELEMETRY_POLICY = TelemetryPolicy.ON_SUCCESS


@router.get(GENERATOR_PATH)
async def handle_generator_user_card(
    request: Request,
    params: Annotated[UserCardRequest, Query()],
    state: AppState = Depends(get_app_state),
) -> Response:
    """
    Render a user card to PNG.

    The browser pipeline runs on the worker thread pool. Telemetry is only
    reported once the render has succeeded.
    """
    metadata = extract_client_metadata(request.headers)
    query_string = params.to_query_string()
    artifact_id = str(uuid.uuid4())

    logger.info("Generating User Card", uuid=artifact_id, username=params.username)
    outcome = await run_in_threadpool(state.renderer.render, query_string)

    await report_render(
        state,
        metadata,
        url=f"{GENERATOR_PATH}?{query_string}",
        uuid=artifact_id,
        succeeded=outcome.ok,
        policy=TELEMETRY_POLICY,
    )

    if not outcome.ok:
        logger.error(
            "Error generating user card",
            uuid=artifact_id,
            stage=outcome.failed_at.value if outcome.failed_at else None,
            reason=outcome.reason,
        )
        return error_response("Error generating user card")

    return image_response(outcome.image, artifact_id, ArtifactKind.USER_CARD)
