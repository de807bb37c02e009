"""
OG Image Routes
===============

Open Graph preview card for naoTimes servers.
"""

import uuid
from typing import Annotated, Tuple

from fastapi import APIRouter, Depends, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from naotimes_og.api.dependencies import AppState, get_app_state
from naotimes_og.api.responses import error_response, image_response, report_render
from naotimes_og.config.logging import get_logger
from naotimes_og.core.rendering.og_image import OGImageComposer, OGImageError
from naotimes_og.core.telemetry.metadata import extract_client_metadata
from naotimes_og.models.schemas import ArtifactKind, OGImageRequest, TelemetryPolicy

logger = get_logger(__name__)

router = APIRouter(tags=["OG Image"])

OG_IMAGE_PATH = "/large"
TELEMETRY_POLICY = TelemetryPolicy.ALWAYS


def create_og_image(
    composer: OGImageComposer, params: OGImageRequest, artifact_id: str
) -> Tuple[bytes, str]:
    """Composite the card, returning empty bytes on failure."""
    logger.info("Generating OG Image", uuid=artifact_id, params=params.model_dump())
    try:
        return composer.compose(params, artifact_id), artifact_id
    except OGImageError as e:
        logger.error("Error creating OG Image", uuid=artifact_id, error=str(e))
        return b"", artifact_id


@router.get(OG_IMAGE_PATH)
async def handle_og_image_request(
    request: Request,
    params: Annotated[OGImageRequest, Query()],
    state: AppState = Depends(get_app_state),
) -> Response:
    """Render the OG card. Telemetry is reported whether or not it succeeded."""
    metadata = extract_client_metadata(request.headers)
    query_string = params.to_query_string()

    data, artifact_id = await run_in_threadpool(
        create_og_image, state.og_composer, params, str(uuid.uuid4())
    )

    await report_render(
        state,
        metadata,
        url=f"{OG_IMAGE_PATH}?{query_string}",
        uuid=artifact_id,
        succeeded=bool(data),
        policy=TELEMETRY_POLICY,
    )

    if not data:
        return error_response("Error creating OG Image")

    return image_response(data, artifact_id, ArtifactKind.OG_IMAGE)
