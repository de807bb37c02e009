"""
Artifact Responses
==================

Response builders and telemetry reporting shared by the render routes.
"""

from fastapi import Response

from naotimes_og.api.dependencies import AppState
from naotimes_og.config.logging import get_logger
from naotimes_og.models.schemas import (
    ArtifactKind,
    ClientMetadata,
    TelemetryEvent,
    TelemetryPolicy,
)

logger = get_logger(__name__)

CACHE_CONTROL = "public, max-age=600"


def image_response(data: bytes, uuid: str, kind: ArtifactKind) -> Response:
    """200 PNG response, cacheable for ten minutes."""
    return Response(
        content=data,
        status_code=200,
        media_type="image/png",
        headers={
            "Content-Disposition": f'inline; filename="{uuid}.{kind.value}.png"',
            "Cache-Control": CACHE_CONTROL,
        },
    )


def error_response(message: str, status_code: int = 500) -> Response:
    return Response(content=message, status_code=status_code, media_type="text/plain")


async def report_render(
    state: AppState,
    metadata: ClientMetadata,
    url: str,
    uuid: str,
    succeeded: bool,
    policy: TelemetryPolicy = TelemetryPolicy.ON_SUCCESS,
) -> None:
    """Dispatch the pageview event for a finished render, following ``policy``."""
    if policy is TelemetryPolicy.ON_SUCCESS and not succeeded:
        logger.debug("Skipping telemetry for failed render", url=url)
        return

    event = TelemetryEvent(url=url, props={"uuid": uuid})
    await state.telemetry.dispatch(event, metadata)
