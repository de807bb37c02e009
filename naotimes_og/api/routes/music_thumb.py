"""
Music Thumbnail Routes
======================

Cover art for the naoTimes music player.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from naotimes_og.api.dependencies import AppState, get_app_state
from naotimes_og.api.responses import error_response
from naotimes_og.config.logging import get_logger
from naotimes_og.core.rendering.thumbnails import (
    ThumbnailFetchError,
    crop_square,
    find_bandcamp_image,
    find_soundcloud_image,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/_/thumbs", tags=["Music Thumbnails"])


@router.get("/bandcamp")
async def handle_bandcamp_thumb(url: str, state: AppState = Depends(get_app_state)) -> Response:
    logger.info("Processing bandcamp URL", url=url)
    html = await state.thumbnails.fetch(url, not_found=f"Bandcamp not found: `{url}`")

    image_url = find_bandcamp_image(html)
    if image_url is None:
        raise ThumbnailFetchError(404, "Failed to find image")
    return RedirectResponse(image_url, status_code=303)


@router.get("/soundcloud/{artist}/{title}")
async def handle_soundcloud_thumb(
    artist: str, title: str, state: AppState = Depends(get_app_state)
) -> Response:
    logger.info("Processing soundcloud track", artist=artist, title=title)
    html = await state.thumbnails.fetch(
        f"https://soundcloud.com/{artist}/{title}",
        not_found=f"Soundcloud track not found: `/{artist}/{title}`",
    )

    image_url = find_soundcloud_image(html)
    if image_url is None:
        raise ThumbnailFetchError(404, "Failed to find image")
    return RedirectResponse(image_url, status_code=303)


@router.get("/ytm/{video_id}")
async def handle_youtube_music_thumb(
    video_id: str, state: AppState = Depends(get_app_state)
) -> Response:
    logger.info("Processing YouTube Music thumbnail", video_id=video_id)
    image_data = await state.thumbnails.fetch(
        f"https://i.ytimg.com/vi/{video_id}/maxresdefault.jpg",
        not_found=f"YouTube Music track not found: `{video_id}`",
    )

    try:
        data = await run_in_threadpool(crop_square, image_data)
    except OSError as e:
        logger.error("Error writing cropped image to buffer", video_id=video_id, error=str(e))
        return error_response("Error writing cropped image to buffer")

    return Response(
        content=data,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="{video_id}.thumb.png"'},
    )
