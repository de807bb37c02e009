"""
Music Thumbnails
================

Cover art lookup for the naoTimes music player: Bandcamp and SoundCloud
pages are scraped for their preview image, YouTube Music thumbnails are
cropped to a square.
"""

import asyncio
import io
from typing import Any, Optional

import aiohttp
from bs4 import BeautifulSoup
from PIL import Image

from naotimes_og.config.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/74.0.3729.115 Safari/537.36"
)
FETCH_TIMEOUT = aiohttp.ClientTimeout(total=30, connect=10)


class ThumbnailFetchError(Exception):
    """Exception raised when an upstream page or image cannot be used."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ThumbnailClient:
    """HTTP client for upstream music services."""

    def __init__(self, session_factory: Any = aiohttp.ClientSession):
        self._session_factory = session_factory
        self.logger: Any = logger.bind(component="thumbnails")

    async def fetch(self, url: str, not_found: str) -> bytes:
        """
        GET ``url`` and return the body.

        Raises:
            ThumbnailFetchError: 404 with ``not_found`` when upstream says so,
                500 for any other failure
        """
        try:
            async with self._session_factory(
                headers={"User-Agent": USER_AGENT}, timeout=FETCH_TIMEOUT
            ) as session:
                async with session.get(url) as response:
                    if response.status == 404:
                        raise ThumbnailFetchError(404, not_found)
                    if not 200 <= response.status < 300:
                        self.logger.warning("Upstream request failed", url=url, status=response.status)
                        raise ThumbnailFetchError(500, "Failed to fetch URL")
                    return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning("Upstream request error", url=url, error=str(e))
            raise ThumbnailFetchError(500, "Failed to fetch URL") from e


def _find_attr(html: bytes, selector: str, attribute: str) -> Optional[str]:
    soup = BeautifulSoup(html, "html.parser")
    element = soup.select_one(selector)
    if element is None:
        return None
    value = element.get(attribute)
    return str(value) if value else None


def find_bandcamp_image(html: bytes) -> Optional[str]:
    return _find_attr(html, 'link[rel="image_src"]', "href")


def find_soundcloud_image(html: bytes) -> Optional[str]:
    return _find_attr(html, 'meta[property="og:image"]', "content")


def crop_square(image_data: bytes) -> bytes:
    """Centre-crop an image to a square and encode it as PNG."""
    logger.info("Creating square thumbnail", size=len(image_data))
    with Image.open(io.BytesIO(image_data)) as image:
        width, height = image.size
        side = min(width, height)
        left = (width - side) // 2
        top = (height - side) // 2
        cropped = image.crop((left, top, left + side, top + side))

        output = io.BytesIO()
        cropped.save(output, format="PNG")
        return output.getvalue()
