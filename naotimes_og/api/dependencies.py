"""
Application Context
===================

Shared per-process state handed to every route through FastAPI dependencies.
"""

from dataclasses import dataclass
from typing import Any, Optional

import aiohttp
from fastapi import Request

from naotimes_og.config.settings import Settings, get_settings
from naotimes_og.core.rendering.og_image import OGImageComposer
from naotimes_og.core.rendering.screenshot import ArtifactRenderer, EngineFactory
from naotimes_og.core.rendering.templates import UserCardTemplates
from naotimes_og.core.rendering.thumbnails import ThumbnailClient
from naotimes_og.core.telemetry.dispatcher import TelemetryDispatcher


@dataclass
class AppState:
    """Everything the routes share. One instance per application."""

    settings: Settings
    telemetry: TelemetryDispatcher
    renderer: ArtifactRenderer
    og_composer: OGImageComposer
    templates: UserCardTemplates
    thumbnails: ThumbnailClient


def build_app_state(
    settings: Optional[Settings] = None,
    engine_factory: Optional[EngineFactory] = None,
    session_factory: Any = aiohttp.ClientSession,
) -> AppState:
    """
    Assemble the application context.

    Args:
        settings: Settings to use, defaults to the global settings
        engine_factory: Browser engine factory for the screenshot pipeline
        session_factory: aiohttp session factory for outbound requests
    """
    settings = settings or get_settings()
    return AppState(
        settings=settings,
        telemetry=TelemetryDispatcher(settings, session_factory=session_factory),
        renderer=ArtifactRenderer(engine_factory, settings),
        og_composer=OGImageComposer(settings),
        templates=UserCardTemplates(),
        thumbnails=ThumbnailClient(session_factory),
    )


def get_app_state(request: Request) -> AppState:
    """Dependency returning the application context."""
    return request.app.state.ctx
