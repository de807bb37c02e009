"""
FastAPI Application
==================

Application factory, lifespan, middleware and error handlers for the
naoTimes Open Graph service.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from naotimes_og.api.dependencies import AppState, build_app_state
from naotimes_og.api.routes import generator, music_thumb, og_image, template
from naotimes_og.config.logging import get_logger
from naotimes_og.config.settings import get_settings
from naotimes_og.core.rendering.thumbnails import ThumbnailFetchError

logger = get_logger(__name__)

BANNER = "</> Made for naoTimes by @noaione</>"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    state: AppState = app.state.ctx
    logger.info(
        "Starting naoTimes Open Graph",
        host=state.settings.host,
        port=state.settings.port,
        telemetry=state.telemetry.enabled,
    )

    try:
        yield
    finally:
        logger.info("Shutting down naoTimes Open Graph")
        try:
            await state.telemetry.close()
        except Exception as e:
            logger.error("Error closing telemetry dispatcher", error=str(e))


async def add_request_id(request: Request, call_next) -> Response:  # type: ignore
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> PlainTextResponse:
    """Reject malformed query parameters before anything is rendered."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    logger.warning(
        "Rejected request parameters",
        path=request.url.path,
        errors=problems,
        request_id=getattr(request.state, "request_id", None),
    )
    return PlainTextResponse(f"Failed to deserialize query string: {problems}", status_code=400)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> Response:
    if exc.status_code == 404:
        return HTMLResponse("<h2>404 Not Found</h2>", status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


async def thumbnail_exception_handler(
    request: Request, exc: ThumbnailFetchError
) -> PlainTextResponse:
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def general_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """General exception handler for unexpected errors."""
    logger.error(
        "Unhandled exception",
        exception=str(exc),
        request_id=getattr(request.state, "request_id", None),
        exc_info=True,
    )
    return PlainTextResponse(f"Something went wrong: {exc}", status_code=500)


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """
    Application factory.

    Args:
        state: Prebuilt application context, built from the global settings
            when omitted

    Returns:
        FastAPI application instance
    """
    state = state or build_app_state()
    settings = state.settings

    app = FastAPI(
        title=settings.app_name,
        description="Open Graph cards, user cards and music thumbnails for naoTimes",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.ctx = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_request_id)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ThumbnailFetchError, thumbnail_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/", response_class=PlainTextResponse, tags=["General"])
    async def index() -> str:
        return BANNER

    app.include_router(og_image.router)
    app.include_router(template.router)
    app.include_router(generator.router)
    app.include_router(music_thumb.router)

    return app


app = create_app()


def run_server() -> None:
    """Run the server with uvicorn."""
    settings = get_settings()
    logger.info("Fast serving", url=f"http://{settings.host}:{settings.port}")
    uvicorn.run(
        "naotimes_og.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()
