"""
Screenshot Renderer
===================

Measure-then-capture pipeline that turns the server-rendered user card into a
PNG. A headless Chromium loads the template endpoint, waits for the readiness
marker, measures the body, grows the capture viewport to fit and takes the
screenshot.

The pipeline is blocking. Route handlers run it on the worker thread pool.
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from playwright.sync_api import Browser, Page, Playwright, sync_playwright

from naotimes_og.config.logging import get_logger
from naotimes_og.config.settings import Settings, get_settings
from naotimes_og.models.schemas import RenderOutcome, RenderStage, Viewport

logger = get_logger(__name__)

TEMPLATE_PATH = "/_/template/user_card"
READY_SELECTOR = "div#ready-notifier"
MEASURE_SCRIPT = "() => [document.body.clientWidth, document.body.clientHeight]"
HEIGHT_PADDING = 40.0


class ArtifactRenderError(Exception):
    """Exception raised when a pipeline stage fails."""

    def __init__(self, stage: RenderStage, message: str):
        super().__init__(message)
        self.stage = stage


class BrowserEngine(ABC):
    """Automation capabilities the pipeline needs from a headless browser."""

    @abstractmethod
    def launch(self) -> None:
        """Start the browser and open one page."""

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Load ``url`` and block until navigation completes."""

    @abstractmethod
    def wait_for_element(self, selector: str, timeout_ms: int) -> None:
        """Block until ``selector`` is present in the document."""

    @abstractmethod
    def evaluate(self, script: str) -> Any:
        """Run ``script`` in the page and return its result."""

    @abstractmethod
    def capture_screenshot(self, clip: Dict[str, float], full_page: bool) -> bytes:
        """Capture a PNG of the page clipped to ``clip``."""

    @abstractmethod
    def close(self) -> None:
        """Release the browser."""


class PlaywrightEngine(BrowserEngine):
    """BrowserEngine backed by Playwright's sync API and Chromium."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser is not launched")
        return self._page

    def launch(self) -> None:
        self._playwright = sync_playwright().start()
        launch_options: Dict[str, Any] = {
            "headless": self.settings.playwright_headless,
            "args": [
                "--no-sandbox",
                "--disable-setuid-sandbox",
                "--disable-dev-shm-usage",
            ],
        }
        if self.settings.chromium_executable:
            launch_options["executable_path"] = str(self.settings.chromium_executable)

        self._browser = self._playwright.chromium.launch(**launch_options)
        default = Viewport()
        self._page = self._browser.new_page(
            viewport={"width": int(default.width), "height": int(default.height)},
            device_scale_factor=default.scale,
        )
        self._page.set_default_timeout(self.settings.playwright_timeout)

    def navigate(self, url: str) -> None:
        self.page.goto(url, wait_until="load")

    def wait_for_element(self, selector: str, timeout_ms: int) -> None:
        self.page.wait_for_selector(selector, state="attached", timeout=timeout_ms)

    def evaluate(self, script: str) -> Any:
        return self.page.evaluate(script)

    def capture_screenshot(self, clip: Dict[str, float], full_page: bool) -> bytes:
        return self.page.screenshot(type="png", clip=clip, full_page=full_page)

    def close(self) -> None:
        try:
            if self._browser is not None:
                self._browser.close()
        finally:
            if self._playwright is not None:
                self._playwright.stop()
            self._browser = None
            self._page = None
            self._playwright = None


EngineFactory = Callable[[], BrowserEngine]


def recompute_viewport(viewport: Viewport, measured_height: Any) -> Viewport:
    """
    Fit the viewport height to the measured content.

    The width stays as is. The height becomes ``measured_height + 40`` when
    the measurement parses as a number, otherwise the current height is kept.
    """
    try:
        height = float(str(measured_height).strip())
    except (TypeError, ValueError) as e:
        logger.error("Error parsing height", measured=measured_height, error=str(e))
        return viewport

    if not math.isfinite(height):
        logger.error("Error parsing height", measured=measured_height)
        return viewport

    return viewport.model_copy(update={"height": height + HEIGHT_PADDING})


class ArtifactRenderer:
    """
    Drive one screenshot through the pipeline states.

    Every call to ``render`` gets its own engine and its own pass through
    ``LAUNCHING -> ... -> DONE``; the first failing stage ends it in
    ``FAILED``. There are no retries.
    """

    def __init__(
        self,
        engine_factory: Optional[EngineFactory] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.engine_factory = engine_factory or (lambda: PlaywrightEngine(self.settings))
        self.logger: Any = logger.bind(component="artifact_renderer")

    def source_url(self, query_string: str) -> str:
        return f"{self.settings.generator_host}{TEMPLATE_PATH}?{query_string}"

    def render(self, query_string: str) -> RenderOutcome:
        run = _RenderRun(self, query_string)
        return run.execute()


class _RenderRun:
    """State for a single pass through the pipeline."""

    def __init__(self, renderer: ArtifactRenderer, query_string: str):
        self.renderer = renderer
        self.settings = renderer.settings
        self.logger = renderer.logger
        self.query_string = query_string
        self.engine: Optional[BrowserEngine] = None
        self.viewport = Viewport()
        self.measured_height: Any = None
        self.image = b""
        self.handlers: Dict[RenderStage, Callable[[], RenderStage]] = {
            RenderStage.LAUNCHING: self._launch,
            RenderStage.NAVIGATING_TO_SOURCE: self._navigate,
            RenderStage.WAITING_FOR_READY_SIGNAL: self._wait_ready,
            RenderStage.MEASURING_CONTENT: self._measure,
            RenderStage.RECAPTURING_VIEWPORT: self._recapture_viewport,
            RenderStage.CAPTURING_IMAGE: self._capture,
        }

    def execute(self) -> RenderOutcome:
        stage = RenderStage.LAUNCHING
        try:
            while not stage.is_terminal:
                try:
                    stage = self.handlers[stage]()
                except ArtifactRenderError:
                    raise
                except Exception as e:
                    raise ArtifactRenderError(stage, str(e)) from e
        except ArtifactRenderError as e:
            self.logger.error(
                "Error generating screenshot", stage=e.stage.value, error=str(e)
            )
            return RenderOutcome(
                stage=RenderStage.FAILED,
                failed_at=e.stage,
                reason=str(e),
                viewport=self.viewport,
            )
        finally:
            self._close_engine()

        self.logger.info("Screenshot generated", size=len(self.image))
        return RenderOutcome(stage=RenderStage.DONE, image=self.image, viewport=self.viewport)

    def _launch(self) -> RenderStage:
        self.engine = self.renderer.engine_factory()
        self.engine.launch()
        return RenderStage.NAVIGATING_TO_SOURCE

    def _navigate(self) -> RenderStage:
        url = self.renderer.source_url(self.query_string)
        self.logger.debug("Navigating", url=url)
        self.engine.navigate(url)
        return RenderStage.WAITING_FOR_READY_SIGNAL

    def _wait_ready(self) -> RenderStage:
        self.engine.wait_for_element(READY_SELECTOR, self.settings.ready_timeout)
        return RenderStage.MEASURING_CONTENT

    def _measure(self) -> RenderStage:
        result = self.engine.evaluate(MEASURE_SCRIPT)
        try:
            self.measured_height = result[1]
        except (TypeError, IndexError, KeyError):
            self.measured_height = None
        return RenderStage.RECAPTURING_VIEWPORT

    def _recapture_viewport(self) -> RenderStage:
        self.viewport = recompute_viewport(self.viewport, self.measured_height)
        self.logger.info(
            "Generating screenshot with viewport", viewport=self.viewport.model_dump()
        )
        return RenderStage.CAPTURING_IMAGE

    def _capture(self) -> RenderStage:
        image = self.engine.capture_screenshot(self.viewport.to_clip(), full_page=True)
        if not image:
            raise ArtifactRenderError(RenderStage.CAPTURING_IMAGE, "Empty screenshot")
        self.image = image
        return RenderStage.DONE

    def _close_engine(self) -> None:
        if self.engine is None:
            return
        try:
            self.engine.close()
        except Exception as e:
            self.logger.warning("Failed to close browser", error=str(e))
