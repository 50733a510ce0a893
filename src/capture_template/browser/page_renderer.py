"""Render a served web page to a PNG image or a PDF file with headless Chromium."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from playwright.async_api import (
    Browser,
    BrowserContext,
    ConsoleMessage,
    Page,
    Playwright,
    Request,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from capture_template.errors import (
    BrowserCrashError,
    BrowserLaunchError,
    CaptureError,
    EvaluationError,
    NavigationTimeoutError,
    UsageError,
    WaitTimeoutError,
)
from capture_template.models.capture import CaptureOptions, CaptureRect, PageSize
from capture_template.models.template import TemplateConfig

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

INITIAL_VIEWPORT = {"width": 1280, "height": 1024}

# A4 in landscape, in micrometers. Width is the long edge, so the page is landscape
# without Chromium's landscape flag, which swaps explicit paper dimensions.
PDF_PAGE_SIZE_MICRONS = (297000, 210000)
PDF_MARGINS = {"top": "0", "right": "0", "bottom": "0", "left": "0"}

BODY_SIZE_SCRIPT = """
() => {
    const body = document.querySelector('body');
    return {
        width: body.scrollWidth,
        height: body.scrollHeight,
    };
}
"""

ELEMENT_RECT_SCRIPT = """
(captureSelector) => {
    const element = document.querySelector(captureSelector);
    if (!element) {
        return null;
    }
    const rect = element.getBoundingClientRect();
    return {
        x: Math.ceil(rect.left),
        y: Math.ceil(rect.top),
        width: Math.ceil(rect.right - rect.left),
        height: Math.ceil(rect.bottom - rect.top),
    };
}
"""


def _microns_to_mm(value: int) -> str:
    return f"{value / 1000:g}mm"


def _discard_partial_output(output_path: Path) -> None:
    try:
        output_path.unlink()
    except FileNotFoundError:
        return
    logger.debug("Removed output of failed render %s", output_path)


class WebPageRenderer:
    """Drive one headless browser through navigation, measurement and capture.

    The browser is launched once by ``start`` and reused by every render until
    ``end``. Renders against one instance must not overlap.
    """

    def __init__(self, options: Optional[CaptureOptions] = None) -> None:
        self.options = options or CaptureOptions()
        self._log = self.options.logger(logger)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._crashed = False
        self._closing = False

    @property
    def is_started(self) -> bool:
        return self._page is not None

    @property
    def crashed(self) -> bool:
        return self._crashed

    def _launch_args(self) -> List[str]:
        args = ["--hide-scrollbars"]
        if self.options.open_dev_tools:
            args.append("--auto-open-devtools-for-tabs")
        return args

    def _launch_env(self) -> Optional[Dict[str, str]]:
        if not self.options.env:
            return None
        return {**os.environ, **self.options.env}

    async def start(self) -> None:
        """Launch the browser. For performance reasons it is reused for many renders."""

        if self._playwright is not None:
            raise UsageError("WebPageRenderer is already started, call 'end' first.")

        launch_kwargs: Dict[str, Any] = {
            "headless": not self.options.show_browser,
            "args": self._launch_args(),
        }
        if self.options.executable_path is not None:
            launch_kwargs["executable_path"] = str(self.options.executable_path)
        if (env := self._launch_env()) is not None:
            launch_kwargs["env"] = env

        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(**launch_kwargs)
            context = await browser.new_context(viewport=INITIAL_VIEWPORT)
            page = await context.new_page()
        except PlaywrightError as exc:
            await playwright.stop()
            raise BrowserLaunchError(f"Unable to launch headless browser: {exc.message}") from exc

        page.set_default_navigation_timeout(self.options.goto_timeout * 1000)
        page.set_default_timeout(self.options.wait_timeout * 1000)

        browser.on("disconnected", self._on_disconnected)
        page.on("crash", self._on_crash)
        page.on("console", self._on_console)
        page.on("pageerror", self._on_page_error)
        page.on("requestfailed", self._on_request_failed)

        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._crashed = False
        self._closing = False
        logger.debug("Browser launched headless=%s", launch_kwargs["headless"])

    async def end(self) -> None:
        """Close the browser and the Playwright driver."""

        if self._playwright is None:
            raise UsageError("WebPageRenderer is not started, please call 'start' first.")

        playwright, browser = self._playwright, self._browser
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        self._closing = True
        try:
            if browser is not None and browser.is_connected():
                await browser.close()
        finally:
            await playwright.stop()
        logger.debug("Browser closed")

    # Observation channels. None of these retry anything.

    def _on_crash(self, _page: Page) -> None:
        self._crashed = True
        self._log.error("Browser page crashed.")

    def _on_disconnected(self, _browser: Browser) -> None:
        if self._closing:
            return
        self._crashed = True
        self._log.error("Browser process disconnected unexpectedly.")

    def _on_console(self, message: ConsoleMessage) -> None:
        kind = message.type
        if kind in ("log", "info", "debug"):
            self._log.info("LOG: " + message.text)
        elif kind == "warning":
            self._log.warning("LOG: " + message.text)
        elif kind == "error":
            self._log.error("Browser JavaScript error:")
            self._log.error(message.text)

    def _on_page_error(self, error: PlaywrightError) -> None:
        self._log.error("Browser page error: " + error.message)
        if error.stack:
            self._log.error(error.stack)

    def _on_request_failed(self, request: Request) -> None:
        self._log.error("Browser page failed to load.")
        self._log.error("Error description: " + (request.failure or "unknown"))
        self._log.error("URL: " + request.url)
        self._log.error("Is main frame: " + str(self._is_main_frame(request)))

    def _is_main_frame(self, request: Request) -> bool:
        if self._page is None or not request.is_navigation_request():
            return False
        try:
            return request.frame == self._page.main_frame
        except PlaywrightError:
            # Requests issued by service workers have no frame.
            return False

    def _pre_render_check(self, config: TemplateConfig) -> Page:
        if not config.wait_selector:
            raise UsageError(
                "'waitSelector' not specified in the template configuration, please set this to the "
                "element that must appear in the DOM before the capture is invoked."
            )
        if self._crashed:
            raise BrowserCrashError(
                "Headless browser has crashed, call 'end' and 'start' to launch a new one."
            )
        if not self.is_started:
            raise UsageError(
                "WebPageRenderer: headless browser is not started, please call 'start' before rendering."
            )
        return self._page  # type: ignore[return-value]

    @asynccontextmanager
    async def _render_guard(self, output_path: Path) -> AsyncIterator[None]:
        try:
            yield
        except (CaptureError, PlaywrightError) as exc:
            _discard_partial_output(output_path)
            if self._crashed and not isinstance(exc, BrowserCrashError):
                raise BrowserCrashError(
                    f"Headless browser crashed while rendering '{output_path}'."
                ) from exc
            if isinstance(exc, PlaywrightError):
                raise CaptureError(f"Failed to render '{output_path}': {exc.message}") from exc
            raise

    async def _load_page(self, page: Page, page_url: str, config: TemplateConfig) -> None:
        try:
            await page.goto(page_url, wait_until="load")
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeoutError(
                f"Timed out after {self.options.goto_timeout:g}s loading '{page_url}'."
            ) from exc

        try:
            await page.wait_for_selector(config.wait_selector, state="attached")
        except PlaywrightTimeoutError as exc:
            raise WaitTimeoutError(
                f"Timed out after {self.options.wait_timeout:g}s waiting for "
                f"'{config.wait_selector}' on '{page_url}'."
            ) from exc

    async def _fit_viewport_to_body(self, page: Page) -> PageSize:
        try:
            measured = await page.evaluate(BODY_SIZE_SCRIPT)
        except PlaywrightError as exc:
            if self._crashed:
                raise
            raise EvaluationError(f"Unable to measure the document body: {exc.message}") from exc

        size = PageSize.model_validate(measured)
        await page.set_viewport_size({"width": max(size.width, 1), "height": max(size.height, 1)})
        return size

    async def _measure_element(self, page: Page, selector: str) -> CaptureRect:
        try:
            measured = await page.evaluate(ELEMENT_RECT_SCRIPT, selector)
        except PlaywrightError as exc:
            if self._crashed:
                raise
            raise EvaluationError(f"Unable to measure '{selector}': {exc.message}") from exc

        if measured is None:
            raise EvaluationError(f"Capture selector '{selector}' did not match any element.")
        return CaptureRect.model_validate(measured)

    async def render_image(self, page_url: str, output_path: PathLike, config: TemplateConfig) -> CaptureRect:
        """Render the element matched by the capture selector to an image file.

        The viewport is first grown to the body's scroll size so the element can be
        measured without clipping; the crop rectangle is measured afterwards.
        """

        page = self._pre_render_check(config)
        target = Path(output_path)
        async with self._render_guard(target):
            await self._load_page(page, page_url, config)
            await self._fit_viewport_to_body(page)
            rect = await self._measure_element(page, config.effective_capture_selector)
            await page.screenshot(path=str(target), clip=rect.as_clip())
        logger.debug("Captured image %s rect=%s", target, rect)
        return rect

    async def render_pdf(self, page_url: str, output_path: PathLike, config: TemplateConfig) -> PageSize:
        """Render the whole document to a landscape A4 PDF with no margins."""

        page = self._pre_render_check(config)
        target = Path(output_path)
        width, height = PDF_PAGE_SIZE_MICRONS
        async with self._render_guard(target):
            await self._load_page(page, page_url, config)
            size = await self._fit_viewport_to_body(page)
            await page.pdf(
                path=str(target),
                width=_microns_to_mm(width),
                height=_microns_to_mm(height),
                margin=PDF_MARGINS,
            )
        logger.debug("Captured PDF %s document=%s", target, size)
        return size


__all__ = [
    "BODY_SIZE_SCRIPT",
    "ELEMENT_RECT_SCRIPT",
    "PDF_MARGINS",
    "PDF_PAGE_SIZE_MICRONS",
    "WebPageRenderer",
]
