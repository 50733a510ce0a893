"""Capture session orchestration.

``TemplateRenderer`` coordinates the template web server and the headless browser:

    IDLE --start()--> STARTED --load_template()--> TEMPLATE_LOADED
    TEMPLATE_LOADED --render_image()/render_pdf()--> TEMPLATE_LOADED
    TEMPLATE_LOADED --unload_template()--> STARTED
    STARTED --end()--> IDLE

The browser is launched once per ``start`` and reused across any number of
template loads and renders.
"""

from __future__ import annotations

import asyncio
import logging
import os
from enum import Enum
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, Optional, Union

from capture_template import metrics
from capture_template.browser.page_renderer import WebPageRenderer
from capture_template.errors import UsageError
from capture_template.models.capture import CaptureFormat, CaptureOptions
from capture_template.server.web_server import TemplateWebServer

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class RendererState(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    TEMPLATE_LOADED = "template_loaded"


class TemplateRenderer:
    """Inflate a template, serve it, and capture it to PNG or PDF."""

    def __init__(
        self,
        options: Optional[CaptureOptions] = None,
        *,
        page_renderer_factory: Optional[Callable[[CaptureOptions], WebPageRenderer]] = None,
        web_server_factory: Optional[Callable[[], TemplateWebServer]] = None,
        log_requests: bool = False,
    ) -> None:
        self.options = options or CaptureOptions()
        self._page_renderer_factory = page_renderer_factory or WebPageRenderer
        self._web_server_factory = web_server_factory or (
            lambda: TemplateWebServer(log=self.options.log, log_requests=log_requests)
        )
        self._page_renderer: Optional[WebPageRenderer] = None
        self._template_web_server: Optional[TemplateWebServer] = None
        self._render_lock = asyncio.Lock()

    @property
    def state(self) -> RendererState:
        if self._page_renderer is None:
            return RendererState.IDLE
        if self._template_web_server is None:
            return RendererState.STARTED
        return RendererState.TEMPLATE_LOADED

    def get_url(self) -> str:
        """Get the URL of the web server hosting the loaded template."""

        if self._template_web_server is None:
            raise UsageError("TemplateRenderer: No template is loaded, please call 'load_template'.")
        return self._template_web_server.get_url()

    async def start(self) -> None:
        """Launch the headless browser."""

        if self._page_renderer is not None:
            raise UsageError("TemplateRenderer is already started, call 'end' before starting again.")

        page_renderer = self._page_renderer_factory(self.options)
        await page_renderer.start()
        self._page_renderer = page_renderer

    async def end(self) -> None:
        """Unload any template and close the browser. Safe to call repeatedly."""

        self._ensure_not_rendering("end")
        try:
            await self.unload_template()
        finally:
            page_renderer, self._page_renderer = self._page_renderer, None
            if page_renderer is not None:
                await page_renderer.end()

    async def load_template(self, data: Any, template_path: PathLike, port: int = 0) -> None:
        """Inflate ``template_path`` with ``data`` and serve it on ``port`` (0 picks a free port).

        A template that is already loaded is unloaded first. Data comes before the
        template path, the same order as ``capture_image`` and ``capture_pdf``.
        """

        if self._page_renderer is None:
            raise UsageError("TemplateRenderer is not started, please call 'start' to initiate.")
        self._ensure_not_rendering("load_template")

        await self.unload_template()

        template_web_server = self._web_server_factory()
        await template_web_server.start(data, template_path, port)
        self._template_web_server = template_web_server

    async def unload_template(self) -> None:
        """Stop serving the current template, if any."""

        self._ensure_not_rendering("unload_template")
        template_web_server, self._template_web_server = self._template_web_server, None
        if template_web_server is not None:
            await template_web_server.end()

    def _ensure_not_rendering(self, action: str) -> None:
        if self._render_lock.locked():
            raise UsageError(f"TemplateRenderer: cannot call '{action}' while a render is in progress.")

    def _pre_render_check(self) -> tuple[WebPageRenderer, TemplateWebServer]:
        if self._page_renderer is None:
            raise UsageError("TemplateRenderer is not started, please call 'start' to initiate.")
        if self._template_web_server is None:
            raise UsageError("TemplateRenderer: No template is loaded, please call 'load_template'.")
        if self._render_lock.locked():
            raise UsageError("TemplateRenderer: A render is already in progress.")
        return self._page_renderer, self._template_web_server

    async def render_image(self, output_path: PathLike) -> None:
        """Render the loaded template to an image file."""

        await self._render(CaptureFormat.IMAGE, output_path)

    async def render_pdf(self, output_path: PathLike) -> None:
        """Render the loaded template to a PDF file."""

        await self._render(CaptureFormat.PDF, output_path)

    async def _render(self, capture_format: CaptureFormat, output_path: PathLike) -> None:
        page_renderer, template_web_server = self._pre_render_check()
        target = Path(output_path)
        target.parent.mkdir(parents=True, exist_ok=True)

        async with self._render_lock:
            url = template_web_server.get_url()
            config = template_web_server.get_template_config()
            start = perf_counter()
            try:
                if capture_format is CaptureFormat.IMAGE:
                    await page_renderer.render_image(url, target, config)
                else:
                    await page_renderer.render_pdf(url, target, config)
            except Exception:
                metrics.RENDER_COUNT.labels(format=capture_format.value, status="failed").inc()
                raise

        duration = perf_counter() - start
        metrics.RENDER_COUNT.labels(format=capture_format.value, status="succeeded").inc()
        metrics.RENDER_LATENCY.labels(format=capture_format.value).observe(duration)
        logger.info("Rendered %s to %s in %.2fs", capture_format.value, target, duration)

    async def __aenter__(self) -> "TemplateRenderer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.end()


__all__ = ["RendererState", "TemplateRenderer"]
