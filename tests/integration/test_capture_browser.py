"""End-to-end captures against a real headless Chromium.

Skipped when Playwright's Chromium build is not installed
(``playwright install chromium``).
"""

from __future__ import annotations

import asyncio
from urllib.parse import urlparse

import httpx
import pytest
from PIL import Image
from pypdf import PdfReader

from capture_template import capture_image, capture_pdf
from capture_template.browser import WebPageRenderer
from capture_template.errors import BrowserLaunchError, WaitTimeoutError
from capture_template.models.capture import CaptureOptions
from capture_template.renderer import TemplateRenderer


@pytest.fixture(scope="module")
def chromium_available() -> None:
    async def launch_and_close() -> None:
        renderer = WebPageRenderer()
        await renderer.start()
        await renderer.end()

    try:
        asyncio.run(launch_and_close())
    except BrowserLaunchError as exc:
        pytest.skip(f"Chromium is not available: {exc}")


pytestmark = pytest.mark.usefixtures("chromium_available")


def test_capture_image_crops_to_wait_selector(chart_template, chart_data, tmp_path):
    output = tmp_path / "chart.png"

    asyncio.run(capture_image(chart_data, chart_template, output))

    with Image.open(output) as image:
        assert image.size == (400, 300)
        assert image.convert("RGB").getpixel((390, 290)) == (0, 0, 255)


def test_repeated_captures_produce_identical_images(chart_template, chart_data, tmp_path):
    async def scenario() -> None:
        async with TemplateRenderer() as renderer:
            await renderer.load_template(chart_data, chart_template)
            await renderer.render_image(tmp_path / "first.png")
            await renderer.render_image(tmp_path / "second.png")

    asyncio.run(scenario())

    with Image.open(tmp_path / "first.png") as first, Image.open(tmp_path / "second.png") as second:
        assert first.size == second.size
        assert first.tobytes() == second.tobytes()


def test_capture_pdf_is_a4_landscape(chart_template, chart_data, tmp_path):
    output = tmp_path / "report.pdf"

    asyncio.run(capture_pdf(chart_data, chart_template, output))

    assert output.read_bytes().startswith(b"%PDF")
    page = PdfReader(output).pages[0]
    # 297mm x 210mm in points.
    assert float(page.mediabox.width) == pytest.approx(841.9, abs=2)
    assert float(page.mediabox.height) == pytest.approx(595.3, abs=2)


def test_loaded_template_is_reachable_at_reported_url(chart_template, chart_data):
    async def scenario() -> tuple[str, httpx.Response]:
        async with TemplateRenderer() as renderer:
            await renderer.load_template(chart_data, chart_template)
            url = renderer.get_url()
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/__data__")
            return url, response

    url, response = asyncio.run(scenario())

    assert urlparse(url).hostname == "127.0.0.1"
    assert response.json() == chart_data


def test_missing_wait_selector_times_out(make_template, tmp_path):
    root = make_template({"index.html": "<p>nothing here</p>"}, config={"waitSelector": "#never"})
    options = CaptureOptions(wait_timeout=0.5)

    with pytest.raises(WaitTimeoutError):
        asyncio.run(capture_image({}, root, tmp_path / "never.png", options))
    assert not (tmp_path / "never.png").exists()
