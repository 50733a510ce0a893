"""One-shot capture helpers for calling applications."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional, Union

from capture_template.errors import TestDataNotFoundError
from capture_template.models.capture import CaptureFormat, CaptureOptions
from capture_template.renderer import TemplateRenderer
from capture_template.templates.config import TEST_DATA_FILE_NAME

PathLike = Union[str, os.PathLike]

# Port 0 lets the operating system assign a free port.
AUTO_ASSIGN_PORT = 0


async def _capture(
    capture_format: CaptureFormat,
    data: Any,
    template_path: PathLike,
    output_path: PathLike,
    options: Optional[CaptureOptions],
) -> None:
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    async with TemplateRenderer(options) as renderer:
        await renderer.load_template(data, template_path, AUTO_ASSIGN_PORT)
        if capture_format is CaptureFormat.IMAGE:
            await renderer.render_image(output_path)
        else:
            await renderer.render_pdf(output_path)


async def capture_image(
    data: Any,
    template_path: PathLike,
    output_path: PathLike,
    options: Optional[CaptureOptions] = None,
) -> None:
    """Expand a template web page with ``data`` and capture it to an image file."""

    await _capture(CaptureFormat.IMAGE, data, template_path, output_path, options)


async def capture_pdf(
    data: Any,
    template_path: PathLike,
    output_path: PathLike,
    options: Optional[CaptureOptions] = None,
) -> None:
    """Expand a template web page with ``data`` and capture it to a PDF file."""

    await _capture(CaptureFormat.PDF, data, template_path, output_path, options)


def load_test_data(template_path: PathLike) -> Any:
    """Load the ``test-data.json`` that ships with a template for CLI testing."""

    test_data_path = Path(template_path) / TEST_DATA_FILE_NAME
    if not test_data_path.is_file():
        raise TestDataNotFoundError(
            f"To test your template you need a {TEST_DATA_FILE_NAME} in your template directory "
            f"'{template_path}'."
        )
    with test_data_path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


__all__ = ["AUTO_ASSIGN_PORT", "capture_image", "capture_pdf", "load_test_data"]
