"""
Template capture package.

Expands a web page template with data, serves it from an ephemeral local web server
and captures the rendered page to a PNG image or a PDF file with a headless browser.
"""

__version__ = "0.1.0"

from capture_template.api import capture_image, capture_pdf, load_test_data  # noqa: E402
from capture_template.renderer import TemplateRenderer  # noqa: E402

__all__ = [
    "__version__",
    "TemplateRenderer",
    "capture_image",
    "capture_pdf",
    "load_test_data",
]
