"""Headless browser capture driver."""

from capture_template.browser.page_renderer import PDF_PAGE_SIZE_MICRONS, WebPageRenderer

__all__ = ["PDF_PAGE_SIZE_MICRONS", "WebPageRenderer"]
