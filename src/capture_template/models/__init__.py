"""Pydantic models shared across the capture pipeline."""

from capture_template.models.capture import CaptureFormat, CaptureOptions, CaptureRect, PageSize
from capture_template.models.template import TemplateConfig

__all__ = [
    "CaptureFormat",
    "CaptureOptions",
    "CaptureRect",
    "PageSize",
    "TemplateConfig",
]
