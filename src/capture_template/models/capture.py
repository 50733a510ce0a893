"""Capture request and measurement models."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from capture_template.config import Settings, get_settings


class CaptureFormat(str, Enum):
    """Output formats supported by the browser driver."""

    IMAGE = "image"
    PDF = "pdf"


class CaptureOptions(BaseModel):
    """Options controlling the headless browser used for captures."""

    wait_timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for the wait selector.")
    goto_timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for navigation.")
    show_browser: bool = Field(default=False)
    open_dev_tools: bool = Field(default=False)
    executable_path: Optional[Path] = Field(default=None)
    env: Optional[Dict[str, str]] = Field(
        default=None,
        description="Extra environment variables for the browser process.",
    )
    log: Optional[Any] = Field(
        default=None,
        description="Logger exposing info/warning/error; defaults to the package logger.",
    )

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides: Any) -> "CaptureOptions":
        settings = settings or get_settings()
        payload: dict[str, Any] = {
            "wait_timeout": settings.wait_timeout,
            "goto_timeout": settings.goto_timeout,
            "show_browser": settings.show_browser,
            "open_dev_tools": settings.open_dev_tools,
            "executable_path": settings.executable_path,
        }
        payload.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**payload)

    def logger(self, default: logging.Logger) -> Any:
        return self.log if self.log is not None else default


class PageSize(BaseModel):
    """Scroll size of the document body in CSS pixels."""

    width: int = Field(ge=0)
    height: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class CaptureRect(BaseModel):
    """Crop rectangle for image captures, rounded up to whole pixels."""

    x: int
    y: int
    width: int = Field(ge=0)
    height: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    def as_clip(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
