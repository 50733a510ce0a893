"""Template configuration model."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class TemplateConfig(BaseModel):
    """Per-template capture configuration read from ``template.json``."""

    wait_selector: StrictStr = Field(
        alias="waitSelector",
        description="Selector for the element that must appear in the DOM before capturing.",
    )
    capture_selector: Optional[StrictStr] = Field(
        default=None,
        alias="captureSelector",
        description="Selector whose bounding box is captured by image renders. Defaults to wait_selector.",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("wait_selector")
    @classmethod
    def _require_selector(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty CSS selector")
        return value

    @field_validator("capture_selector")
    @classmethod
    def _require_capture_selector(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("must be a non-empty CSS selector when provided")
        return value

    @property
    def effective_capture_selector(self) -> str:
        return self.capture_selector or self.wait_selector
