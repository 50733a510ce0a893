"""Template expansion and configuration loading."""

from capture_template.templates.config import (
    CONFIG_FILE_NAME,
    NON_ASSET_FILES,
    TEST_DATA_FILE_NAME,
    load_template_config,
)
from capture_template.templates.expander import ExpandedTemplate, TemplateFile, inflate_template

__all__ = [
    "CONFIG_FILE_NAME",
    "NON_ASSET_FILES",
    "TEST_DATA_FILE_NAME",
    "ExpandedTemplate",
    "TemplateFile",
    "inflate_template",
    "load_template_config",
]
