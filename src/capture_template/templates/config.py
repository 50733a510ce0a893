"""Load and validate the per-template ``template.json`` configuration."""

from __future__ import annotations

import json
import logging
import os
from typing import Union

from jinja2 import TemplateError
from pydantic import ValidationError

from capture_template.errors import ConfigInvalidError, ConfigNotFoundError
from capture_template.models.template import TemplateConfig
from capture_template.templates.expander import ExpandedTemplate

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "template.json"
TEST_DATA_FILE_NAME = "test-data.json"

# Files that configure a template rather than belong to the page.
NON_ASSET_FILES = frozenset({CONFIG_FILE_NAME, TEST_DATA_FILE_NAME})


def _describe_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(entry) for entry in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def load_template_config(
    template: ExpandedTemplate, template_path: Union[str, os.PathLike]
) -> TemplateConfig:
    """Expand and validate the configuration file of ``template``."""

    config_file = template.find(CONFIG_FILE_NAME)
    if config_file is None:
        raise ConfigNotFoundError(
            f"Template configuration file '{CONFIG_FILE_NAME}' was not found in the "
            f"template directory '{template_path}'."
        )

    try:
        content = config_file.expand()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigNotFoundError(
            f"Unable to read '{CONFIG_FILE_NAME}' in template directory '{template_path}': {exc}"
        ) from exc
    except TemplateError as exc:
        raise ConfigInvalidError(
            f"Template configuration '{CONFIG_FILE_NAME}' for template in directory "
            f"'{template_path}' could not be expanded: {exc}"
        ) from exc

    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigInvalidError(
            f"Template configuration '{CONFIG_FILE_NAME}' for template in directory "
            f"'{template_path}' is not valid JSON: {exc}"
        ) from exc

    if not isinstance(payload, dict):
        raise ConfigInvalidError(
            f"Template configuration '{CONFIG_FILE_NAME}' for template in directory "
            f"'{template_path}' must be a JSON object."
        )

    try:
        config = TemplateConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigInvalidError(
            f"Error in template configuration '{CONFIG_FILE_NAME}' for template in directory "
            f"'{template_path}'. Please set 'waitSelector' to a valid CSS selector that designates "
            f"the element to wait for ({_describe_errors(exc)})."
        ) from exc

    logger.debug(
        "Loaded template config path=%s wait_selector=%s capture_selector=%s",
        template_path,
        config.wait_selector,
        config.capture_selector,
    )
    return config
