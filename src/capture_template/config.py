"""Capture settings read from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "CAPTURE_TEMPLATE_"
DOTENV_FILES = (Path(".env"), Path(".env.local"))

TRUTHY = frozenset({"1", "true", "yes", "on"})


class Settings(BaseModel):
    """Defaults for capture runs; every field maps to ``CAPTURE_TEMPLATE_<FIELD>``."""

    wait_timeout: float = Field(
        default=30.0,
        description="Seconds to wait for the wait selector to appear in the DOM.",
    )
    goto_timeout: float = Field(
        default=30.0,
        description="Seconds to wait for page navigation to complete.",
    )
    show_browser: bool = Field(default=False, description="Show the browser window while capturing.")
    open_dev_tools: bool = Field(
        default=False,
        description="Open the browser dev tools (only useful with show_browser).",
    )
    executable_path: Optional[Path] = Field(
        default=None,
        description="Override the Chromium executable launched by Playwright.",
    )
    log_level: str = Field(default="INFO", description="Root log level name.")
    log_format: str = Field(default="plain", description="'plain' or 'json' log lines.")
    log_requests: bool = Field(default=False, description="Log every asset server request.")

    model_config = ConfigDict(frozen=True)


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in TRUTHY


def _as_float(raw: str) -> Optional[float]:
    try:
        return float(raw)
    except ValueError:
        return None


_CONVERTERS: Dict[str, Callable[[str], object]] = {
    "wait_timeout": _as_float,
    "goto_timeout": _as_float,
    "show_browser": _as_bool,
    "open_dev_tools": _as_bool,
    "executable_path": Path,
    "log_level": str.strip,
    "log_format": str.strip,
    "log_requests": _as_bool,
}


def read_dotenv(path: Path) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` lines, allowing ``export`` prefixes and quoted values."""

    if not path.is_file():
        return {}

    values: Dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        name, sep, value = line.partition("=")
        if line.startswith("#") or not sep:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        values[name.strip()] = value
    return values


def collect_overrides(environ: Mapping[str, str], dotenv_files=DOTENV_FILES) -> Dict[str, object]:
    """Build ``Settings`` keyword arguments; process env wins over dotenv files.

    Blank values and numbers that do not parse are skipped so the default applies.
    """

    merged: Dict[str, str] = {}
    for dotenv in dotenv_files:
        merged.update(read_dotenv(dotenv))
    merged.update(environ)

    overrides: Dict[str, object] = {}
    for field, convert in _CONVERTERS.items():
        raw = merged.get(ENV_PREFIX + field.upper(), "")
        if not raw.strip():
            continue
        value = convert(raw)
        if value is not None:
            overrides[field] = value
    return overrides


@lru_cache
def get_settings() -> Settings:
    """Settings for this process, computed once."""

    return Settings(**collect_overrides(os.environ))
