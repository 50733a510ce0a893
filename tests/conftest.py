"""Shared pytest fixtures for the capture test suite."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest

from capture_template.config import get_settings

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Ensure each test starts from default settings."""

    for key in list(os.environ):
        if key.startswith("CAPTURE_TEMPLATE_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo root handler changes made by configure_logging."""

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture()
def chart_template() -> Path:
    """Path to the bundled chart template."""

    return FIXTURES_DIR / "chart"


@pytest.fixture()
def chart_data() -> Dict[str, Any]:
    return {"msg": "Hello computer", "color": "blue"}


@pytest.fixture()
def make_template(tmp_path) -> Callable[..., Path]:
    """Build a throwaway template directory from a mapping of files."""

    def _make(
        files: Optional[Dict[str, str | bytes]] = None,
        config: Optional[Any] = None,
        name: str = "template",
    ) -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        if config is not None:
            content = config if isinstance(config, str) else json.dumps(config)
            (root / "template.json").write_text(content, encoding="utf-8")
        for relative, content in (files or {}).items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")
        return root

    return _make
