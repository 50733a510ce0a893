"""Expand a directory of web page templates with caller supplied data.

Text assets (markup, scripts, styles, JSON, SVG) are rendered with Jinja2 so a
template can inline its data directly, e.g. ``{{ data | tojson }}`` or
``{{ msg }}``. Everything else (images, fonts) is served byte for byte.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader

from capture_template.errors import TemplateNotFoundError

TEXT_SUFFIXES = frozenset(
    {".html", ".htm", ".js", ".mjs", ".css", ".json", ".svg", ".txt", ".md", ".xml", ".csv"}
)

ExpandedContent = Union[str, bytes]


def normalize_logical_path(path: str) -> Optional[str]:
    """Return a ``/`` separated path relative to the template root, or None if it escapes."""

    parts: List[str] = []
    for part in path.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            return None
        parts.append(part)
    if not parts:
        return None
    return "/".join(parts)


def _render_context(data: Any) -> Dict[str, Any]:
    context: Dict[str, Any] = {}
    if isinstance(data, Mapping):
        context.update({str(key): value for key, value in data.items()})
    context["data"] = data
    return context


class TemplateFile:
    """A single file in an expanded template."""

    def __init__(self, template: "ExpandedTemplate", logical_path: str, file_path: Path) -> None:
        self._template = template
        self.logical_path = logical_path
        self.file_path = file_path

    @property
    def is_text(self) -> bool:
        return self.file_path.suffix.lower() in TEXT_SUFFIXES

    def expand(self) -> ExpandedContent:
        """Render the file against the template data.

        Text files come back as ``str``; binary files are returned unchanged as ``bytes``.
        Jinja2 syntax or rendering errors propagate to the caller.
        """

        if not self.is_text:
            return self.file_path.read_bytes()
        jinja_template = self._template.environment.get_template(self.logical_path)
        return jinja_template.render(_render_context(self._template.data))

    def __repr__(self) -> str:
        return f"TemplateFile({self.logical_path!r})"


class ExpandedTemplate:
    """In-memory view of a template directory, queryable by logical path."""

    def __init__(self, data: Any, root: Path) -> None:
        self.data = data
        self.root = root
        self.environment = Environment(
            loader=FileSystemLoader(str(root)),
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._files: Dict[str, Path] = {}
        for dirpath, _dirnames, filenames in os.walk(root):
            for filename in filenames:
                file_path = Path(dirpath) / filename
                self._files[file_path.relative_to(root).as_posix()] = file_path

    @property
    def files(self) -> List[str]:
        return sorted(self._files)

    def find(self, logical_path: str) -> Optional[TemplateFile]:
        """Return the file at ``logical_path`` or None when it is not part of the template."""

        normalized = normalize_logical_path(logical_path)
        if normalized is None:
            return None
        file_path = self._files.get(normalized)
        if file_path is None:
            return None
        return TemplateFile(self, normalized, file_path)


def inflate_template(data: Any, template_path: Union[str, os.PathLike]) -> ExpandedTemplate:
    """Index the template directory at ``template_path`` for expansion with ``data``."""

    root = Path(template_path)
    if not root.is_dir():
        raise TemplateNotFoundError(f"Template directory '{template_path}' does not exist.")
    return ExpandedTemplate(data, root.resolve())
