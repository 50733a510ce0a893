"""Ephemeral asset server for expanded templates."""

from capture_template.server.app import DATA_ENDPOINT, create_app
from capture_template.server.web_server import AssetServer, TemplateWebServer

__all__ = ["AssetServer", "DATA_ENDPOINT", "TemplateWebServer", "create_app"]
