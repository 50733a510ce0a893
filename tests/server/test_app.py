"""Tests for the asset server ASGI application."""

from __future__ import annotations

import logging

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from capture_template.server.app import DATA_ENDPOINT, create_app, guess_content_type
from capture_template.templates.expander import TemplateFile, inflate_template


@pytest.fixture()
def client(chart_template, chart_data) -> TestClient:
    template = inflate_template(chart_data, chart_template)
    return TestClient(create_app(template, chart_data))


def test_root_serves_expanded_index(client):
    response = client.get("/")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/html")
    assert "<h1 id=\"title\">Hello computer</h1>" in response.text


def test_nested_assets_are_expanded_with_content_type(client):
    response = client.get("/assets/style.css")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/css")
    assert "background-color: blue;" in response.text


def test_data_endpoint_returns_data(client, chart_data):
    response = client.get(DATA_ENDPOINT)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == chart_data


def test_missing_asset_is_not_found_and_server_keeps_serving(client, caplog):
    with caplog.at_level(logging.ERROR, logger="capture_template.server.app"):
        missing = client.get("/nope.js")

    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert "Couldn't find file 'nope.js' in template." in caplog.text
    assert client.get("/index.html").status_code == status.HTTP_200_OK


@pytest.mark.parametrize("path", ["/template.json", "/test-data.json"])
def test_configuration_files_are_not_served(client, path):
    assert client.get(path).status_code == status.HTTP_404_NOT_FOUND


def test_each_file_is_expanded_once(chart_template, chart_data, monkeypatch):
    expanded: list[str] = []
    original_expand = TemplateFile.expand

    def counting_expand(self):
        expanded.append(self.logical_path)
        return original_expand(self)

    monkeypatch.setattr(TemplateFile, "expand", counting_expand)
    application = create_app(inflate_template(chart_data, chart_template), chart_data)
    client = TestClient(application)

    for _ in range(3):
        assert client.get("/").status_code == status.HTTP_200_OK
        assert client.get("/assets/chart.js").status_code == status.HTTP_200_OK

    assert expanded == ["index.html", "assets/chart.js"]
    assert set(application.state.file_cache) == {"index.html", "assets/chart.js"}


def test_binary_assets_are_served_raw(make_template):
    payload = b"\x89PNG\r\n\x1a\n\x00\x01"
    root = make_template({"logo.png": payload}, config={"waitSelector": "img"})
    client = TestClient(create_app(inflate_template({}, root), {}))

    response = client.get("/logo.png")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "image/png"
    assert response.content == payload


def test_injected_logger_receives_not_found_errors(chart_template, chart_data):
    class RecordingLog:
        def __init__(self) -> None:
            self.errors: list[str] = []

        def error(self, message: str) -> None:
            self.errors.append(message)

    log = RecordingLog()
    client = TestClient(create_app(inflate_template(chart_data, chart_template), chart_data, log=log))

    client.get("/missing.css")

    assert log.errors[0] == "Error loading template file."


def test_request_id_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_guess_content_type_fallback():
    assert guess_content_type("index.html") == "text/html"
    assert guess_content_type("blob.unknownext") == "application/octet-stream"
