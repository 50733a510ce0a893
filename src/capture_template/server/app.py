"""ASGI application serving an expanded template and its data."""

from __future__ import annotations

import logging
import mimetypes
from time import perf_counter
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from capture_template import __version__, metrics
from capture_template.errors import AssetNotFoundError
from capture_template.templates.config import NON_ASSET_FILES
from capture_template.templates.expander import ExpandedContent, ExpandedTemplate, normalize_logical_path

logger = logging.getLogger(__name__)

DATA_ENDPOINT = "/__data__"
INDEX_FILE_NAME = "index.html"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(logical_path: str) -> str:
    """Infer the response content type from a file extension."""

    content_type, _encoding = mimetypes.guess_type(logical_path)
    return content_type or DEFAULT_CONTENT_TYPE


def create_app(
    template: ExpandedTemplate,
    data: Any,
    *,
    log: Optional[Any] = None,
    log_requests: bool = False,
) -> FastAPI:
    """Create the web application for one loaded template.

    Each file is expanded on first request and cached for the lifetime of the
    returned application.
    """

    log = log or logger
    application = FastAPI(
        title="Template capture asset server",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    file_cache: Dict[str, ExpandedContent] = {}

    def load_template_file(url_path: str) -> tuple[str, ExpandedContent]:
        logical_path = normalize_logical_path(url_path or INDEX_FILE_NAME)
        if logical_path is None or logical_path in NON_ASSET_FILES:
            raise AssetNotFoundError(f"Couldn't find file '{url_path}' in template.")

        cached = file_cache.get(logical_path)
        if cached is not None:
            return logical_path, cached

        template_file = template.find(logical_path)
        if template_file is None:
            raise AssetNotFoundError(f"Couldn't find file '{url_path}' in template.")

        content = template_file.expand()
        file_cache[logical_path] = content
        return logical_path, content

    access_logger = logging.getLogger("capture_template.access")

    @application.middleware("http")
    async def log_request_response(request: Request, call_next):
        """Record request metrics and optional access logs."""

        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        start = perf_counter()
        method = request.method
        try:
            response: Response = await call_next(request)
        except Exception:
            metrics.ASSET_REQUEST_COUNT.labels(method=method, status="500").inc()
            raise

        duration = perf_counter() - start
        response.headers.setdefault("X-Request-ID", request_id)
        metrics.ASSET_REQUEST_COUNT.labels(method=method, status=str(response.status_code)).inc()
        metrics.ASSET_REQUEST_LATENCY.labels(method=method).observe(duration)
        if log_requests:
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                request.url.path,
                response.status_code,
                duration * 1000,
                extra={"request_id": request_id},
            )
        return response

    @application.get(DATA_ENDPOINT)
    async def data_endpoint() -> JSONResponse:
        """Return the data the template was expanded with."""

        return JSONResponse(content=jsonable_encoder(data))

    @application.get("/")
    @application.get("/{file_path:path}")
    async def template_file_endpoint(file_path: str = "") -> Response:
        try:
            logical_path, content = load_template_file(file_path)
        except AssetNotFoundError as exc:
            log.error("Error loading template file.")
            log.error(str(exc))
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Not Found"})
        return Response(content=content, media_type=guess_content_type(logical_path))

    application.state.file_cache = file_cache
    return application


__all__ = ["DATA_ENDPOINT", "create_app", "guess_content_type"]
