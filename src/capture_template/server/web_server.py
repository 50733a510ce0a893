"""Ephemeral web server hosting one expanded template."""

from __future__ import annotations

import asyncio
import logging
import os
import socket
from typing import Any, Optional, Union

import uvicorn

from capture_template.errors import CaptureError, ServerBindError, UsageError
from capture_template.models.template import TemplateConfig
from capture_template.server.app import create_app
from capture_template.templates.config import load_template_config
from capture_template.templates.expander import ExpandedTemplate, inflate_template

logger = logging.getLogger(__name__)

HOST = "127.0.0.1"
STARTUP_TIMEOUT = 10.0
STARTUP_POLL_INTERVAL = 0.01
GRACEFUL_SHUTDOWN_TIMEOUT = 5


def _bind_socket(port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((HOST, port))
    except OSError as exc:
        sock.close()
        raise ServerBindError(f"Unable to bind asset server to {HOST}:{port}: {exc}") from exc
    sock.set_inheritable(True)
    return sock


class AssetServer:
    """Serve an expanded template over HTTP on ``127.0.0.1``.

    Port 0 asks the operating system for a free port; the port actually bound is
    available from ``assigned_port`` once ``start`` has returned.
    """

    def __init__(self, port: int = 0, *, log: Optional[Any] = None, log_requests: bool = False) -> None:
        self.requested_port = port
        self.assigned_port = port
        self._log = log or logger
        self._log_requests = log_requests
        self._server: Optional[uvicorn.Server] = None
        self._serve_task: Optional[asyncio.Task[None]] = None
        self._socket: Optional[socket.socket] = None

    @property
    def is_running(self) -> bool:
        return self._server is not None

    def get_url(self) -> str:
        """Get the URL to access the web server."""

        return f"http://{HOST}:{self.assigned_port}"

    async def start(self, data: Any, template: ExpandedTemplate) -> int:
        """Bind and start serving; returns the assigned port once connections are accepted."""

        if self._server is not None:
            raise UsageError("Asset server is already started, call 'stop' first.")

        sock = _bind_socket(self.requested_port)
        application = create_app(template, data, log=self._log, log_requests=self._log_requests)
        config = uvicorn.Config(
            application,
            log_config=None,
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_TIMEOUT,
        )
        server = uvicorn.Server(config)
        serve_task = asyncio.create_task(server.serve(sockets=[sock]))
        try:
            await self._wait_until_started(server, serve_task)
        except BaseException:
            server.should_exit = True
            serve_task.cancel()
            await asyncio.gather(serve_task, return_exceptions=True)
            sock.close()
            raise

        self.assigned_port = sock.getsockname()[1]
        self._server = server
        self._serve_task = serve_task
        self._socket = sock
        logger.debug("Asset server listening on %s", self.get_url())
        return self.assigned_port

    async def _wait_until_started(self, server: uvicorn.Server, serve_task: asyncio.Task[None]) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + STARTUP_TIMEOUT
        while not server.started:
            if serve_task.done():
                cause = serve_task.exception() if not serve_task.cancelled() else None
                raise ServerBindError(
                    f"Asset server exited before it started listening on port {self.requested_port}."
                ) from cause
            if loop.time() > deadline:
                raise ServerBindError(
                    f"Asset server did not start listening within {STARTUP_TIMEOUT:g} seconds."
                )
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

    async def wait_closed(self) -> None:
        """Block until the server stops serving."""

        if self._serve_task is not None:
            await asyncio.shield(self._serve_task)

    async def stop(self) -> None:
        """Stop the web server. Does nothing when it is not running."""

        server, serve_task, sock = self._server, self._serve_task, self._socket
        self._server = None
        self._serve_task = None
        self._socket = None
        if server is None or serve_task is None:
            return

        server.should_exit = True
        try:
            await serve_task
        except Exception as exc:
            raise CaptureError(f"Asset server on {self.get_url()} did not shut down cleanly: {exc}") from exc
        finally:
            if sock is not None:
                sock.close()
        logger.debug("Asset server on %s stopped", self.get_url())


class TemplateWebServer:
    """Expand a template, validate its configuration and host it on an asset server."""

    def __init__(self, log: Optional[Any] = None, log_requests: bool = False) -> None:
        self._log = log
        self._log_requests = log_requests
        self._web_server: Optional[AssetServer] = None
        self._template_config: Optional[TemplateConfig] = None

    def get_url(self) -> str:
        if self._web_server is None or not self._web_server.is_running:
            raise UsageError("Template web server is not started, please call 'start'.")
        return self._web_server.get_url()

    def get_template_config(self) -> TemplateConfig:
        if self._template_config is None:
            raise UsageError("Template web server is not started, please call 'start'.")
        return self._template_config

    async def start(self, data: Any, template_path: Union[str, os.PathLike], port: int = 0) -> None:
        """Inflate the template and start serving it.

        Configuration errors are raised before any socket is bound.
        """

        if self._template_config is not None:
            raise UsageError(
                "Template web server is already started. Please end the previous session by calling 'end'."
            )

        template = inflate_template(data, template_path)
        template_config = load_template_config(template, template_path)

        web_server = AssetServer(port, log=self._log, log_requests=self._log_requests)
        await web_server.start(data, template)
        self._web_server = web_server
        self._template_config = template_config
        logger.info("Serving template %s at %s", template_path, web_server.get_url())

    async def wait_closed(self) -> None:
        if self._web_server is not None:
            await self._web_server.wait_closed()

    async def end(self) -> None:
        """Stop serving the template."""

        self._template_config = None
        web_server, self._web_server = self._web_server, None
        if web_server is not None:
            await web_server.stop()


__all__ = ["AssetServer", "HOST", "TemplateWebServer"]
