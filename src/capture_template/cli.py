"""Command-line interface for template capture."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Dict, Iterable, List, Optional

import typer

from capture_template.api import capture_image, capture_pdf, load_test_data
from capture_template.config import get_settings
from capture_template.errors import CaptureError
from capture_template.logging_utils import configure_logging, secrets_from_env
from capture_template.models.capture import CaptureOptions
from capture_template.server.web_server import TemplateWebServer

app = typer.Typer(help="Expand web page templates and capture them to PNG or PDF.")

TEMPLATE_OPTION = typer.Option(..., "--template", help="Path to your web page template directory.")
OUT_OPTION = typer.Option(..., "--out", help="Path to the output file.")
WAIT_TIMEOUT_OPTION = typer.Option(None, "--wait-timeout", help="Seconds to wait for the wait selector.")
GOTO_TIMEOUT_OPTION = typer.Option(None, "--goto-timeout", help="Seconds to wait for navigation.")
SHOW_BROWSER_OPTION = typer.Option(None, "--show-browser/--hide-browser", help="Show the browser window.")
DEV_TOOLS_OPTION = typer.Option(None, "--dev-tools/--no-dev-tools", help="Open the browser dev tools.")
EXECUTABLE_PATH_OPTION = typer.Option(None, "--executable-path", help="Chromium executable to launch.")
BROWSER_ENV_OPTION = typer.Option(
    None,
    "--browser-env",
    help="Extra KEY=VALUE environment variable for the browser process (repeatable). Values are redacted from logs.",
)


def _parse_browser_env(entries: Optional[List[str]]) -> Optional[Dict[str, str]]:
    if not entries:
        return None
    env: Dict[str, str] = {}
    for entry in entries:
        key, separator, value = entry.partition("=")
        if not separator or not key.strip():
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{entry}'.", param_hint="--browser-env")
        env[key.strip()] = value
    return env


def _build_options(
    wait_timeout: Optional[float],
    goto_timeout: Optional[float],
    show_browser: Optional[bool],
    dev_tools: Optional[bool],
    executable_path: Optional[Path],
    browser_env: Optional[List[str]],
) -> CaptureOptions:
    return CaptureOptions.from_settings(
        get_settings(),
        wait_timeout=wait_timeout,
        goto_timeout=goto_timeout,
        show_browser=show_browser,
        open_dev_tools=dev_tools,
        executable_path=executable_path,
        env=_parse_browser_env(browser_env),
    )


def _run(awaitable: Awaitable[Any], secrets: Iterable[str] = ()) -> Any:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format, secrets)
    try:
        return asyncio.run(awaitable)
    except CaptureError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


async def _serve(template: Path, port: int) -> None:
    test_data = load_test_data(template)
    settings = get_settings()
    web_server = TemplateWebServer(log_requests=settings.log_requests)
    await web_server.start(test_data, template, port)
    typer.echo(f"Point your browser at {web_server.get_url()}")
    try:
        await web_server.wait_closed()
    finally:
        await web_server.end()


@app.command()
def serve(
    template: Path = TEMPLATE_OPTION,
    port: int = typer.Option(..., "--port", help="Web server port number (0 picks a free port)."),
) -> None:
    """Inflate the template with its test data and serve it for testing in a browser."""

    try:
        _run(_serve(template, port))
    except KeyboardInterrupt:
        typer.echo("Stopping server...")


@app.command("capture-image")
def capture_image_command(
    template: Path = TEMPLATE_OPTION,
    out: Path = OUT_OPTION,
    wait_timeout: Optional[float] = WAIT_TIMEOUT_OPTION,
    goto_timeout: Optional[float] = GOTO_TIMEOUT_OPTION,
    show_browser: Optional[bool] = SHOW_BROWSER_OPTION,
    dev_tools: Optional[bool] = DEV_TOOLS_OPTION,
    executable_path: Optional[Path] = EXECUTABLE_PATH_OPTION,
    browser_env: Optional[List[str]] = BROWSER_ENV_OPTION,
) -> None:
    """Capture an image from a web page template using its test data."""

    options = _build_options(wait_timeout, goto_timeout, show_browser, dev_tools, executable_path, browser_env)

    async def _capture() -> None:
        await capture_image(load_test_data(template), template, out, options)

    _run(_capture(), secrets_from_env(options.env))
    typer.echo(f"Saved image to {out}")


@app.command("capture-pdf")
def capture_pdf_command(
    template: Path = TEMPLATE_OPTION,
    out: Path = OUT_OPTION,
    wait_timeout: Optional[float] = WAIT_TIMEOUT_OPTION,
    goto_timeout: Optional[float] = GOTO_TIMEOUT_OPTION,
    show_browser: Optional[bool] = SHOW_BROWSER_OPTION,
    dev_tools: Optional[bool] = DEV_TOOLS_OPTION,
    executable_path: Optional[Path] = EXECUTABLE_PATH_OPTION,
    browser_env: Optional[List[str]] = BROWSER_ENV_OPTION,
) -> None:
    """Capture a PDF from a web page template using its test data."""

    options = _build_options(wait_timeout, goto_timeout, show_browser, dev_tools, executable_path, browser_env)

    async def _capture() -> None:
        await capture_pdf(load_test_data(template), template, out, options)

    _run(_capture(), secrets_from_env(options.env))
    typer.echo(f"Saved PDF to {out}")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the ``capture-template`` console script."""
    app(prog_name="capture-template", args=argv)


if __name__ == "__main__":
    main()
