"""CLI service layer for manuals.

Builds the API client and output renderer once per invocation and hands them
to commands through the Typer context, instead of process-wide globals.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from manuals.client import ManualsClient
from manuals.config import ManualsConfig, load_config
from manuals.exceptions import ConfigError, ManualsError
from manuals.output import Renderer

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1

console = Console(stderr=False)  # stdout for normal output
error_console = Console(stderr=True)  # stderr for errors


def _escape_rich(text: str) -> str:
    """Escape brackets to prevent Rich markup interpretation."""
    return text.replace("[", "\\[").replace("]", "\\]")


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr through Rich; DEBUG when verbose."""
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(
        RichHandler(console=error_console, show_path=False, rich_tracebacks=False)
    )
    root.setLevel(level)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


class CLIContext:
    """Invocation-scoped global options recorded by the root callback.

    Services are built from these only when a command first asks for them,
    so ``--help`` and ``version`` run without any configuration.
    """

    def __init__(
        self,
        config_file: Path | None = None,
        api_url: str | None = None,
        api_key: str | None = None,
        output_format: str | None = None,
        verbose: bool = False,
    ):
        self.config_file = config_file
        self.api_url = api_url
        self.api_key = api_key
        self.output_format = output_format
        self.verbose = verbose
        self.services: CLIServiceContext | None = None


class CLIServiceContext:
    """Invocation-scoped services for CLI commands.

    Encapsulates:
    - The loaded and validated configuration
    - The API client
    - The output renderer
    """

    def __init__(
        self,
        config: ManualsConfig,
        client: ManualsClient,
        renderer: Renderer,
    ):
        self.config = config
        self.client = client
        self.renderer = renderer

    @classmethod
    def from_config(
        cls,
        config: ManualsConfig,
        output_console: Console | None = None,
    ) -> CLIServiceContext:
        """Build services from a validated config."""
        return cls(
            config=config,
            client=ManualsClient(config.api_url, config.api_key),
            renderer=Renderer(config.output_format, console=output_console),
        )

    def close(self) -> None:
        self.client.close()


def get_services(ctx: typer.Context) -> CLIServiceContext:
    """Return the invocation's services, building them on first use.

    Loads and validates the configuration from the global options, sets up
    logging and registers the client to be closed with the context.

    Raises:
        typer.Exit: If the configuration is missing or invalid.
    """
    options = ctx.find_object(CLIContext)
    if options is None:
        error_console.print("[red]Error:[/red] CLI context is not initialized")
        raise typer.Exit(code=EXIT_ERROR)
    if options.services is not None:
        return options.services

    try:
        config = load_config(
            options.config_file,
            api_url=options.api_url,
            api_key=options.api_key,
            output_format=options.output_format,
        )
        config.validate_for_api()
    except ConfigError as e:
        raise fail(str(e)) from e

    configure_logging(options.verbose or config.verbose)

    options.services = CLIServiceContext.from_config(config, output_console=console)
    ctx.call_on_close(options.services.close)
    return options.services


def fail(message: str, error: BaseException | None = None) -> typer.Exit:
    """Print an error to stderr and return the Exit to raise."""
    detail = f"{message}: {error}" if error is not None else message
    error_console.print(f"[red]Error:[/red] {_escape_rich(detail)}")
    return typer.Exit(code=EXIT_ERROR)


@contextmanager
def reported(action: str) -> Iterator[None]:
    """Report a ManualsError raised in the block as ``Error: <action>: <cause>``.

    Usage:
        with reported("failed to list devices"):
            result = client.list_devices(...)

    Raises:
        typer.Exit: With EXIT_ERROR, after printing the error.
    """
    try:
        yield
    except ManualsError as e:
        logger.debug("%s", action, exc_info=True)
        raise fail(action, e) from e

