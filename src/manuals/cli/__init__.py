"""CLI entry point for manuals."""

from __future__ import annotations

from pathlib import Path

import typer

from manuals import __build_time__, __commit__, __version__
from manuals.cli_services import (
    EXIT_SUCCESS,
    CLIContext,
    console,
    get_services,
    reported,
)
from manuals.client import Download
from manuals.exceptions import FilesystemError, ValidationError
from manuals.output import OutputFormat, Renderer, format_size, truncate

app = typer.Typer(
    name="manuals",
    help="""CLI for the Manuals documentation platform.

Search and fetch hardware and software documentation.

Configure the API endpoint and key via environment variables:
MANUALS_API_URL (default: http://localhost:8080) and MANUALS_API_KEY (required),
or in ~/.manuals.yaml with the keys api_url, api_key and output_format.""",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

devices_app = typer.Typer(
    help="List and view devices",
    no_args_is_help=True,
)
documents_app = typer.Typer(
    help="List and download documents (PDFs, datasheets, etc.)",
    no_args_is_help=True,
)

app.add_typer(devices_app, name="devices")
app.add_typer(documents_app, name="documents")
app.add_typer(documents_app, name="docs", hidden=True)

ID_WIDTH = 8
SEARCH_NAME_WIDTH = 40
LIST_NAME_WIDTH = 45
SNIPPET_COUNT = 3
SNIPPET_WIDTH = 200
CHECKSUM_WIDTH = 16


def _short_id(value: str) -> str:
    return value[:ID_WIDTH]


def _print_version() -> None:
    console.out(f"manuals version {__version__}", highlight=False)
    console.out(f"  commit: {__commit__}", highlight=False)
    console.out(f"  built:  {__build_time__}", highlight=False)


def _more_results_hint(out: Renderer, total: int, offset: int, shown: int) -> None:
    if total > shown:
        out.text("\nUse --offset %d to see more results.\n", offset + shown)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_file: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (default: ~/.manuals.yaml)",
    ),
    api_url: str | None = typer.Option(None, "--api-url", help="API base URL"),
    api_key: str | None = typer.Option(None, "--api-key", help="API key"),
    output_format: str | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format (table, json, text)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests to stderr",
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        help="Show version information",
        is_flag=True,
    ),
):
    """manuals - search hardware and software documentation."""
    if version:
        _print_version()
        raise typer.Exit(code=EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        console.print("[bold]manuals[/bold] - CLI for the Manuals documentation platform")
        console.print("Use --help for usage information")
        raise typer.Exit(code=EXIT_SUCCESS)

    # Config is loaded by the first command that needs services.
    ctx.obj = CLIContext(
        config_file=config_file,
        api_url=api_url,
        api_key=api_key,
        output_format=output_format,
        verbose=verbose,
    )


@app.command()
def version() -> None:
    """Show version information."""
    _print_version()


@app.command()
def search(
    ctx: typer.Context,
    query: list[str] = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(
        20,
        "--limit",
        "-l",
        help="Maximum number of results",
    ),
) -> None:
    """Search for devices and documentation.

    Results are ranked by relevance and include snippet previews.

    Examples:
    manuals search "raspberry pi gpio"
    manuals search "uart protocol" --limit 5
    manuals -o json search esp32
    """
    services = get_services(ctx)
    out = services.renderer

    with reported("search failed"):
        results = services.client.search(" ".join(query), limit)

    if out.is_json:
        out.json(results)
        return

    if not results.results:
        out.println("No results found.")
        return

    out.text('Found %d results for "%s":\n\n', results.total, results.query)

    rows = [
        [
            _short_id(r.device_id),
            truncate(r.name, SEARCH_NAME_WIDTH),
            r.domain,
            r.type,
            f"{r.score:.2f}",
        ]
        for r in results.results
    ]
    out.table(["ID", "NAME", "DOMAIN", "TYPE", "SCORE"], rows)

    if out.format is OutputFormat.TEXT:
        out.println("\n--- Snippets ---")
        for r in results.results[:SNIPPET_COUNT]:
            if r.snippet:
                out.text("\n[%s] %s\n", _short_id(r.device_id), r.name)
                out.text("  %s\n", truncate(r.snippet, SNIPPET_WIDTH))


@devices_app.command("list")
def list_devices(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum number of results"),
    offset: int = typer.Option(0, "--offset", help="Offset for pagination"),
    domain: str = typer.Option(
        "",
        "--domain",
        "-d",
        help="Filter by domain (hardware, software)",
    ),
    device_type: str = typer.Option("", "--type", "-t", help="Filter by type"),
) -> None:
    """List devices, optionally filtered by domain or type."""
    services = get_services(ctx)
    out = services.renderer

    with reported("failed to list devices"):
        result = services.client.list_devices(limit, offset, domain, device_type)

    if out.is_json:
        out.json(result)
        return

    if not result.data:
        out.println("No devices found.")
        return

    out.text("Showing %d of %d devices:\n\n", len(result.data), result.total)
    rows = [
        [_short_id(d.id), truncate(d.name, LIST_NAME_WIDTH), d.domain, d.type]
        for d in result.data
    ]
    out.table(["ID", "NAME", "DOMAIN", "TYPE"], rows)
    _more_results_hint(out, result.total, result.offset, len(result.data))


@devices_app.command("get")
def get_device(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., metavar="ID", help="Device ID"),
) -> None:
    """Get details about a device."""
    services = get_services(ctx)
    out = services.renderer

    with reported("failed to get device"):
        device = services.client.get_device(device_id)

    if out.is_json:
        out.json(device)
        return

    out.text("Device: %s\n", device.name)
    out.text("  ID:        %s\n", device.id)
    out.text("  Domain:    %s\n", device.domain)
    out.text("  Type:      %s\n", device.type)
    out.text("  Path:      %s\n", device.path)
    out.text("  Indexed:   %s\n", device.indexed_at)

    if device.content:
        out.text("\n--- Content ---\n%s\n", device.content)


@documents_app.command("list")
def list_documents(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum number of results"),
    offset: int = typer.Option(0, "--offset", help="Offset for pagination"),
    device_id: str = typer.Option("", "--device", help="Filter by device ID"),
) -> None:
    """List documents, optionally only those of one device."""
    services = get_services(ctx)
    out = services.renderer

    with reported("failed to list documents"):
        result = services.client.list_documents(limit, offset, device_id)

    if out.is_json:
        out.json(result)
        return

    if not result.data:
        out.println("No documents found.")
        return

    out.text("Showing %d of %d documents:\n\n", len(result.data), result.total)
    rows = [
        [
            _short_id(d.id),
            truncate(d.filename, LIST_NAME_WIDTH),
            d.mime_type,
            format_size(d.size_bytes),
        ]
        for d in result.data
    ]
    out.table(["ID", "FILENAME", "TYPE", "SIZE"], rows)
    _more_results_hint(out, result.total, result.offset, len(result.data))


@documents_app.command("get")
def get_document(
    ctx: typer.Context,
    document_id: str = typer.Argument(..., metavar="ID", help="Document ID"),
) -> None:
    """Get details about a document."""
    services = get_services(ctx)
    out = services.renderer

    with reported("failed to get document"):
        doc = services.client.get_document(document_id)

    if out.is_json:
        out.json(doc)
        return

    checksum = doc.checksum
    if len(checksum) > CHECKSUM_WIDTH:
        checksum = checksum[:CHECKSUM_WIDTH] + "..."

    out.text("Document: %s\n", doc.filename)
    out.text("  ID:        %s\n", doc.id)
    out.text("  Device:    %s\n", doc.device_id)
    out.text("  Path:      %s\n", doc.path)
    out.text("  Type:      %s\n", doc.mime_type)
    out.text("  Size:      %s\n", format_size(doc.size_bytes))
    out.text("  Checksum:  %s\n", checksum)
    out.text("  Indexed:   %s\n", doc.indexed_at)


def _resolve_destination(output: Path | None, filename: str) -> Path:
    """Pick the download path: ``output`` as a file, or a directory to put ``filename`` in."""
    if output is not None and not output.is_dir():
        return output
    if not filename:
        raise ValidationError("no filename available for the document; use --output")
    directory = output if output is not None else Path(".")
    return directory / filename


def _write_download(download: Download, destination: Path) -> int:
    """Stream a download into ``destination``, returning the bytes written."""
    written = 0
    try:
        with open(destination, "wb") as f:
            for chunk in download.iter_bytes():
                f.write(chunk)
                written += len(chunk)
    except OSError as e:
        raise FilesystemError(f"failed to write {destination}: {e}") from e
    return written


@documents_app.command("download")
def download_document(
    ctx: typer.Context,
    document_id: str = typer.Argument(..., metavar="ID", help="Document ID"),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output path (file or directory)",
    ),
) -> None:
    """Download a document file.

    By default the file is saved in the current directory under its original
    name. Use --output to pick a file path or a directory.
    """
    services = get_services(ctx)
    client = services.client

    with reported("failed to get document info"):
        doc = client.get_document(document_id)

    with reported("failed to download document"):
        with client.download_document(document_id) as download:
            filename = download.filename or Path(doc.filename).name
            destination = _resolve_destination(output, filename)
            written = _write_download(download, destination)

    services.renderer.text(
        "Downloaded %s (%s) to %s\n", filename, format_size(written), destination
    )


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
