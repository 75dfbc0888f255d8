"""Command-line access to the document service and batch submission."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .cache import DocumentCache
from .configuration import configure_logging, make_runtime_config
from .document_service import DocumentService
from .errors import DocumentNotFoundError, EditorClientError
from .gateway import ProcessingGateway
from .library import DocumentLibrary
from .notifications import NoticeBoard, NoticeLevel
from .utils import freshness_token
from .validation import validate_batch

app = typer.Typer(
    name="editor-pdf",
    help="Browse documents and apply annotation batches through the document service",
    add_completion=False,
)
console = Console()

T = TypeVar("T")


def _run(api_url: Optional[str], action: Callable[[DocumentLibrary], Awaitable[T]]) -> T:
    overrides = {"api": {"base_url": api_url}} if api_url else None
    config = make_runtime_config(overrides)
    configure_logging(config)

    async def runner() -> T:
        async with DocumentService.from_config(config) as service:
            library = DocumentLibrary(service, DocumentCache.from_config(config), NoticeBoard(), config)
            try:
                return await action(library)
            finally:
                _print_notices(library.notifier)

    try:
        return asyncio.run(runner())
    except DocumentNotFoundError as exc:
        console.print(f"[bold red]Not found:[/bold red] {exc}")
        raise typer.Exit(code=2)
    except EditorClientError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1)


def _print_notices(board: Any) -> None:
    for notice in board.drain():
        if notice.level is NoticeLevel.SUCCESS:
            console.print(f"[green]{notice.title}[/green]")
        else:
            detail = f" [dim]({notice.description})[/dim]" if notice.description else ""
            console.print(f"[red]{notice.title}[/red]{detail}")


ApiUrl = typer.Option(None, "--api-url", help="Override the service base URL")


@app.command("list")
def list_documents(
    limit: int = typer.Option(20, help="Maximum documents to show"),
    offset: int = typer.Option(0, help="Number of documents to skip"),
    api_url: Optional[str] = ApiUrl,
) -> None:
    """List documents."""
    result = _run(api_url, lambda library: library.list_documents(limit=limit, offset=offset))

    table = Table(title=f"Documents ({result.offset + 1}-{result.offset + len(result.documents)} of {result.total})")
    for column in ("ID", "Status", "Pages", "Version", "Updated"):
        table.add_column(column)
    for document in result.documents:
        table.add_row(
            document.id,
            document.status.value,
            str(document.page_count),
            str(document.version),
            document.updated_at.isoformat() if document.updated_at else "-",
        )
    console.print(table)


@app.command()
def show(document_id: str = typer.Argument(..., help="Document ID"), api_url: Optional[str] = ApiUrl) -> None:
    """Show one document."""
    document = _run(api_url, lambda library: library.get_document(document_id))
    console.print_json(document.model_dump_json())


@app.command()
def upload(pdf_path: Path = typer.Argument(..., help="PDF file to upload"), api_url: Optional[str] = ApiUrl) -> None:
    """Upload a PDF document."""
    response = _run(api_url, lambda library: library.upload(pdf_path))
    console.print(f"[bold blue]Document ID:[/bold blue] {response.document.id}")


@app.command()
def delete(document_id: str = typer.Argument(..., help="Document ID"), api_url: Optional[str] = ApiUrl) -> None:
    """Delete a document."""
    _run(api_url, lambda library: library.delete(document_id))


@app.command()
def apply(
    document_id: str = typer.Argument(..., help="Document ID"),
    batch_path: Path = typer.Argument(..., help="JSON file holding a list of edit instructions"),
    api_url: Optional[str] = ApiUrl,
) -> None:
    """Validate a batch of edit instructions and submit it in one request."""
    try:
        payload = json.loads(batch_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Could not read batch file:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    instructions = payload.get("instructions", []) if isinstance(payload, dict) else payload
    if not isinstance(instructions, list):
        console.print("[bold red]Batch rejected:[/bold red] expected a list of edit instructions")
        raise typer.Exit(code=1)

    errors = validate_batch(instructions)
    if errors:
        console.print("[bold red]Batch rejected:[/bold red]")
        for error in errors:
            console.print(f"  {error}", markup=False)
        raise typer.Exit(code=1)

    async def action(library: DocumentLibrary):
        gateway = ProcessingGateway.from_config(library.config, library.service, library.cache, library.notifier)
        return await gateway.submit(document_id, instructions)

    result = _run(api_url, action)

    if result is None or not result.succeeded:
        raise typer.Exit(code=1)
    if result.document is not None:
        console.print(f"[dim]Version {result.document.version}, status {result.document.status.value}[/dim]")


@app.command()
def preview(
    document_id: str = typer.Argument(..., help="Document ID"),
    page: int = typer.Argument(..., min=1, help="1-based page number"),
    output: Path = typer.Argument(..., help="Where to write the page image"),
    api_url: Optional[str] = ApiUrl,
) -> None:
    """Download the rendered image of one page."""
    data = _run(api_url, lambda library: library.service.fetch_preview(document_id, page, freshness_token()))
    output.write_bytes(data)
    console.print(f"[bold blue]Saved:[/bold blue] {output} ({len(data)} bytes)")


if __name__ == "__main__":
    app()
