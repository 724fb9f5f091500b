"""Command line interface for Rolodex."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from rolodex.config import AppConfig
from rolodex.core.identifiers import IdentifierScheme
from rolodex.core.matching import DEFAULT_FIELDS, DEFAULT_THRESHOLD
from rolodex.core.upsert import UpsertResult
from rolodex.models import ContactRecord
from rolodex.service import ContactService
from rolodex.web.app import app as web_app, build_service


console = Console()
app = typer.Typer(help="Rolodex - contacts with fuzzy search")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _open_service(db: Path | None, scheme: IdentifierScheme, **options) -> ContactService:
    return build_service(AppConfig(db_path=db, id_scheme=scheme, **options))


def _contact_table(records: Iterable[ContactRecord], scores: Iterable[float] | None = None) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    if scores is not None:
        table.add_column("Score")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Phone")

    score_list = list(scores) if scores is not None else None
    for index, record in enumerate(records):
        row = [record.id, record.name, record.phone]
        if score_list is not None:
            row.insert(0, f"{score_list[index]:.4f}")
        table.add_row(*row)
    return table


def _report(result: UpsertResult) -> None:
    if result.error is not None:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(code=1)
    verb = "Created" if result.created else "Updated"
    console.print(f"{verb} contact [bold]{result.record.id}[/bold]")


DbOption = typer.Option(None, "--db", help="SQLite database path")
SchemeOption = typer.Option(IdentifierScheme.HEX24, "--scheme", help="Identifier scheme")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def add(
    name: str = typer.Argument(..., help="Display name"),
    phone: str = typer.Argument(..., help="Phone number"),
    db: Path = DbOption,
    scheme: IdentifierScheme = SchemeOption,
    verbose: bool = VerboseOption,
) -> None:
    """Create a contact with a generated id."""
    _setup_logging(verbose)
    service = _open_service(db, scheme)
    try:
        _report(service.create({"name": name, "phone": phone}))
    finally:
        service.store.close()


@app.command()
def put(
    contact_id: str = typer.Argument(..., help="Contact id"),
    name: str = typer.Argument(..., help="Display name"),
    phone: str = typer.Argument(..., help="Phone number"),
    db: Path = DbOption,
    scheme: IdentifierScheme = SchemeOption,
    verbose: bool = VerboseOption,
) -> None:
    """Create or fully replace the contact with CONTACT_ID."""
    _setup_logging(verbose)
    service = _open_service(db, scheme)
    try:
        _report(service.replace({"id": contact_id, "name": name, "phone": phone}))
    finally:
        service.store.close()


@app.command()
def update(
    contact_id: str = typer.Argument(..., help="Contact id"),
    name: Optional[str] = typer.Option(None, help="New name"),
    phone: Optional[str] = typer.Option(None, help="New phone"),
    create: bool = typer.Option(False, "--create", help="Create the contact if it does not exist"),
    db: Path = DbOption,
    scheme: IdentifierScheme = SchemeOption,
    verbose: bool = VerboseOption,
) -> None:
    """Change only the given fields of an existing contact."""
    _setup_logging(verbose)
    service = _open_service(db, scheme, fallback_create=create)
    try:
        _report(service.merge(contact_id, {"name": name, "phone": phone}))
    finally:
        service.store.close()


@app.command("list")
def list_contacts(
    db: Path = DbOption,
    scheme: IdentifierScheme = SchemeOption,
) -> None:
    """Show every contact in insertion order."""
    service = _open_service(db, scheme)
    records = service.list_contacts()
    service.store.close()
    if not records:
        console.print("[yellow]No contacts yet.[/yellow]")
        return
    console.print(_contact_table(records))


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    field: List[str] = typer.Option(list(DEFAULT_FIELDS), "--field", "-f", help="Field to search"),
    threshold: float = typer.Option(DEFAULT_THRESHOLD, help="Maximum normalized distance"),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", help="Do not fold case"),
    db: Path = DbOption,
    scheme: IdentifierScheme = SchemeOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fuzzy search contacts by name and phone."""
    _setup_logging(verbose)
    service = _open_service(db, scheme)
    try:
        config = service.config.search_config(
            fields=tuple(field), threshold=threshold, case_sensitive=case_sensitive
        )
    except ValueError as exc:
        service.store.close()
        raise typer.BadParameter(str(exc)) from exc

    matches = service.search(query, config)
    service.store.close()
    if not matches:
        console.print("[yellow]No matches found.[/yellow]")
        return
    console.print(
        _contact_table([m.record for m in matches], scores=[m.score for m in matches])
    )


@app.command()
def delete(
    contact_id: str = typer.Argument(..., help="Contact id"),
    db: Path = DbOption,
    scheme: IdentifierScheme = SchemeOption,
) -> None:
    """Delete the contact with exactly CONTACT_ID."""
    service = _open_service(db, scheme)
    try:
        error = service.check_identifier(contact_id)
        if error is not None:
            console.print(f"[red]{error}[/red]")
            raise typer.Exit(code=1)
        removed = service.delete(contact_id)
    finally:
        service.store.close()

    if removed is None:
        console.print(f"[yellow]No contact with id {contact_id}.[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"Deleted contact [bold]{removed.id}[/bold] ({removed.name})")


@app.command()
def seed(
    db: Path = DbOption,
    scheme: IdentifierScheme = SchemeOption,
) -> None:
    """Load the demo contacts, near-duplicates included."""
    service = _open_service(db, scheme)
    try:
        created = service.seed()
        total = service.store.count_contacts()
    finally:
        service.store.close()
    console.print(f"Added {len(created)} demo contacts ({total} total).")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(3001, help="Server port"),
    db: Path = DbOption,
    scheme: IdentifierScheme = SchemeOption,
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    service = _open_service(db, scheme)
    web_app.state.service = service
    console.print(
        f"Starting API on http://{host}:{port} (database: {service.store.db_path})"
    )
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    app()
