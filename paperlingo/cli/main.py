"""
paperlingo: vocabulary review CLI.

A Rich terminal interface over the local card store, with optional
replication to a remote store keyed by sync identity.

Commands:
- paperlingo login IDENTITY   - Activate sync (replaces local data)
- paperlingo add TERM MEANING - Save a word
- paperlingo import FILE      - Bulk import from CSV
- paperlingo deck ...         - Create, list, delete decks
- paperlingo due              - List cards due now
- paperlingo review           - Interactive review session
- paperlingo stats            - Statistics dashboard
- paperlingo limit [N]        - Show or set the daily review limit
"""
from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from paperlingo import __version__
from paperlingo.config import get_settings
from paperlingo.delivery.models import Card, Rating
from paperlingo.delivery.scheduler import format_interval
from paperlingo.delivery.state_store import CardStore
from paperlingo.remote.sync_engine import SyncEngine
from paperlingo.study.study_service import CardNotFoundError, VocabularyService

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="paperlingo",
    help="paperlingo: spaced repetition for the words you look up",
    no_args_is_help=True,
)
deck_app = typer.Typer(help="Deck management")
app.add_typer(deck_app, name="deck")

console = Console()

RATING_STYLES = {
    Rating.AGAIN: "bold red",
    Rating.HARD: "bold yellow",
    Rating.GOOD: "bold green",
    Rating.EASY: "bold cyan",
}

IdentityOption = typer.Option(
    None,
    "--identity",
    "-i",
    help="Sync identity (default: PAPERLINGO sync_identity setting)",
)


# =============================================================================
# Session wiring
# =============================================================================


@contextmanager
def open_service(identity: str | None) -> Iterator[VocabularyService]:
    """
    Open the store and sync engine for one command.

    Writes are mirrored for ``identity`` (or the configured default); pending
    pushes are flushed before the command exits.
    """
    settings = get_settings()
    identity = identity or settings.sync_identity

    store = CardStore()
    sync = SyncEngine(store)
    if not sync.resume(identity):
        console.print(
            f"[yellow]Run 'paperlingo login {identity}' to sync as {identity}; working locally[/yellow]"
        )
    service = VocabularyService(store, sync=sync)
    try:
        yield service
    finally:
        if not sync.flush(timeout=10.0):
            console.print("[yellow]Some changes are still waiting to sync[/yellow]")
        sync.close()
        store.close()


def _resolve_deck_id(service: VocabularyService, deck: str | None) -> str | None:
    if deck is None:
        return None
    found = service.find_deck(deck)
    if found is None:
        console.print(f"[red]No deck named '{deck}'[/red]")
        raise typer.Exit(1)
    return found.id


# =============================================================================
# Commands
# =============================================================================


@app.command()
def login(
    identity: str = typer.Argument(..., help="Sync identity to activate"),
) -> None:
    """Activate sync for an identity, replacing local data with its remote copy."""
    store = CardStore()
    sync = SyncEngine(store)
    try:
        if not sync.client.enabled:
            console.print("[yellow]No remote store configured; working locally[/yellow]")
        report = sync.activate(identity)
        sync.flush(timeout=10.0)
    finally:
        sync.close()
        store.close()

    table = Table(title=f"Activated {report.identity or 'local data'}", show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Cards", str(report.cards_adopted + report.cards_replaced))
    table.add_row("Kept local", str(report.cards_kept_local))
    table.add_row("Decks", str(report.decks_adopted))
    table.add_row("Review logs", str(report.logs_adopted))
    if report.skipped_records:
        table.add_row("Skipped", f"[yellow]{report.skipped_records}[/yellow]")
    console.print(table)

    for error in report.errors:
        console.print(f"[yellow]⚠[/yellow] {error}")


@app.command()
def add(
    term: str = typer.Argument(..., help="Word or phrase"),
    meaning: str = typer.Argument(..., help="Meaning"),
    deck: Optional[str] = typer.Option(None, "--deck", "-d", help="Deck name or id"),
    explanation: str = typer.Option("", "--explanation", "-e", help="Usage note"),
    phonetic: str = typer.Option("", "--phonetic", "-p", help="Pronunciation"),
    identity: Optional[str] = IdentityOption,
) -> None:
    """Save a word as a new card."""
    with open_service(identity) as service:
        deck_id = _resolve_deck_id(service, deck)
        result = service.save_card(term, meaning, explanation, phonetic, deck_id)

    if result.added:
        console.print(f"[green]✓[/green] Saved [bold]{result.card.term}[/bold]")
    elif result.reason == "duplicate":
        console.print(f"[yellow]'{term.strip()}' is already saved[/yellow]")
    else:
        console.print("[red]Term must not be empty[/red]")
        raise typer.Exit(1)


@app.command("import")
def import_cards(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV: term,meaning[,explanation[,phonetic]]"),
    deck: Optional[str] = typer.Option(None, "--deck", "-d", help="Deck name or id"),
    identity: Optional[str] = IdentityOption,
) -> None:
    """Bulk import cards from a CSV file."""
    with open_service(identity) as service:
        deck_id = _resolve_deck_id(service, deck)
        report = service.import_csv(path, deck_id)

    table = Table(title="Import Summary", show_header=True)
    table.add_column("Result")
    table.add_column("Count", justify="right")
    table.add_row("[green]Added[/green]", str(report.added))
    table.add_row("[yellow]Duplicates[/yellow]", str(report.duplicates))
    table.add_row("[red]Errors[/red]", str(len(report.errors)))
    console.print(table)

    for row_number, message in report.errors[:20]:
        console.print(f"  [dim]row {row_number}:[/dim] {message}")


@deck_app.command("create")
def deck_create(
    name: str = typer.Argument(..., help="Deck name"),
    description: Optional[str] = typer.Option(None, "--description", help="Description"),
    identity: Optional[str] = IdentityOption,
) -> None:
    """Create a deck."""
    with open_service(identity) as service:
        try:
            created = service.create_deck(name, description)
        except ValueError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(1) from exc
    console.print(f"[green]✓[/green] Created deck [bold]{created.name}[/bold] [dim]({created.id})[/dim]")


@deck_app.command("list")
def deck_list(identity: Optional[str] = IdentityOption) -> None:
    """List decks with their card counts."""
    with open_service(identity) as service:
        decks = service.list_decks()
        cards = service.list_cards()

    if not decks:
        console.print("[dim]No decks yet[/dim]")
        return

    per_deck: dict[str | None, int] = {}
    for card in cards:
        per_deck[card.deck_id] = per_deck.get(card.deck_id, 0) + 1

    table = Table(title="Decks")
    table.add_column("Name", style="bold")
    table.add_column("Cards", justify="right")
    table.add_column("ID", style="dim")
    for item in decks:
        table.add_row(item.name, str(per_deck.get(item.id, 0)), item.id)
    if per_deck.get(None):
        table.add_row("[dim](no deck)[/dim]", str(per_deck[None]), "")
    console.print(table)


@deck_app.command("delete")
def deck_delete(
    deck: str = typer.Argument(..., help="Deck name or id"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    identity: Optional[str] = IdentityOption,
) -> None:
    """Delete a deck and every card in it."""
    with open_service(identity) as service:
        deck_id = _resolve_deck_id(service, deck)
        if not confirm and not Confirm.ask(f"Delete deck '{deck}' and all its cards?", default=False):
            raise typer.Exit(0)
        removed = service.delete_deck(deck_id)
    console.print(f"[green]Deleted deck and {removed} cards[/green]")


@app.command()
def due(
    deck: Optional[str] = typer.Option(None, "--deck", "-d", help="Deck name or id"),
    identity: Optional[str] = IdentityOption,
) -> None:
    """List the cards due now, in study order."""
    with open_service(identity) as service:
        deck_id = _resolve_deck_id(service, deck)
        queue = service.study_queue(deck_id)

    console.print(
        f"\n[bold]{len(queue.cards)}[/bold] to study "
        f"[dim](studied today {queue.studied_today}/{queue.daily_limit}, backlog {queue.backlog})[/dim]\n"
    )
    if not queue.cards:
        return

    table = Table()
    table.add_column("Term", style="bold")
    table.add_column("Meaning")
    table.add_column("Phase")
    table.add_column("Interval", justify="right")
    for card in queue.cards:
        table.add_row(card.term, card.meaning, card.phase.value, format_interval(card.interval_days))
    console.print(table)


@app.command()
def review(
    deck: Optional[str] = typer.Option(None, "--deck", "-d", help="Deck name or id"),
    identity: Optional[str] = IdentityOption,
) -> None:
    """Start an interactive review session."""
    with open_service(identity) as service:
        deck_id = _resolve_deck_id(service, deck)
        queue = service.study_queue(deck_id)

        if not queue.cards:
            if queue.due_total:
                console.print("[yellow]Daily limit reached. Raise it with 'paperlingo limit N'.[/yellow]")
            else:
                console.print("[green]Nothing due. Come back later![/green]")
            return

        reviewed = 0
        for index, card in enumerate(queue.cards, start=1):
            try:
                rating = _review_card(service, card, index, len(queue.cards))
            except CardNotFoundError:
                logger.warning("Card {} disappeared during the session", card.id)
                continue
            if rating is None:
                break
            reviewed += 1

    console.print(Panel(f"Cards reviewed: {reviewed}", title="Session Complete", border_style="green"))


def _review_card(service: VocabularyService, card: Card, index: int, total: int) -> Rating | None:
    """Show one card and record the learner's rating. None means quit."""
    console.print(Panel(
        f"[bold]{card.term}[/bold]" + (f"  [dim]{card.phonetic}[/dim]" if card.phonetic else ""),
        title=f"Card {index}/{total}  |  {card.phase.value}",
        title_align="left",
        border_style="cyan",
        padding=(1, 2),
    ))
    answer = Prompt.ask("[dim]Enter to reveal, q to quit[/dim]", default="", show_default=False)
    if answer.strip().lower() == "q":
        return None

    back = card.meaning
    if card.explanation:
        back += f"\n\n[dim]{card.explanation}[/dim]"
    console.print(Panel(back, border_style="green", padding=(1, 2)))

    labels = service.preview(card.id)
    console.print("  ".join(
        f"[{RATING_STYLES[rating]}]{position}[/] {rating.value} ({labels[rating]})"
        for position, rating in enumerate(Rating, start=1)
    ))
    choice = Prompt.ask("Rating", choices=["1", "2", "3", "4", "q"])
    if choice == "q":
        return None

    rating = list(Rating)[int(choice) - 1]
    service.submit_review(card.id, rating)
    return rating


@app.command()
def stats(identity: Optional[str] = IdentityOption) -> None:
    """Show learning statistics."""
    with open_service(identity) as service:
        snapshot = service.statistics.snapshot()
        history = service.statistics.study_history("week")

    today = snapshot.today
    counts = snapshot.counts

    console.print("\n[bold cyan]Today[/bold cyan]")
    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Studied", f"{today.studied}/{today.limit}")
    table.add_row("Again / Pass", f"{today.again_count} / {today.pass_count}")
    table.add_row("Due now", str(today.due))
    table.add_row("Backlog", str(today.backlog))
    console.print(table)

    console.print("\n[bold cyan]Cards[/bold cyan]")
    table = Table()
    for column in ("New", "Learning", "Young", "Mature", "Mastered", "Total"):
        table.add_column(column, justify="right")
    table.add_row(
        str(counts.new),
        str(counts.learning),
        str(counts.young),
        str(counts.mature),
        str(counts.mastered),
        str(counts.total),
    )
    console.print(table)

    console.print("\n[bold cyan]Next 7 days[/bold cyan]")
    forecast = snapshot.forecast
    table = Table()
    table.add_column("Day")
    table.add_column("Young", justify="right")
    table.add_column("Mature", justify="right")
    for offset in range(min(7, len(forecast.labels))):
        table.add_row(forecast.labels[offset], str(forecast.young[offset]), str(forecast.mature[offset]))
    console.print(table)

    console.print("\n[bold cyan]Intervals[/bold cyan]")
    intervals = snapshot.intervals
    peak = max(intervals.data, default=0) or 1
    for label, value in zip(intervals.labels, intervals.data):
        bar = "█" * round(20 * value / peak)
        console.print(f"  {label:>9} {bar} {value}")

    console.print("\n[bold cyan]Last 7 days[/bold cyan]")
    console.print("  " + "  ".join(f"{point.label} {point.value}" for point in history))


@app.command()
def limit(
    value: Optional[int] = typer.Argument(None, help="New daily review limit"),
    identity: Optional[str] = IdentityOption,
) -> None:
    """Show or set the daily review limit."""
    with open_service(identity) as service:
        if value is None:
            console.print(f"Daily limit: [bold]{service.get_daily_limit()}[/bold]")
            return
        if not service.set_daily_limit(value):
            console.print(f"[red]Limit must be a positive integer; keeping {service.get_daily_limit()}[/red]")
            raise typer.Exit(1)
    console.print(f"[green]Daily limit set to {value}[/green]")


@app.command("version")
def show_version() -> None:
    """Show version information."""
    console.print(f"[bold]paperlingo[/bold] v{__version__}")


# =============================================================================
# Entry Point
# =============================================================================


def configure_logging() -> None:
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="5 MB", retention=3)


def main() -> None:
    """CLI entry point."""
    configure_logging()
    app()


if __name__ == "__main__":
    main()
