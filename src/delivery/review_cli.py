"""
Vocab Review: terminal front end.

A Rich terminal interface for reviewing due vocabulary. Every key press is
routed through the control's deduplication gate, so key repeat and
double-presses behave like taps on a touch screen.

Commands:
- vocab-review review    - Start a review session
- vocab-review import    - Load a word deck into the local store
- vocab-review stats     - Show review statistics
- vocab-review reset     - Clear local review state
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import Settings, get_settings
from src.review.errors import FetchFailure
from src.review.models import SessionStats

from .deck import WordDeck
from .session import ReviewSession, SessionStatus, build_backend
from .state_store import StateStore

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="vocab-review",
    help="Vocab Review: vocabulary review sessions in the terminal",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "key": "bold magenta",
    "dim": "dim",
    "state": {
        "new": "cyan",
        "learned": "green",
        "relearning1": "red",
        "relearning2": "yellow",
    },
}

KEYMAP = {
    "": "card",
    "f": "card",
    "a": "again",
    "g": "good",
}


def style_state(state: str) -> str:
    """Get styled mastery state string."""
    color = STYLES["state"].get(state, "white")
    return f"[{color}]{state}[/{color}]"


# =============================================================================
# Display Helpers
# =============================================================================

def display_card(session: ReviewSession) -> None:
    """Display the current card, with meanings when flipped."""
    item = session.current
    if item is None:
        return

    content = f"[{STYLES['key']}]{item.key}[/{STYLES['key']}]\n\n"
    if session.is_flipped:
        content += "[dim]Meanings[/dim]\n"
        for meaning in item.meanings:
            content += f"  • {meaning}\n"
        content += "\n[dim]Enter to hide meanings[/dim]"
    else:
        content += "[dim]Enter to see meanings[/dim]"

    panel = Panel(
        content,
        title=f"Vocabulary Review  |  {style_state(item.state.value)}",
        title_align="left",
        subtitle=f"{len(session.engine)} in queue  |  {session.remaining} remaining",
        border_style="magenta",
        padding=(1, 2),
    )
    console.print(panel)


def display_summary(stats: SessionStats) -> None:
    """Display end-of-session summary."""
    console.print(Panel(
        f"[bold]Review Complete![/bold]\n\n"
        f"[{STYLES['correct']}]Correct: {stats.correct}[/{STYLES['correct']}]\n"
        f"[{STYLES['incorrect']}]Incorrect: {stats.incorrect}[/{STYLES['incorrect']}]\n"
        f"Retention: %{stats.retention}",
        title="Summary",
        border_style="green",
    ))


def display_nothing_due() -> None:
    console.print(Panel(
        "[bold]No Words to Review[/bold]\n\n"
        "You don't have any words due for review today.\n"
        "Check back later or import more words.",
        border_style="yellow",
    ))


def _prompt_text(session: ReviewSession) -> str:
    if session.has_flipped:
        return "[dim]\\[Enter] flip  \\[a] again  \\[g] good  \\[q] quit[/dim]"
    return "[dim]\\[Enter] flip  \\[q] quit[/dim]"


# =============================================================================
# Session Loop
# =============================================================================

async def run_session(settings: Settings, deck_path: Path | None = None) -> SessionStats:
    """
    Run an interactive review session until the learner quits.

    Returns:
        Stats of the last session shown
    """
    backend = build_backend(settings)
    session: ReviewSession | None = None
    try:
        if deck_path is not None:
            deck = WordDeck(deck_path)
            deck.load()
            backend.engine.load(deck.items())
        else:
            await backend.engine.reset_session()

        session = ReviewSession(backend.engine, state_sink=backend.state_sink)
        store = backend.store
        session_id = store.start_session() if store is not None else None

        while True:
            if session.status == SessionStatus.EMPTY:
                display_nothing_due()
                break

            if session.status == SessionStatus.COMPLETE:
                if store is not None and session_id is not None:
                    store.end_session(session_id, backend.engine.stats)
                    session_id = None
                display_summary(backend.engine.stats)
                if not Confirm.ask("Check again?", default=False):
                    break
                await session.restart()
                if store is not None:
                    session_id = store.start_session()
                continue

            display_card(session)
            key = Prompt.ask(_prompt_text(session), default="", show_default=False)
            key = key.strip().lower()

            if key == "q":
                console.print("\n[yellow]Session ended.[/yellow]")
                break

            control = KEYMAP.get(key)
            if control is None:
                console.print(f"[dim]Unknown key: {key}[/dim]")
                continue
            if control != "card" and not session.has_flipped:
                console.print("[dim]Reveal the card first.[/dim]")
                continue

            session.tap(control)
            await session.settle()

            result = session.last_result
            if session.last_error is not None:
                console.print(f"[red]Not saved:[/red] {session.last_error.reason}")
            elif result is not None and control != "card":
                style = STYLES["correct"] if result.is_correct else STYLES["incorrect"]
                console.print(f"[{style}]{result.key}[/{style}] -> {style_state(result.next_state.value)}")
                session.last_result = None

        if store is not None and session_id is not None and backend.engine.stats.total:
            store.end_session(session_id, backend.engine.stats)
        return backend.engine.stats
    finally:
        if session is not None:
            session.close()
        await backend.aclose()


# =============================================================================
# Commands
# =============================================================================

@app.command()
def review(
    deck: Optional[Path] = typer.Option(
        None,
        "--deck", "-d",
        help="Review words from a deck file or directory instead of the due batch",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit", "-l",
        help="Maximum due words per session",
    ),
) -> None:
    """
    Start an interactive review session.

    Missed words come back later in the session; a missed word needs two
    correct answers in a row before it leaves the queue.
    """
    settings = get_settings()
    if limit is not None:
        settings = settings.model_copy(update={"batch_limit": limit})

    console.print("\n[bold magenta]Vocab Review[/bold magenta]")
    console.print("=" * 40)

    try:
        asyncio.run(run_session(settings, deck))
    except FetchFailure as e:
        console.print(f"\n[red]Could not load due words:[/red] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Session interrupted.[/yellow]")


@app.command("import")
def import_deck(
    path: Path = typer.Argument(..., help="Deck JSON file or directory"),
) -> None:
    """Load words into the local store and mark them due."""
    settings = get_settings()
    deck = WordDeck(path)
    loaded = deck.load()

    if loaded == 0:
        console.print(f"\n[red]No words found in {path}[/red]")
        raise typer.Exit(1)

    store = StateStore(settings.database_path, batch_limit=settings.batch_limit)
    try:
        count = store.upsert_items(deck.items())
    finally:
        store.close()

    console.print(f"[green]Imported {count} words from {len(deck.files_loaded)} files[/green]")
    if deck.skipped:
        console.print(f"[dim]{deck.skipped} entries skipped[/dim]")


@app.command()
def stats() -> None:
    """Show review statistics from the local store."""
    settings = get_settings()
    store = StateStore(settings.database_path, batch_limit=settings.batch_limit)
    try:
        db_stats = store.get_stats()
        sessions = store.get_session_history(limit=5)
    finally:
        store.close()

    console.print("\n[bold magenta]Review Statistics[/bold magenta]")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Words tracked", str(db_stats["total_items"]))
    table.add_row("Words due", str(db_stats["items_due"]))
    table.add_row("Total reviews", str(db_stats["total_reviews"]))
    table.add_row("Retention rate", f"{db_stats['retention_rate_percent']:.1f}%")
    table.add_row("Sessions completed", str(db_stats["sessions_completed"]))
    for state, count in sorted(db_stats["by_state"].items()):
        table.add_row(f"  {style_state(state)}", str(count))

    console.print(table)

    if sessions:
        console.print("\n[bold]Recent Sessions[/bold]")
        session_table = Table()
        session_table.add_column("Date")
        session_table.add_column("Correct")
        session_table.add_column("Incorrect")
        session_table.add_column("Retention")

        for s in sessions:
            date_str = s.started_at.strftime("%Y-%m-%d %H:%M") if s.started_at else "?"
            session_table.add_row(
                date_str,
                str(s.correct),
                str(s.incorrect),
                f"{s.retention}%",
            )

        console.print(session_table)


@app.command()
def reset(
    confirm: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Clear local review state (a JSON backup is written first)."""
    if not confirm and not Confirm.ask("Reset ALL review state?", default=False):
        raise typer.Exit(0)

    settings = get_settings()
    store = StateStore(settings.database_path)
    try:
        count = store.reset()
    finally:
        store.close()

    console.print(f"[green]Reset complete: {count} words removed.[/green]")


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )

    app()


if __name__ == "__main__":
    main()
