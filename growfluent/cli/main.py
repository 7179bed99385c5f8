"""
GrowFluent: terminal surface.

A Rich terminal interface over the session orchestrator.

Commands:
- growfluent due      - Words ready for today
- growfluent add      - Add a phrase with a manual translation
- growfluent list     - Dictionary view
- growfluent review   - Daily review or free practice (self-graded)
- growfluent exam     - Weekly challenge with an exam report (self-graded)
- growfluent stats    - Exam and mastery statistics
- growfluent history  - Past exam reports
- growfluent delete   - Remove a card
"""
from __future__ import annotations

import time
from datetime import datetime

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from growfluent.config import Settings, configure_logging, get_settings
from growfluent.errors import SelectionRefused
from growfluent.srs.aggregator import ResultAggregator
from growfluent.srs.models import Card, CardStatus, ExamReport, Language, PracticeResult, now_ms
from growfluent.srs.orchestrator import (
    SessionContext,
    SessionOrchestrator,
    SessionOutcome,
    SessionState,
)
from growfluent.srs.selector import SessionSelector
from growfluent.storage import (
    CardStore,
    FallbackCardStore,
    RemoteDocumentStore,
    SQLiteCardStore,
)

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="growfluent",
    help="GrowFluent: spaced-repetition vocabulary trainer",
    no_args_is_help=True,
)
console = Console()

STATUS_STYLES = {
    CardStatus.NEW: "blue",
    CardStatus.LEARNING: "yellow",
    CardStatus.MASTERED: "green",
}

LanguageOption = typer.Option(
    Language.ENGLISH,
    "--language",
    "-l",
    case_sensitive=False,
    help="Target language",
)


def build_store(settings: Settings) -> CardStore:
    """Local SQLite store, fronted by the remote store when one is configured."""
    local = SQLiteCardStore(settings.database_path)
    remote = None
    if settings.has_remote_store():
        remote = RemoteDocumentStore(
            settings.remote_url,
            settings.user_id,
            api_key=settings.api_key or None,
            timeout_seconds=settings.remote_timeout_seconds,
        )
    return FallbackCardStore(local, remote)


def build_orchestrator(settings: Settings, store: CardStore) -> SessionOrchestrator:
    return SessionOrchestrator(
        selector=SessionSelector(settings.selector_config()),
        store=store,
    )


def _format_date(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def _style_status(status: CardStatus) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.value}[/{style}]"


# =============================================================================
# Commands
# =============================================================================


@app.command()
def due(language: Language = LanguageOption) -> None:
    """Show how many words are ready for today's session."""
    settings = get_settings()
    store = build_store(settings)
    try:
        orchestrator = build_orchestrator(settings, store)
        count = orchestrator.get_due_count(store.load_cards(language), language)
    finally:
        store.close()

    if count == 0:
        console.print("[green]Nothing due for review![/green] All caught up.")
    else:
        console.print(f"[bold cyan]{count}[/bold cyan] words ready ({language.value})")


@app.command()
def add(
    phrase: str = typer.Argument(..., help="Phrase to learn"),
    translation: str = typer.Option(..., "--translation", "-t", help="Its translation"),
    language: Language = LanguageOption,
) -> None:
    """Add a phrase with a manual translation."""
    settings = get_settings()
    store = build_store(settings)
    try:
        card = Card.create(
            phrase=phrase.strip(),
            language=language,
            now=now_ms(),
            translation=translation.strip(),
        )
        store.upsert_card(card)
    finally:
        store.close()

    logger.info(f"Added card {card.id}")
    console.print(f"[green]Added[/green] {card.phrase} -> {card.translation} [dim]({card.id})[/dim]")


@app.command("list")
def list_cards(
    language: Language = LanguageOption,
    search: str = typer.Option("", "--search", "-s", help="Filter by phrase or translation"),
    sort: str = typer.Option(
        "date",
        "--sort",
        help="Sort order: date or alphabetical",
    ),
) -> None:
    """Dictionary view of the collection."""
    if sort not in ("date", "alphabetical"):
        console.print(f"[red]Unknown sort order: {sort}[/red]")
        raise typer.Exit(2)

    settings = get_settings()
    store = build_store(settings)
    try:
        cards = SessionSelector.search(store.load_cards(language), search, sort)
    finally:
        store.close()

    if not cards:
        console.print("[yellow]No cards found.[/yellow]")
        return

    table = Table(title=f"Dictionary ({language.value})")
    table.add_column("Phrase", style="bold")
    table.add_column("Translation")
    table.add_column("Status")
    table.add_column("EF", justify="right")
    table.add_column("Next review", style="dim")
    table.add_column("ID", style="dim")

    for card in cards:
        table.add_row(
            card.phrase,
            card.translation,
            _style_status(card.status),
            f"{card.easiness_factor:.2f}",
            _format_date(card.next_review_at),
            card.id,
        )
    console.print(table)


@app.command()
def review(
    language: Language = LanguageOption,
    free: bool = typer.Option(False, "--free", "-f", help="Random practice instead of due cards"),
) -> None:
    """
    Run a review session with self-graded answers.

    Each phrase is shown, the translation is revealed on Enter and you
    say whether you knew it. Results are committed only when the session
    completes; Ctrl+C abandons it.
    """
    settings = get_settings()
    store = build_store(settings)
    try:
        orchestrator = build_orchestrator(settings, store)
        cards = store.load_cards()
        ctx = SessionContext.idle(language)

        try:
            if free:
                ctx = orchestrator.start_free_practice(ctx, cards)
            else:
                ctx = orchestrator.start_daily_session(ctx, cards)
        except SelectionRefused as e:
            console.print(f"\n[green]Nothing to review:[/green] {e.reason}")
            raise typer.Exit(0)

        console.print(f"\n[bold cyan]GrowFluent[/bold cyan] - {len(ctx.items)} cards")
        console.print("=" * 40)

        try:
            ctx = _run_session(orchestrator, ctx)
        except KeyboardInterrupt:
            orchestrator.abandon(ctx)
            console.print("\n\n[yellow]Session abandoned. Nothing was saved.[/yellow]")
            raise typer.Exit(1)

        outcome = orchestrator.finish_session(ctx, cards)
    finally:
        store.close()

    _display_session_summary(outcome, ctx)


def _run_session(orchestrator: SessionOrchestrator, ctx: SessionContext) -> SessionContext:
    position = 0
    while ctx.state == SessionState.IN_SESSION:
        item = ctx.current_item
        position += 1
        console.print(f"\n[dim]{position}/{len(ctx.items)}[/dim]  [bold]{item.question}[/bold]")

        start_time = time.time()
        Prompt.ask("[dim]Press Enter to reveal[/dim]", default="", show_default=False)
        response_ms = int((time.time() - start_time) * 1000)

        console.print(f"  -> {item.correct_answer or '[dim](no translation)[/dim]'}")
        knew_it = Confirm.ask("Did you know it?", default=True)

        ctx = orchestrator.submit_session_result(
            ctx,
            PracticeResult(
                card_id=item.card.id,
                is_correct=knew_it,
                response_time_ms=response_ms,
            ),
        )
    return ctx


def _display_session_summary(outcome: SessionOutcome, ctx: SessionContext) -> None:
    """Display end-of-session summary."""
    total = len(ctx.results)
    correct = sum(1 for r in ctx.results if r.is_correct)
    accuracy = correct / total * 100 if total else 0.0
    mastered = sum(1 for c in outcome.updated if c.status == CardStatus.MASTERED)

    console.print("\n")
    console.print(Panel(
        f"[bold]Session Complete![/bold]\n\n"
        f"Cards reviewed: {total}\n"
        f"Accuracy: {accuracy:.1f}%\n"
        f"Mastered: {mastered}",
        title="Summary",
        border_style="green",
    ))


@app.command()
def exam(language: Language = LanguageOption) -> None:
    """
    Take the weekly challenge.

    Mixes new, weak and mastered cards. Answers are self-graded and the
    session ends with an exam report that is added to the history.
    """
    settings = get_settings()
    store = build_store(settings)
    try:
        orchestrator = build_orchestrator(settings, store)
        cards = store.load_cards()
        ctx = SessionContext.idle(language)

        try:
            ctx = orchestrator.start_exam(ctx, cards)
        except SelectionRefused as e:
            console.print(f"\n[yellow]Exam unavailable:[/yellow] {e.reason}")
            raise typer.Exit(0)

        console.print(f"\n[bold cyan]Weekly Challenge[/bold cyan] - {len(ctx.items)} questions")
        console.print("=" * 40)

        try:
            ctx = _run_session(orchestrator, ctx)
        except KeyboardInterrupt:
            orchestrator.abandon(ctx)
            console.print("\n\n[yellow]Exam abandoned. Nothing was saved.[/yellow]")
            raise typer.Exit(1)

        outcome = orchestrator.finish_session(ctx, cards)
    finally:
        store.close()

    _display_exam_report(outcome.report)


def _display_exam_report(report: ExamReport) -> None:
    """Display the exam report."""
    recommendations = "\n".join(f"  - {r}" for r in report.recommendations)

    console.print("\n")
    console.print(Panel(
        f"[bold]Exam Complete![/bold]\n\n"
        f"Accuracy: {report.accuracy * 100:.0f}%\n"
        f"Average time: {report.speed_score / 1000:.1f}s\n"
        f"Mastered: [green]{len(report.mastered_ids)}[/green]  "
        f"Weak: [yellow]{len(report.weak_ids)}[/yellow]  "
        f"Forgotten: [red]{len(report.forgotten_ids)}[/red]\n\n"
        f"[bold]Recommendations[/bold]\n{recommendations}",
        title="Exam Report",
        border_style="cyan",
    ))


@app.command()
def stats(language: Language = LanguageOption) -> None:
    """Show exam and mastery statistics."""
    settings = get_settings()
    store = build_store(settings)
    try:
        cards = store.load_cards(language)
        history = [h for h in store.load_exam_history() if h.language == language]
    finally:
        store.close()

    summary = ResultAggregator.build_statistics(history, cards)

    console.print(f"\n[bold cyan]Learning Statistics[/bold cyan] ({language.value})")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Cards", str(len(cards)))
    table.add_row("Mastered", str(summary.mastered_count))
    table.add_row("Exams taken", str(summary.exam_count))
    table.add_row("Average accuracy", f"{summary.average_accuracy_percent}%")
    console.print(table)

    if summary.strongest:
        console.print("\n[bold]Strongest[/bold]")
        for card in summary.strongest:
            console.print(f"  [green]{card.easiness_factor:.2f}[/green]  {card.phrase}")
        console.print("\n[bold]Weakest[/bold]")
        for card in summary.weakest:
            console.print(f"  [red]{card.easiness_factor:.2f}[/red]  {card.phrase}")

    if summary.error_breakdown:
        console.print("\n[bold]Common errors[/bold]")
        for error_type, count in summary.error_breakdown:
            console.print(f"  {error_type}: {count}")


@app.command()
def history(language: Language = LanguageOption) -> None:
    """Show past exam reports."""
    settings = get_settings()
    store = build_store(settings)
    try:
        reports = [h for h in store.load_exam_history() if h.language == language]
    finally:
        store.close()

    if not reports:
        console.print("[yellow]No exams taken yet.[/yellow]")
        return

    table = Table(title=f"Exam History ({language.value})")
    table.add_column("Date")
    table.add_column("Questions", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Avg time", justify="right")
    table.add_column("Weak", justify="right")

    for report in reports:
        table.add_row(
            _format_date(report.date),
            str(len(report.results)),
            f"{report.accuracy * 100:.0f}%",
            f"{report.speed_score / 1000:.1f}s",
            str(len(report.weak_ids)),
        )
    console.print(table)


@app.command()
def delete(
    card_id: str = typer.Argument(..., help="ID of the card to remove"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove a card from the collection."""
    if not confirm and not Confirm.ask(f"Delete card {card_id}?", default=False):
        raise typer.Exit(0)

    settings = get_settings()
    store = build_store(settings)
    try:
        orchestrator = build_orchestrator(settings, store)
        cards = store.load_cards()
        if not any(c.id == card_id for c in cards):
            console.print(f"[red]No card with id {card_id}[/red]")
            raise typer.Exit(1)
        orchestrator.delete_card(cards, card_id)
    finally:
        store.close()

    console.print(f"[green]Deleted {card_id}[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()
