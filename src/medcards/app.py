"""Interactive CLI application."""
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from medcards.config import DEFAULT_DB_PATH, DEFAULT_CONFIG_PATH, load_config
from medcards.dashboard import format_interval, get_strength_color
from medcards.errors import MedcardsError
from medcards.filters import toggle_value
from medcards.importer import export_cards, import_file
from medcards.models import FACETS, Rating
from medcards.review import CramSession, CramStatus
from medcards.seed import seed_all, is_seeded
from medcards.store import SQLiteCardStore
from medcards.study import QueueStatus, SessionManager

console = Console()

EXIT_WORDS = ("q", "menu")
RATING_CHOICES = ["1", "2", "3", "4"]
RATING_COLORS = {Rating.AGAIN: "red", Rating.HARD: "yellow", Rating.GOOD: "green", Rating.EASY: "cyan"}

QUEUE_MESSAGES = {
    QueueStatus.NO_CARDS: "[yellow]Your deck is empty. Use 'import' to add cards.[/yellow]",
    QueueStatus.CAUGHT_UP: "[green]All caught up! No cards are due right now.[/green]",
    QueueStatus.FILTERED_OUT: "[yellow]Cards are due, but your filters hide them. Try 'filters' then 'clear'.[/yellow]",
}


class SessionExitRequested(Exception):
    """Raised when the user types q or menu inside a study loop."""


def session_prompt(prompt: str, choices: list = None, default: str = "") -> str:
    if choices:
        answer = Prompt.ask(prompt, choices=list(choices) + list(EXIT_WORDS), show_choices=False)
    else:
        answer = Prompt.ask(prompt, default=default, show_default=False)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list) -> int:
    return int(session_prompt(prompt, choices=choices))


def show_welcome():
    console.print(Panel(
        "[bold]Clinical Flashcards[/bold]\n[dim]Spaced repetition for the wards and the boards[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("study", "Review due cards"),
        ("cram", "Drill cards you have missed"),
        ("filters", "Narrow the deck by tag, system, ..."),
        ("stats", "Deck statistics + topic performance"),
        ("import", "Add cards from a JSON/YAML deck"),
        ("export", "Save the deck to a file"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_card_back(card) -> None:
    console.print(Panel(card.content.back, border_style="green"))
    if card.content.explanation:
        console.print(f"[dim]{card.content.explanation}[/dim]")


def show_preview(outcomes: dict) -> None:
    parts = []
    for number, rating in enumerate(Rating, 1):
        color = RATING_COLORS[rating]
        parts.append(f"[{color}]{number}) {rating.value} {format_interval(outcomes[rating].interval)}[/{color}]")
    console.print("  ".join(parts))


def run_study_session(manager: SessionManager) -> None:
    if manager.session is None:
        manager.start_session()
    if manager.current_card is None:
        console.print(QUEUE_MESSAGES[manager.queue_status])
        manager.end_session()
        return
    try:
        while manager.current_card is not None:
            card = manager.current_card
            total = len(manager.filtered_due_cards)
            console.print(Panel(
                card.content.front,
                title=f"Card {manager.current_index + 1}/{total}",
                subtitle=f"{card.metadata.system} · {card.metadata.topic}",
                border_style="cyan",
            ))
            answer = session_prompt("[dim]Press Enter to reveal answer (b = back)[/dim]")
            if answer.strip().lower() == "b":
                manager.previous_card()
                continue
            manager.reveal_answer()
            show_card_back(card)
            show_preview(manager.interval_preview)
            rating = session_int_prompt("Rate yourself", choices=RATING_CHOICES)
            manager.rate_card(rating)
            console.print()
        console.print(QUEUE_MESSAGES.get(manager.queue_status, "[green]Pass complete![/green]"))
    except SessionExitRequested:
        console.print("[dim]Leaving study session.[/dim]")
    finally:
        summary = manager.end_session()
        if summary and summary.cards_reviewed:
            console.print(
                f"[bold]Reviewed {summary.cards_reviewed}[/bold]  |  "
                f"[green]{summary.cards_correct} correct[/green]  |  "
                f"[red]{summary.cards_failed} failed[/red]  |  {summary.accuracy}%"
            )


def run_cram_session(manager: SessionManager) -> None:
    cram = CramSession(manager)
    if cram.status is CramStatus.EMPTY:
        console.print("[yellow]No cards to cram - you haven't missed any yet![/yellow]")
        cram.close()
        return
    console.print(f"\n[bold]Cram Mode[/bold] - {len(cram.card_ids)} missed cards\n")
    try:
        while cram.status is CramStatus.READY:
            card = cram.current_card
            console.print(Panel(
                card.content.front,
                title=f"Cram {cram.cram_index + 1}/{len(cram.card_ids)}",
                subtitle=f"missed {card.spaced_repetition.lapses}x",
                border_style="magenta",
            ))
            answer = session_prompt("[dim]Press Enter to reveal answer (b = back, s = skip)[/dim]")
            command = answer.strip().lower()
            if command == "b":
                cram.previous_card()
                continue
            if command == "s":
                cram.next_card()
                continue
            cram.reveal()
            show_card_back(card)
            show_preview(cram.interval_preview)
            cram.rate(session_int_prompt("Rate yourself", choices=RATING_CHOICES))
            console.print()
        console.print("[green]No more cards to cram![/green]")
    except SessionExitRequested:
        console.print("[dim]Leaving cram mode.[/dim]")
    finally:
        cram.close()
        if cram.cards_reviewed:
            console.print(f"[bold]Crammed {cram.cards_reviewed}[/bold]  |  [red]{cram.cards_failed} missed again[/red]")


def cmd_filters(manager: SessionManager):
    filters = manager.filters
    table = Table(title="Active Filters")
    table.add_column("Facet", style="cyan")
    table.add_column("Selected")
    for facet in FACETS:
        table.add_row(facet, ", ".join(getattr(filters, facet)) or "[dim]any[/dim]")
    console.print(table)
    console.print(f"[dim]Tags: {', '.join(manager.available_tags)}[/dim]")
    console.print(f"[dim]Systems: {', '.join(manager.available_systems)}[/dim]")
    console.print(f"[dim]Rotations: {', '.join(manager.available_rotations)}[/dim]")
    action = Prompt.ask("Toggle which facet?", choices=list(FACETS) + ["clear", "done"], default="done")
    if action == "done":
        return
    if action == "clear":
        manager.clear_filters()
        console.print("[green]Filters cleared.[/green]")
        return
    value = Prompt.ask(f"Value to toggle in {action}").strip()
    if not value:
        return
    manager.set_filters(toggle_value(manager.filters, action, value))
    console.print(f"[green]{len(manager.filtered_due_cards)} due cards match.[/green]")


def cmd_stats(manager: SessionManager):
    stats = manager.stats
    console.print(Panel(
        f"Total: [bold]{stats['total_cards']}[/bold]  |  New: {stats['new_cards']}  |  "
        f"Learning: {stats['learning_cards']}  |  Review: {stats['review_cards']}\n"
        f"Due now: [bold]{stats['due_today']}[/bold]  |  Missed before: {stats['lapsed_cards']}  |  "
        f"Avg ease: {stats['average_ease']}  |  Avg interval: {format_interval(stats['average_interval'])}",
        title="Deck Statistics", border_style="blue",
    ))
    table = Table(title="Topic Performance")
    table.add_column("Topic", style="cyan")
    table.add_column("System")
    table.add_column("Reviewed", justify="right")
    table.add_column("Retention", justify="right")
    table.add_column("Strength")
    for topic in manager.topic_performance:
        color = get_strength_color(topic["strength"])
        table.add_row(
            topic["topic"],
            topic["system"],
            f"{topic['reviewed_cards']}/{topic['total_cards']}",
            f"{topic['retention_rate'] * 100:.0f}%",
            f"[{color}]{topic['strength']}[/{color}]",
        )
    console.print(table)


def cmd_import(manager: SessionManager):
    file_path = Prompt.ask("Deck file path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_file(manager, file_path)
    console.print(
        f"[green]Imported {result['added']} new cards from {result['filename']}[/green] "
        f"[dim]({result['valid']} valid of {result['found']})[/dim]"
    )


def cmd_export(manager: SessionManager):
    file_path = Prompt.ask("Export to", default="medcards-export.json")
    count = export_cards(manager.cards, file_path, manager.clock())
    console.print(f"[green]Exported {count} cards to {file_path}[/green]")


def main():
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )
    try:
        config = load_config(DEFAULT_CONFIG_PATH)
    except MedcardsError as e:
        console.print(f"[red]Config error: {e}[/red]")
        sys.exit(1)
    store = SQLiteCardStore(DEFAULT_DB_PATH)
    first_run = not is_seeded(store)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
        seed_all(store, store.clock())
        console.print("[green]Ready![/green]\n")
    manager = SessionManager(store, config=config)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="study").strip().lower()
        try:
            if choice == "study":
                run_study_session(manager)
            elif choice == "cram":
                run_cram_session(manager)
            elif choice == "filters":
                cmd_filters(manager)
            elif choice == "stats":
                cmd_stats(manager)
            elif choice == "import":
                cmd_import(manager)
            elif choice == "export":
                cmd_export(manager)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on the wards![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
