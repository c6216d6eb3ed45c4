"""Interactive CLI application."""
import logging
import time
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table

from dango.db import init_db, DEFAULT_DB_PATH
from dango.flashcards import add_card, get_due_cards, record_review
from dango.importer import import_file, export_file
from dango.intervals import describe_interval
from dango.models import Algorithm, Card, Rating
from dango.scheduler import Scheduler
from dango.settings import load_algorithm, save_algorithm
from dango.stats import get_statistics

console = Console()

EXIT_WORDS = ("q", "quit", "menu")

# Keys shown on the rating buttons
RATING_KEYS = {"1": Rating.AGAIN, "2": Rating.HARD, "3": Rating.GOOD, "4": Rating.EASY}
RATING_COLORS = {Rating.AGAIN: "red", Rating.HARD: "yellow", Rating.GOOD: "green", Rating.EASY: "cyan"}


class SessionExitRequested(Exception):
    """Raised when the learner leaves a session mid-way."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = session_prompt(prompt, choices=choices + list(EXIT_WORDS))
    return int(answer)


def show_welcome():
    console.print(Panel(
        "[bold]Dango[/bold]\n[dim]Spaced-repetition flashcards[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(scheduler: Scheduler):
    console.print(f"\n[bold]Commands:[/bold] [dim](scheduler: {scheduler.get_algorithm().value})[/dim]")
    commands = [
        ("review", "Review due cards"),
        ("add", "Add a card"),
        ("import", "Import cards from markdown"),
        ("export", "Export cards to markdown"),
        ("stats", "Review statistics"),
        ("algorithm", "Switch between fsrs and sm2"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_buttons(scheduler: Scheduler, card: Card) -> None:
    labels = scheduler.preview_button_labels(card)
    parts = []
    for key, rating in RATING_KEYS.items():
        color = RATING_COLORS[rating]
        parts.append(f"[{color}]{key}) {rating.value.capitalize()}[/{color}] [dim]{labels[rating.value]}[/dim]")
    console.print("   ".join(parts))


def run_review_session(db_path: str, scheduler: Scheduler, cards: list[Card]) -> int:
    """Walk through cards, recording each rating. Returns the number reviewed."""
    if not cards:
        console.print("[yellow]No cards due right now![/yellow]")
        return 0
    console.print(f"\n[bold]Review Session[/bold] — {len(cards)} cards\n")
    reviewed = 0
    for i, card in enumerate(cards, 1):
        started = time.monotonic()
        console.print(Panel(card.front, title=f"Card {i}/{len(cards)}", border_style="cyan"))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
        console.print(Panel(card.back or "[dim](no back)[/dim]", border_style="green"))
        show_buttons(scheduler, card)
        key = session_int_prompt("Rate yourself", choices=list(RATING_KEYS))
        time_spent = int((time.monotonic() - started) * 1000)
        result = record_review(db_path, card.id, RATING_KEYS[str(key)], scheduler, time_spent=time_spent)
        console.print(f"[dim]Next review in {describe_interval(result.interval)}[/dim]\n")
        reviewed += 1
    return reviewed


def cmd_review(db_path: str, scheduler: Scheduler):
    cards = get_due_cards(db_path, limit=50)
    try:
        reviewed = run_review_session(db_path, scheduler, cards)
    except SessionExitRequested:
        console.print("[dim]Session ended.[/dim]")
        return
    if reviewed:
        console.print(f"[green]Reviewed {reviewed} cards.[/green]")


def cmd_add(db_path: str):
    deck_id = IntPrompt.ask("Deck id", default=1)
    front = Prompt.ask("Front")
    back = Prompt.ask("Back", default="")
    tags = [t.strip() for t in Prompt.ask("Tags (comma separated)", default="").split(",") if t.strip()]
    card_id = add_card(db_path, deck_id, front, back, tags=tags)
    console.print(f"[green]Added card {card_id}.[/green]")


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    deck_id = IntPrompt.ask("Deck id", default=1)
    result = import_file(db_path, file_path, deck_id)
    msg = f"[green]Imported {result['imported']} cards from {result['filename']}[/green]"
    if result["skipped"]:
        msg += f" [yellow]({result['skipped']} skipped)[/yellow]"
    console.print(msg)


def cmd_export(db_path: str):
    file_path = Prompt.ask("Output file", default="cards.md")
    count = export_file(db_path, file_path)
    console.print(f"[green]Exported {count} cards → {file_path}[/green]")


def cmd_stats(db_path: str):
    stats = get_statistics(db_path)
    console.print(Panel(
        f"Cards: [bold]{stats['total_cards']}[/bold]  |  Due: [bold]{stats['due_cards']}[/bold]  |  "
        f"New: [bold]{stats['new_cards']}[/bold]",
        title="Statistics", border_style="blue",
    ))
    table = Table(title="Reviews")
    table.add_column("Period", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Today", str(stats["reviews_today"]))
    table.add_row("Last 7 days", str(stats["reviews_this_week"]))
    table.add_row("Last 30 days", str(stats["reviews_this_month"]))
    table.add_row("All time", str(stats["total_reviews"]))
    console.print(table)
    console.print(
        f"\n  Retention: [bold]{stats['average_retention']}%[/bold]  |  "
        f"Mature: [bold]{stats['mature_cards']}[/bold]  |  Young: [bold]{stats['young_cards']}[/bold]  |  "
        f"Streak: [bold]{stats['current_streak']}[/bold] (best {stats['longest_streak']})"
    )


def cmd_algorithm(db_path: str, scheduler: Scheduler):
    choice = Prompt.ask(
        "Scheduling algorithm",
        choices=[a.value for a in Algorithm],
        default=scheduler.get_algorithm().value,
    )
    scheduler.set_algorithm(Algorithm(choice))
    save_algorithm(db_path, scheduler.get_algorithm())
    console.print(f"[green]Using {choice}.[/green]")


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    scheduler = Scheduler(algorithm=load_algorithm(db_path))

    show_welcome()

    while True:
        show_menu(scheduler)
        choice = Prompt.ask("\n[bold]>[/bold]", default="review").strip().lower()
        try:
            if choice == "review":
                cmd_review(db_path, scheduler)
            elif choice == "add":
                cmd_add(db_path)
            elif choice == "import":
                cmd_import(db_path)
            elif choice == "export":
                cmd_export(db_path)
            elif choice == "stats":
                cmd_stats(db_path)
            elif choice == "algorithm":
                cmd_algorithm(db_path, scheduler)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you next review![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
