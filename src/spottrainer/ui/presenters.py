from __future__ import annotations

from collections.abc import Callable

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..features.session.schemas import FeedbackPayload, SpotPayload, SummaryPayload

_SUIT_COLORS = {
    "s": "bold white",
    "h": "bold #c14657",
    "d": "bold #2f73d2",
    "c": "bold #2f8a5e",
}

_SUIT_SYMBOLS = {"s": "♠", "h": "♥", "d": "♦", "c": "♣"}


class RichPresenter:
    def __init__(self, *, no_color: bool = False, input_fn: Callable[[str], str] = input):
        # colour is forced on unless --no-color
        if no_color:
            self.console = Console(force_terminal=False, color_system=None)
        else:
            self.console = Console(force_terminal=True, color_system="auto")
        self._input = input_fn
        self.quit_requested = False
        self._spot_index = 0
        self._spot_total = 0

    def start_session(self, total_spots: int) -> None:
        self._spot_total = total_spots
        guide = (
            "[bold]Welcome![/] Each round deals one preflop decision from a solved spot.\n"
            "- The table panel shows stacks, your seat and what happened before you.\n"
            "- Type the number next to your chosen play.\n"
            "- Pure spots have one right answer; mixed spots accept any action the solver uses.\n\n"
            "[bold]Controls[/]: numbers = act • q = quit"
        )
        self.console.print(Panel(guide, title="Session Guide", border_style="green"))
        self.console.print()

    def show_spot(self, spot: SpotPayload) -> None:
        self._spot_index += 1
        self.console.rule(f"{spot.spot_type.upper()} · {spot.solution}")

        info = Table.grid(padding=(0, 1))
        info.add_column(style="bold cyan", justify="right")
        info.add_column(justify="left")
        info.add_row("Spot", f"{self._spot_index}/{self._spot_total}")
        info.add_row("Phase", spot.phase)
        info.add_row("Position", f"{spot.hero_position} ({spot.players}-handed)")
        info.add_row("Your hand", f"{self._format_cards(spot.hero_cards)} [dim]({spot.hand})[/]")
        info.add_row("Stack", f"{spot.stacks_bb[spot.hero_seat]:.1f}bb")
        if spot.timebank_seconds:
            info.add_row("Timebank", f"{spot.timebank_seconds:.0f}s")
        self.console.print(Panel(info, title="Table Status", border_style="magenta", expand=False))

        if spot.villain_actions:
            history = Table(title="Action so far", show_header=True, header_style="bold blue", box=box.SIMPLE)
            history.add_column("Seat")
            history.add_column("Action", style="bold")
            history.add_column("Size (bb)", justify="right")
            for action in spot.villain_actions:
                size = f"{action.amount_bb:.1f}" if action.amount_bb is not None else ""
                history.add_row(action.position, action.action, size)
            self.console.print(history)

        self.console.print("Choose an action:")
        table = Table(show_header=True, header_style="bold blue", box=box.SIMPLE_HEAVY)
        table.add_column("#", justify="right", style="cyan", no_wrap=True)
        table.add_column("Action", style="bold")
        for i, label in enumerate(spot.display_options or spot.options, 1):
            table.add_row(str(i), label)
        self.console.print(table)

    def prompt_choice(self, n: int) -> int:
        while True:
            raw = self._input(f"Your choice (1-{n}), or 'q' to quit: ").strip().lower()
            if raw == "q":
                self.quit_requested = True
                return -1
            if raw.isdigit():
                picked = int(raw)
                if 1 <= picked <= n:
                    return picked - 1
            self.console.print(f"[red]Invalid input[/]. Please enter a number 1-{n} or 'q'.")

    def feedback(self, result: FeedbackPayload) -> None:
        self.console.print("\n[bold]Feedback[/]")
        if result.timed_out:
            self.console.print("[yellow]Time ran out[/]: scored as a fold.")
        if result.correct:
            self.console.print(f"✓ [green]Correct[/]: {result.chosen} ({result.quality})")
        else:
            self.console.print(f"✗ [red]Incorrect[/]: {result.chosen}; solver prefers {result.best}")
        kind = "pure" if result.pure else "mixed"
        self.console.print(f"[dim]{kind} strategy • points {result.points:.2f}[/]")

        table = Table(show_header=True, header_style="bold blue", box=box.SIMPLE)
        table.add_column("Action")
        table.add_column("Freq", justify="right")
        table.add_column("EV (bb)", justify="right")
        for row in result.actions:
            ev = f"{row.ev:.2f}" if row.ev is not None else "-"
            table.add_row(row.label, f"{100.0 * row.frequency:.1f}%", ev)
        self.console.print(table)
        self.console.rule(style="dim")

    def summary(self, stats: SummaryPayload) -> None:
        if not stats.total:
            self.console.print("No spots answered.")
            return
        summary = Table(title="Session Summary", show_header=False)
        summary.add_row("Spots answered:", str(stats.total))
        summary.add_row("Correct:", f"{stats.correct} ({stats.accuracy_pct:.0f}%)")
        summary.add_row("Points:", f"{stats.points:.2f}")
        self.console.print("\n")
        self.console.print(summary)

        phases = Table(title="By phase", show_header=True, header_style="bold blue")
        phases.add_column("Phase")
        phases.add_column("Spots", justify="right")
        phases.add_column("Correct", justify="right")
        for phase, row in stats.by_phase.items():
            phases.add_row(phase, str(row.total), str(row.correct))
        self.console.print(phases)

    def error(self, message: str) -> None:
        self.console.print(f"[red]{message}[/]")

    def _format_cards(self, cards: list[str]) -> str:
        parts: list[str] = []
        for card in cards:
            rank, suit = card[0], card[1]
            color = _SUIT_COLORS.get(suit, "bold #f9fafb")
            parts.append(f"[{color}]{rank}{_SUIT_SYMBOLS.get(suit, suit)}[/]")
        return " ".join(parts)
