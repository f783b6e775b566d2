"""
cli.py — Terminal entry point.

    clavtarot                  → interactive menu
    clavtarot single|three|love|career|celtic [--seed S]
    clavtarot daily [--date YYYY-MM-DD]
    clavtarot deck
    clavtarot help
    clavtarot install          → OpenClaw installer wizard
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from typing import Callable, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from . import config, logic
from .installer import Wizard
from .render import TerminalPresenter
from .tarot_core import SPREAD_REGISTRY, Catalog, CatalogLoadError, Seed, UnknownSpreadError

logger = logging.getLogger(__name__)

SHUFFLE_MESSAGES: Dict[str, str] = {
    "single": "The cards whisper... one rises to the surface...",
    "three": "Shuffling with intention...",
    "love": "Infusing the deck with heart energy...",
    "career": "Channeling career ambitions into the cards...",
    "celtic": "Ten cards emerge to reveal the full picture...",
}

MENU: Dict[str, str] = {
    "1": "single",
    "2": "three",
    "3": "love",
    "4": "career",
    "5": "celtic",
    "6": "daily",
    "7": "deck",
    "8": "help",
}
EXIT_WORDS = {"0", "q", "quit", "exit"}
HELP_ALIASES = {"help", "how", "guide"}

SUIT_EMOJI = {"wands": "🔥", "cups": "💧", "swords": "💨", "pentacles": "🌍"}

GUIDE = """
[cyan]═══ What is Tarot? ═══[/cyan]

  Tarot is a system of 78 cards used for self-reflection and guidance.
  It is not about predicting a fixed future; it illuminates possibilities
  and helps you make wiser choices.

[cyan]═══ The Deck (78 Cards) ═══[/cyan]

  [yellow]★ Major Arcana (22 cards)[/yellow]
    The soul's journey from The Fool to The World: life's big themes.

  🔥 Wands (14)     Fire: passion, creativity, ambition
  💧 Cups (14)      Water: emotions, love, relationships
  💨 Swords (14)    Air: thoughts, intellect, challenges
  🌍 Pentacles (14) Earth: money, career, material world

[cyan]═══ Upright ↑ vs Reversed ↓ ═══[/cyan]

  [green]↑ Upright[/green]   The card's energy flows freely.
  [red]↓ Reversed[/red]  The energy is blocked, internalized, or in shadow form.
              Not "bad", just more nuanced.

[cyan]═══ The 5 Spreads ═══[/cyan]

  [bold]single[/bold]  Single Card (1)     Quick guidance
  [bold]three[/bold]   Three Card (3)      Past → Present → Future
  [bold]love[/bold]    Love Spread (5)     Matters of the heart
  [bold]career[/bold]  Career Spread (4)   Your professional path
  [bold]celtic[/bold]  Celtic Cross (10)   The grand reading

[cyan]═══ Daily Fortune ═══[/cyan]

  The daily card is seeded by today's date, so you get the
  [bold]same card all day[/bold]. Check it each morning.

  [magenta]✧[/magenta] Tarot is a mirror, not a crystal ball.
  [magenta]✧[/magenta] You have free will. The cards show the path; you choose whether to walk it.
"""


class TarotApp:
    """Command dispatch shared by one-shot commands and the interactive menu."""

    def __init__(
        self,
        catalog: Catalog,
        console: Optional[Console] = None,
        presenter: Optional[TerminalPresenter] = None,
    ):
        self.catalog = catalog
        self.console = console or Console(highlight=False)
        self.presenter = presenter or TerminalPresenter(console=self.console)

    def spread(self, spread_id: str, seed: Seed = None) -> int:
        reading = logic.draw_spread(spread_id, seed, catalog=self.catalog)
        return self.presenter.show_reading(reading, SHUFFLE_MESSAGES.get(spread_id, "Shuffling the 78-card deck..."))

    def daily(self, day: Optional[date] = None) -> int:
        day = day or date.today()
        reading = logic.daily_reading(day, catalog=self.catalog)
        return self.presenter.show_daily(reading, day)

    def deck(self) -> None:
        out = self.console.print
        out(Panel.fit(f"[bold]📚 Complete Tarot Deck — {len(self.catalog)} Cards[/bold]", border_style="magenta"))
        groups = logic.browse_deck(catalog=self.catalog)

        majors = groups.pop("major")
        out(f"[yellow]  ═══ MAJOR ARCANA ({len(majors)} cards) — The Soul's Journey ═══[/yellow]\n")
        for e in majors:
            out(f"    [bold]{e.label:<4}[/bold] [magenta]{escape(e.name)}[/magenta]")
            out(f"         [green]↑[/green] {escape(', '.join(e.upright))}")
            out(f"         [red]↓[/red] {escape(', '.join(e.reversed))}\n")

        for suit in self.catalog.suits:
            entries = groups.get(suit.key, [])
            icon = SUIT_EMOJI.get(suit.key, "✨")
            out(f"[yellow]\n  ═══ {icon} {suit.name.upper()} — {suit.element} — "
                f"{escape(suit.theme)} ({len(entries)} cards) ═══[/yellow]\n")
            for e in entries:
                out(f"    [bold]{e.label:<6}[/bold] [cyan]{escape(e.name)}[/cyan]")
                out(f"           [green]↑[/green] {escape(', '.join(e.upright))}")
                out(f"           [red]↓[/red] {escape(', '.join(e.reversed))}\n")

        n_major = len(self.catalog.majors())
        out(f"[bold]  Total: {len(self.catalog)} cards ({n_major} Major + {len(self.catalog) - n_major} Minor)[/bold]\n")

    def guide(self) -> None:
        self.console.print(Panel.fit("[bold]❓  HOW TO PLAY — ClavTarot Guide[/bold]", border_style="magenta"))
        self.console.print(GUIDE)

    def dispatch(self, command: str, seed: Seed = None, day: Optional[date] = None) -> None:
        """
        Run one command. Raises UnknownSpreadError for anything unrecognized.
        """
        if command in SPREAD_REGISTRY:
            self.spread(command, seed)
        elif command == "daily":
            self.daily(day)
        elif command == "deck":
            self.deck()
        elif command in HELP_ALIASES:
            self.guide()
        else:
            raise UnknownSpreadError(command)

    def menu(self, ask: Optional[Callable[[str], str]] = None) -> None:
        """Interactive loop. Returns on an exit word or end of input."""
        ask = ask or (lambda prompt: self.console.input(prompt))
        while True:
            self.console.print(Panel.fit(
                "[bold]🔮  C L A V T A R O T  🔮[/bold]\n"
                "[dim]AI Tarot Reader for OpenClaw[/dim]\n\n"
                "[bold]1.[/bold] 🔮  Single Card Draw   [dim]— Quick daily guidance[/dim]\n"
                "[bold]2.[/bold] 🃏  Three Card Spread  [dim]— Past/Present/Future[/dim]\n"
                "[bold]3.[/bold] 💕  Love Spread        [dim]— Matters of the heart[/dim]\n"
                "[bold]4.[/bold] 💼  Career Spread      [dim]— Professional path[/dim]\n"
                "[bold]5.[/bold] ✨  Celtic Cross       [dim]— The Grand Reading[/dim]\n"
                "[bold]6.[/bold] 🌅  Daily Fortune      [dim]— Today's card[/dim]\n"
                "[bold]7.[/bold] 📚  View Full Deck     [dim]— Browse 78 cards[/dim]\n"
                "[bold]8.[/bold] ❓  How to Play        [dim]— Learn about tarot[/dim]\n"
                "[bold]0.[/bold] 👋  Exit",
                border_style="magenta",
            ))
            try:
                choice = ask("  [cyan]Choose your path (0-8):[/cyan] ").strip().lower()
            except EOFError:
                choice = "0"

            if choice in EXIT_WORDS:
                self.console.print("\n  [magenta]✧ The cards will be here when you return. Farewell, seeker. ✧[/magenta]\n")
                return

            command = MENU.get(choice, choice)
            try:
                self.dispatch(command)
            except UnknownSpreadError:
                self.console.print("\n  [yellow]The spirits don't recognize that symbol. Try 1-8 or 0 to exit.[/yellow]")
                continue

            try:
                ask("\n  [dim]Press Enter to return to the menu...[/dim]")
            except EOFError:
                return


def _parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {raw!r}, expected YYYY-MM-DD") from None


def _seed(raw: str) -> Seed:
    try:
        return int(raw)
    except ValueError:
        return raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clavtarot",
        description="Tarot readings in your terminal. Run without a command for the interactive menu.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        help="single | three | love | career | celtic | daily | deck | help | install",
    )
    parser.add_argument("--seed", type=_seed, default=None, help="Reproducible draw (int or text).")
    parser.add_argument("--date", type=_parse_date, default=None, help="Day for the daily card (YYYY-MM-DD).")
    parser.add_argument("--no-delay", action="store_true", help="Reveal cards without pauses.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.LOG_LEVEL, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    command = args.command.lower() if args.command else None
    if args.seed is not None and command not in SPREAD_REGISTRY:
        parser.error(f"--seed only applies to spreads ({', '.join(SPREAD_REGISTRY)})")
    console = Console(highlight=False)

    if command == "install":
        try:
            return Wizard(console=console).run()
        except KeyboardInterrupt:
            console.print("\n  [yellow]Installation cancelled; nothing further written.[/yellow]")
            return 130
        except EOFError:
            console.print("\n  [yellow]Input closed; installation cancelled, nothing further written.[/yellow]")
            return 1

    try:
        catalog = logic.default_catalog()
    except CatalogLoadError as e:
        print(f"clavtarot: cannot load the tarot deck: {e}", file=sys.stderr)
        return 1

    presenter = TerminalPresenter(console=console)
    if args.no_delay:
        presenter.delay = 0
        presenter.shuffle_seconds = 0
    app = TarotApp(catalog, console=console, presenter=presenter)

    try:
        if not command:
            app.menu()
        else:
            app.dispatch(command, seed=args.seed, day=args.date)
    except UnknownSpreadError as e:
        print(f"clavtarot: {e} Other commands: daily, deck, help, install.", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        console.print("\n  [magenta]✧ Farewell, seeker. ✧[/magenta]")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
