"""
render.py — Reading presentation.

A reading is presented as an ordered stream of RevealEvents. The producer
(present) never waits; adapters decide pacing:
- TerminalPresenter prints each event with rich, sleeping between reveals
- Reading.to_dict() gives the same sequence as plain data for API/web use
"""

from __future__ import annotations

import logging
import textwrap
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from . import config
from .tarot_core import DrawnCard, Spread, TarotCoreError

logger = logging.getLogger(__name__)

MEANING_WIDTH = 62
CIRCLED = "①②③④⑤⑥⑦⑧⑨⑩"
ELEMENT_ICONS = {"Fire": "🔥", "Water": "💧", "Air": "💨", "Earth": "🌍"}


class MismatchedReadingError(TarotCoreError):
    """Raised when drawn cards do not fill the spread's positions one-to-one with distinct cards."""


@dataclass(frozen=True)
class RevealEvent:
    """One card reveal within a reading."""
    index: int               # 0-based reveal order
    total: int
    position: Optional[str]
    card: DrawnCard

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "position": self.position, **self.card.to_dict()}


def _check(spread: Spread, cards: Sequence[DrawnCard]) -> None:
    if len(cards) != spread.card_count:
        raise MismatchedReadingError(
            f"Spread '{spread.id}' has {spread.card_count} positions but {len(cards)} cards were drawn"
        )
    ids = [c.id for c in cards]
    if len(set(ids)) != len(ids):
        raise MismatchedReadingError(f"Spread '{spread.id}' repeats a card: ids {ids}")


def _events(spread: Spread, cards: Sequence[DrawnCard]) -> Iterator[RevealEvent]:
    total = len(cards)
    for i, (position, card) in enumerate(zip(spread.positions, cards)):
        yield RevealEvent(index=i, total=total, position=position, card=card)


def present(spread: Spread, cards: Sequence[DrawnCard]) -> Iterator[RevealEvent]:
    """
    Pair cards with spread positions, in order.

    Validation happens on call, before any event is produced, so a bad
    reading never yields a partial sequence.
    """
    _check(spread, cards)
    return _events(spread, tuple(cards))


@dataclass(frozen=True)
class Reading:
    """A spread paired one-to-one with its drawn cards."""
    spread: Spread
    cards: Tuple[DrawnCard, ...]

    def __post_init__(self):
        object.__setattr__(self, "cards", tuple(self.cards))
        _check(self.spread, self.cards)

    def events(self) -> Iterator[RevealEvent]:
        return present(self.spread, self.cards)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spread": self.spread.id,
            "name": self.spread.name,
            "cards": [e.to_dict() for e in self.events()],
        }


def wrap_meaning(text: str, width: int = MEANING_WIDTH) -> List[str]:
    """Wrap prose to a fixed display width, breaking on spaces only."""
    return textwrap.wrap(text, width=width, break_long_words=False, break_on_hyphens=False)


def numbered(index: int, label: str) -> str:
    marker = CIRCLED[index] if index < len(CIRCLED) else f"{index + 1}."
    return f"{marker} {label}"


# =========================
# Terminal adapter
# =========================

class TerminalPresenter:
    """Paced, colored presentation for an interactive terminal."""

    def __init__(
        self,
        console: Optional[Console] = None,
        delay: Optional[float] = None,
        shuffle_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.console = console or Console(highlight=False)
        self.delay = config.REVEAL_DELAY if delay is None else delay
        self.shuffle_seconds = config.SHUFFLE_SECONDS if shuffle_seconds is None else shuffle_seconds
        self.sleep = sleep

    def banner(self, title: str, subtitle: str = "") -> None:
        body = f"[bold]🔮 {escape(title)}[/bold]"
        if subtitle:
            body += f"\n[dim]{escape(subtitle)}[/dim]"
        self.console.print(Panel.fit(body, border_style="magenta"))

    def layout(self, spread: Spread) -> None:
        if spread.layout:
            self.console.print(f"[dim]{escape(spread.layout)}[/dim]")

    def shuffle(self, message: str, seconds: Optional[float] = None) -> None:
        seconds = self.shuffle_seconds if seconds is None else seconds
        with self.console.status(f"[dim]{escape(message)}[/dim]", spinner="dots"):
            self.sleep(seconds)
        self.console.print(f"  [green]✓[/green] [dim]{escape(message)}[/dim]")

    def reveal(self, event: RevealEvent) -> None:
        drawn = event.card
        card = drawn.card
        facet = drawn.facet
        bar = "[cyan]│[/cyan]"
        out = self.console.print

        if event.position:
            label = event.position if event.total == 1 else numbered(event.index, event.position)
            out(f"\n  [cyan]┌─── {escape(label)} ───[/cyan]")
        else:
            out("\n  [cyan]┌───────────────────[/cyan]")

        icon = "↓" if drawn.is_reversed else "↑"
        major = " [yellow]★[/yellow]" if card.is_major else ""
        out(f"  {bar}")
        out(f"  {bar}  [magenta]🔮 {escape(card.name)}[/magenta] [dim]—[/dim] "
            f"[bold]{drawn.orientation.title()} {icon}[/bold]{major}")
        out(f"  {bar}  [dim]✦ {escape(' · '.join(facet.keywords))}[/dim]")
        out(f"  {bar}")
        for line in wrap_meaning(facet.meaning):
            out(f"  {bar}  {escape(line)}")

        if facet.has_topics:
            out(f"  {bar}")
            for text, style, label in (
                (facet.love, "red", "♥ Love:"),
                (facet.career, "blue", "★ Career:"),
                (facet.health, "green", "♣ Health:"),
            ):
                if text:
                    out(f"  {bar}  [{style}]{label}[/{style}] {escape(text)}")

        out(f"  {bar}")
        out("  [cyan]└───────────────────[/cyan]")

    def play(self, events: Iterator[RevealEvent]) -> int:
        """
        Emit events strictly in order, pausing before each one.

        On KeyboardInterrupt the reading is marked incomplete before the
        interrupt propagates. Returns the number of cards revealed.
        """
        shown = 0
        total = 0
        try:
            for event in events:
                total = event.total
                self.sleep(self.delay)
                self.reveal(event)
                shown += 1
        except KeyboardInterrupt:
            self.console.print(
                f"\n  [yellow]✗ Reading interrupted after {shown} of {total or '?'} cards. "
                f"This spread is incomplete; draw again for a full reading.[/yellow]"
            )
            logger.info("Reading interrupted after %d of %d cards", shown, total)
            raise
        return shown

    def show_reading(self, reading: Reading, shuffle_message: str = "Shuffling the 78-card deck...") -> int:
        self.banner(reading.spread.name, reading.spread.tagline)
        self.layout(reading.spread)
        self.shuffle(shuffle_message)
        shown = self.play(reading.events())
        if reading.spread.closing:
            self.console.print(f"\n  [magenta]✧ {escape(reading.spread.closing)} ✧[/magenta]\n")
        return shown

    def show_daily(self, reading: Reading, day: date) -> int:
        self.banner(reading.spread.name, day.strftime("%A, %B %d, %Y").replace(" 0", " "))
        self.shuffle("The stars align for today's guidance...")
        shown = self.play(reading.events())
        for drawn in reading.cards:
            element = drawn.card.element
            if element:
                icon = ELEMENT_ICONS.get(element, "✨")
                self.console.print(f"  [dim]{icon} Element: {escape(element)}[/dim]")
        self.console.print(f"\n  [magenta]✧ {escape(reading.spread.closing)} ✧[/magenta]")
        self.console.print("  [dim](Same card all day, seeded by today's date)[/dim]\n")
        return shown
