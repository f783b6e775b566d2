# -*- coding: utf-8 -*-
"""
tarot_core.py — Core Tarot mechanisms (catalog / spreads / shuffle / draw / daily card)

Responsibilities:
- Load and validate the 78-card catalog document (22 major + 4 suits x 14 minor)
- Define spreads (single / three / love / career / celtic)
- Provide unbiased shuffling (Fisher–Yates) and drawing with a fair 50/50 orientation
- Provide the date-seeded daily card, which never shares RNG state with draws
- Public API: load_catalog / list_spreads / get_spread / shuffle / draw / daily_card

Note:
- This module only implements Tarot mechanics and is UI/LLM agnostic.
  Presentation lives in render.py, orchestration in logic.py.
"""

from __future__ import annotations

import hashlib
import json
import logging
import random
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Literal, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


# =========================
# Error classes
# =========================

class TarotCoreError(Exception):
    """Base class for tarot-core errors."""


class CatalogLoadError(TarotCoreError):
    """Raised when the catalog document is malformed or incomplete."""


class UnknownSpreadError(TarotCoreError):
    """Raised when a spread id is not registered."""

    def __init__(self, spread_id: str):
        self.spread_id = spread_id
        known = ", ".join(SPREAD_REGISTRY)
        super().__init__(f"Spread '{spread_id}' is not registered. Choose one of: {known}.")


class InvalidParameterError(TarotCoreError):
    """Raised when an input parameter is invalid."""


class InvalidDrawSizeError(InvalidParameterError):
    """Raised when the requested number of cards is outside [1, len(catalog)]."""


Orientation = Literal["upright", "reversed"]
Seed = Optional[Union[int, str]]

SUITS: Tuple[str, ...] = ("wands", "cups", "swords", "pentacles")
MAJOR_COUNT = 22
SUIT_SIZE = 14
DECK_SIZE = MAJOR_COUNT + SUIT_SIZE * len(SUITS)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "tarot-cards.json"


# =========================
# Card types
# =========================

@dataclass(frozen=True)
class Facet:
    """Upright or reversed interpretation of a card."""
    keywords: Tuple[str, ...]
    meaning: str
    love: Optional[str] = None
    career: Optional[str] = None
    health: Optional[str] = None

    @property
    def has_topics(self) -> bool:
        return any((self.love, self.career, self.health))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"keywords": list(self.keywords), "meaning": self.meaning}
        for topic in ("love", "career", "health"):
            value = getattr(self, topic)
            if value is not None:
                data[topic] = value
        return data


@dataclass(frozen=True)
class Card:
    """Card definition (RWS)."""
    id: int                  # 1..78, stable across runs
    name: str                # e.g., "The Fool", "Ace of Wands"
    suit: Optional[str]      # None for major arcana; "wands", "cups", "swords", "pentacles"
    numeral: Optional[str]   # major only: "0", "I", ..., "XXI"
    rank: Optional[str]      # minor only: "Ace", "Two", ..., "King"
    element: Optional[str]   # Fire / Water / Air / Earth, display only
    upright: Facet
    reversed: Facet

    @property
    def is_major(self) -> bool:
        return self.suit is None

    @property
    def arcana(self) -> str:
        return "major" if self.is_major else "minor"

    @property
    def label(self) -> str:
        return (self.numeral if self.is_major else self.rank) or ""

    def facet(self, orientation: Orientation) -> Facet:
        return self.reversed if orientation == "reversed" else self.upright

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "arcana": self.arcana,
            "suit": self.suit,
            "numeral": self.numeral,
            "rank": self.rank,
            "element": self.element,
            "upright": self.upright.to_dict(),
            "reversed": self.reversed.to_dict(),
        }


@dataclass(frozen=True)
class DrawnCard:
    """A card plus the orientation it was drawn in."""
    card: Card
    is_reversed: bool

    @property
    def orientation(self) -> Orientation:
        return "reversed" if self.is_reversed else "upright"

    @property
    def facet(self) -> Facet:
        return self.card.facet(self.orientation)

    @property
    def id(self) -> int:
        return self.card.id

    @property
    def name(self) -> str:
        return self.card.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "card_id": self.card.id,
            "card_name": self.card.name,
            "arcana": self.card.arcana,
            "suit": self.card.suit,
            "label": self.card.label,
            "element": self.card.element,
            "orientation": self.orientation,
            "keywords": list(self.facet.keywords),
            "meaning": self.facet.meaning,
            **{k: v for k, v in self.facet.to_dict().items() if k in ("love", "career", "health")},
        }


@dataclass(frozen=True)
class SuitInfo:
    """Display metadata for one minor-arcana suit."""
    key: str
    name: str
    element: str
    theme: str


@dataclass(frozen=True)
class Catalog:
    """Immutable, ordered 78-card catalog. Build it with load_catalog()."""
    cards: Tuple[Card, ...]
    suits: Tuple[SuitInfo, ...]

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __getitem__(self, index: int) -> Card:
        return self.cards[index]

    def __post_init__(self):
        object.__setattr__(self, "_by_id", {c.id: c for c in self.cards})

    def by_id(self, card_id: int) -> Card:
        return self._by_id[card_id]

    def majors(self) -> Tuple[Card, ...]:
        return tuple(c for c in self.cards if c.is_major)

    def suit_cards(self, suit: str) -> Tuple[Card, ...]:
        return tuple(c for c in self.cards if c.suit == suit)


# =========================
# Catalog loading
# =========================

def _parse_facet(raw: Any, where: str) -> Facet:
    if not isinstance(raw, Mapping):
        raise CatalogLoadError(f"{where}: facet must be an object")
    keywords = raw.get("keywords")
    meaning = raw.get("meaning")
    if not isinstance(keywords, list) or not keywords or not all(isinstance(k, str) for k in keywords):
        raise CatalogLoadError(f"{where}: 'keywords' must be a non-empty list of strings")
    if not isinstance(meaning, str) or not meaning.strip():
        raise CatalogLoadError(f"{where}: 'meaning' must be a non-empty string")
    topics = {}
    for topic in ("love", "career", "health"):
        value = raw.get(topic)
        if value is not None and not isinstance(value, str):
            raise CatalogLoadError(f"{where}: '{topic}' must be a string")
        topics[topic] = value
    return Facet(keywords=tuple(keywords), meaning=meaning, **topics)


def _parse_card(raw: Any, suit: Optional[str], where: str) -> Card:
    if not isinstance(raw, Mapping):
        raise CatalogLoadError(f"{where}: card entry must be an object")
    card_id = raw.get("id")
    name = raw.get("name")
    # bool is an int subclass; reject it explicitly
    if not isinstance(card_id, int) or isinstance(card_id, bool):
        raise CatalogLoadError(f"{where}: 'id' must be an integer")
    if not isinstance(name, str) or not name:
        raise CatalogLoadError(f"{where}: 'name' is required")
    where = f"{where} ({name})"
    label_key = "numeral" if suit is None else "rank"
    label = raw.get(label_key)
    if not isinstance(label, str) or not label:
        raise CatalogLoadError(f"{where}: '{label_key}' is required")
    return Card(
        id=card_id,
        name=name,
        suit=suit,
        numeral=label if suit is None else None,
        rank=label if suit is not None else None,
        element=raw.get("element"),
        upright=_parse_facet(raw.get("upright"), f"{where}.upright"),
        reversed=_parse_facet(raw.get("reversed"), f"{where}.reversed"),
    )


def parse_catalog(document: Mapping[str, Any]) -> Catalog:
    """
    Validate a catalog document and build the immutable Catalog.

    Expected shape:
        {
          "majorArcana": [card, ...],
          "minorArcana": {
             "wands": {"name": ..., "element": ..., "theme": ..., "cards": [card, ...]},
             ...
          }
        }

    Raises CatalogLoadError on a wrong card count, duplicate id, or a card
    missing required facet fields.
    """
    if not isinstance(document, Mapping):
        raise CatalogLoadError("catalog document must be an object")
    majors_raw = document.get("majorArcana")
    minors_raw = document.get("minorArcana")
    if not isinstance(majors_raw, list):
        raise CatalogLoadError("'majorArcana' must be a list")
    if not isinstance(minors_raw, Mapping):
        raise CatalogLoadError("'minorArcana' must be an object keyed by suit")

    cards: List[Card] = []
    for i, raw in enumerate(majors_raw):
        cards.append(_parse_card(raw, None, f"majorArcana[{i}]"))

    suits: List[SuitInfo] = []
    missing = [s for s in SUITS if s not in minors_raw]
    if missing:
        raise CatalogLoadError(f"'minorArcana' is missing suits: {', '.join(missing)}")
    unknown = [s for s in minors_raw if s not in SUITS]
    if unknown:
        raise CatalogLoadError(f"'minorArcana' has unknown suits: {', '.join(unknown)}")

    for suit in SUITS:
        group = minors_raw[suit]
        group_cards = group.get("cards") if isinstance(group, Mapping) else None
        if not isinstance(group_cards, list):
            raise CatalogLoadError(f"minorArcana.{suit}.cards must be a list")
        suits.append(SuitInfo(
            key=suit,
            name=group.get("name") or suit.title(),
            element=group.get("element") or "",
            theme=group.get("theme") or "",
        ))
        for i, raw in enumerate(group_cards):
            cards.append(_parse_card(raw, suit, f"minorArcana.{suit}.cards[{i}]"))

    if len(cards) != DECK_SIZE:
        raise CatalogLoadError(f"catalog must contain exactly {DECK_SIZE} cards, got {len(cards)}")

    seen: Dict[int, str] = {}
    for card in cards:
        if card.id in seen:
            raise CatalogLoadError(f"duplicate card id {card.id}: '{seen[card.id]}' and '{card.name}'")
        seen[card.id] = card.name

    return Catalog(cards=tuple(cards), suits=tuple(suits))


def load_catalog(path: Optional[Union[str, Path]] = None) -> Catalog:
    """
    Read the catalog JSON document (the packaged deck by default) and validate it eagerly.
    """
    source = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    try:
        with open(source, "r", encoding="utf-8") as fh:
            document = json.load(fh)
    except OSError as e:
        raise CatalogLoadError(f"cannot read catalog {source}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogLoadError(f"catalog {source} is not valid JSON: {e}") from e

    catalog = parse_catalog(document)
    logger.info("Loaded %d cards from %s", len(catalog), source)
    return catalog


# =========================
# Spread registry
# =========================

@dataclass(frozen=True)
class Spread:
    """Spread definition. Display fields (tagline/closing/layout) are terminal-only."""
    id: str
    name: str
    positions: Tuple[str, ...]
    tagline: str = ""
    closing: str = ""
    layout: str = ""

    @property
    def card_count(self) -> int:
        return len(self.positions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "card_count": self.card_count,
            "positions": list(self.positions),
        }


SPREAD_REGISTRY: Dict[str, Spread] = {
    "single": Spread(
        id="single",
        name="Single Card Draw",
        positions=("The Message",),
        tagline="One card. One message. Listen carefully.",
        closing="The universe has spoken. Reflect on this message.",
        layout="""
      ┌─────┐
      │     │
      │  1  │  ← The Message
      │     │
      └─────┘""",
    ),
    "three": Spread(
        id="three",
        name="Three Card Spread",
        positions=(
            "Past — What brought you here",
            "Present — Where you stand now",
            "Future — What awaits ahead",
        ),
        tagline="Past · Present · Future",
        closing="Your past informs your present, and your present shapes the future you're creating. "
                "The cards reveal the pattern; the choice remains yours.",
        layout="""
      ┌─────┐  ┌─────┐  ┌─────┐
      │     │  │     │  │     │
      │  1  │  │  2  │  │  3  │
      │     │  │     │  │     │
      └─────┘  └─────┘  └─────┘
       Past     Present   Future""",
    ),
    "love": Spread(
        id="love",
        name="Love Spread",
        positions=(
            "Your Feelings — What your heart holds",
            "Their Feelings — What their heart holds",
            "The Connection — The energy between you",
            "The Challenge — What tests your bond",
            "The Potential — Where love could lead",
        ),
        tagline="Five cards for matters of the heart",
        closing="Love is both the question and the answer.",
        layout="""
              ┌─────┐
              │  3  │  The Connection
              └─────┘
      ┌─────┐          ┌─────┐
      │  1  │          │  2  │
      └─────┘          └─────┘
      Your              Their
      Feelings          Feelings
              ┌─────┐
              │  4  │  The Challenge
              └─────┘
              ┌─────┐
              │  5  │  The Potential
              └─────┘""",
    ),
    "career": Spread(
        id="career",
        name="Career Spread",
        positions=(
            "Current Position — Where you stand",
            "Obstacles — What blocks your path",
            "Hidden Influence — The unseen factor",
            "Best Action — Your wisest next move",
        ),
        tagline="Four cards for your professional path",
        closing="Fortune favors the bold, but wisdom guides the way.",
        layout="""
      ┌─────┐  ┌─────┐
      │  1  │  │  2  │
      └─────┘  └─────┘
      Current   Obstacles
      Position

      ┌─────┐  ┌─────┐
      │  3  │  │  4  │
      └─────┘  └─────┘
      Hidden    Best
      Influence Action""",
    ),
    "celtic": Spread(
        id="celtic",
        name="Celtic Cross",
        positions=(
            "Present Situation — The heart of the matter",
            "The Challenge — What crosses you",
            "Foundation — The root cause",
            "Recent Past — What's fading away",
            "Crown — The best possible outcome",
            "Near Future — What approaches",
            "Your Attitude — How you see yourself",
            "External Influences — How others affect you",
            "Hopes & Fears — Your deepest desires and anxieties",
            "Final Outcome — The destiny that forms",
        ),
        tagline="10 cards for comprehensive life guidance",
        closing="Ten cards, ten facets of your journey. The cards show possibilities, not certainties; "
                "your free will is the ultimate trump card.",
        layout="""
                 ┌─────┐
                 │  5  │ Crown
                 └─────┘
      ┌─────┐  ┌──┬──┐  ┌─────┐      ┌─────┐
      │  4  │  │ 1│ 2│  │  6  │      │ 10  │ Outcome
      └─────┘  └──┴──┘  └─────┘      ├─────┤
      Past      ↑Cross               │  9  │ Hopes/Fears
                ┌─────┐              ├─────┤
                │  3  │ Foundation   │  8  │ Environment
                └─────┘              ├─────┤
                                     │  7  │ Self
                                     └─────┘""",
    ),
}

# Not registered: the daily card is selected by date, not drawn.
DAILY_SPREAD = Spread(
    id="daily",
    name="Daily Tarot Fortune",
    positions=("Card of the Day",),
    closing="Carry this card's wisdom with you today. The future is yours to shape.",
)


def list_spreads() -> List[Spread]:
    """Return all available spreads."""
    return list(SPREAD_REGISTRY.values())


def get_spread(spread_id: str) -> Spread:
    """Get a single spread definition; raise if not registered."""
    try:
        return SPREAD_REGISTRY[spread_id]
    except KeyError:
        raise UnknownSpreadError(spread_id) from None


# =========================
# RNG / Shuffling
# =========================

def norm_seed(seed: Seed) -> Optional[int]:
    """
    Normalize seed to int. If str, hash with sha256 and take the first 8 bytes
    as an unsigned 64-bit integer. None stays None.
    """
    if seed is None:
        return None
    if isinstance(seed, bool):
        raise InvalidParameterError("seed must be int | str | None")
    if isinstance(seed, int):
        return seed
    if isinstance(seed, str):
        h = hashlib.sha256(seed.encode("utf-8")).digest()
        return int.from_bytes(h[:8], byteorder="big", signed=False)
    raise InvalidParameterError("seed must be int | str | None")


def make_rng(seed: Seed = None) -> random.Random:
    """
    General-purpose source for draws. Unseeded calls get a fresh OS-entropy
    source; a seed gives a private, reproducible generator.
    """
    norm = norm_seed(seed)
    if norm is None:
        return random.SystemRandom()
    return random.Random(norm)


def _fisher_yates_shuffle(items: Sequence[Card], rng: random.Random) -> List[Card]:
    """
    Fisher–Yates (Knuth) shuffle.
    Returns a new list and does not mutate the input.
    """
    arr = list(items)
    n = len(arr)
    for i in range(n - 1, 0, -1):
        j = rng.randint(0, i)  # inclusive
        arr[i], arr[j] = arr[j], arr[i]
    return arr


def shuffle(catalog: Catalog, rng: Optional[random.Random] = None) -> List[Card]:
    """Return the catalog's cards as a uniformly random permutation."""
    return _fisher_yates_shuffle(catalog.cards, rng if rng is not None else make_rng())


# =========================
# Draw
# =========================

def draw(catalog: Catalog, n: int, rng: Optional[random.Random] = None) -> List[DrawnCard]:
    """
    Shuffle the whole catalog, take the first n cards, and flip a fair coin
    for each card's orientation.

    Args:
        catalog: the loaded catalog
        n: number of cards, 1 <= n <= len(catalog)
        rng: optional generator (see make_rng); defaults to an unseeded system source

    Raises:
        InvalidDrawSizeError: n is not an int or is out of bounds
    """
    if not isinstance(n, int) or isinstance(n, bool) or not (1 <= n <= len(catalog)):
        raise InvalidDrawSizeError(f"draw size must be an integer in [1, {len(catalog)}]; got {n!r}")

    rng = rng if rng is not None else make_rng()
    picked = _fisher_yates_shuffle(catalog.cards, rng)[:n]
    drawn = [DrawnCard(card=card, is_reversed=rng.random() < 0.5) for card in picked]
    logger.debug("Drew %d cards: %s", n, [d.id for d in drawn])
    return drawn


# =========================
# Daily card
# =========================

def date_seed(day: Union[date, datetime]) -> int:
    """
    Seed for a calendar day: year*10000 + month*100 + day.
    Time of day and timezone are ignored; distinct dates never collide.
    """
    if isinstance(day, datetime):
        day = day.date()
    return day.year * 10000 + day.month * 100 + day.day


def daily_card(day: Union[date, datetime], catalog: Catalog) -> DrawnCard:
    """
    Deterministic card of the day. A private generator is seeded from the date;
    its first value picks the card and its second picks the orientation.
    """
    rng = random.Random(date_seed(day))
    index = int(rng.random() * len(catalog))
    is_reversed = rng.random() > 0.5
    return DrawnCard(card=catalog[index], is_reversed=is_reversed)
