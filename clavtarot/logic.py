"""
logic.py — Orchestration layer that ties tarot_core mechanics to UI/API needs.

Responsibilities:
- Programmatic surface: draw_spread / daily_fortune / list_catalog / browse_deck.
- `perform_reading(...)`: one JSON-ready entry point for the web surfaces that
  draws a spread and (optionally) asks the LLM to narrate it in the persona's voice.

Notes:
- The catalog is loaded once on first use (CLAVTAROT_DECK_PATH or the packaged
  deck) and is immutable afterwards. Every function also accepts an explicit
  `catalog=` so callers and tests can inject their own.
"""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from . import config, tarot_core
from .llm import chat as llm_chat
from .render import Reading
from .tarot_core import Catalog, DrawnCard, Seed

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Catalog access
# -----------------------------------------------------------------------------

@functools.lru_cache(maxsize=None)
def default_catalog() -> Catalog:
    """Load the configured catalog once. Raises CatalogLoadError if it is malformed."""
    return tarot_core.load_catalog(config.DECK_PATH)


def _catalog(catalog: Optional[Catalog]) -> Catalog:
    return catalog if catalog is not None else default_catalog()


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------

def draw_spread(spread_id: str, seed: Seed = None, *, catalog: Optional[Catalog] = None) -> Reading:
    """
    Draw a full reading for a registered spread.

    The spread is resolved before anything is drawn, so an unknown id raises
    UnknownSpreadError without touching the deck.
    """
    spread = tarot_core.get_spread(spread_id)
    rng = tarot_core.make_rng(seed)
    cards = tarot_core.draw(_catalog(catalog), spread.card_count, rng)
    return Reading(spread=spread, cards=tuple(cards))


def daily_fortune(day: Union[date, datetime, None] = None, *, catalog: Optional[Catalog] = None) -> DrawnCard:
    """The card of the day for `day` (today when omitted)."""
    return tarot_core.daily_card(day or date.today(), _catalog(catalog))


def daily_reading(day: Union[date, datetime, None] = None, *, catalog: Optional[Catalog] = None) -> Reading:
    return Reading(spread=tarot_core.DAILY_SPREAD, cards=(daily_fortune(day, catalog=catalog),))


def list_catalog(*, catalog: Optional[Catalog] = None) -> List[tarot_core.Card]:
    """All 78 cards, majors first, then wands, cups, swords, pentacles."""
    return list(_catalog(catalog))


@dataclass(frozen=True)
class DeckEntry:
    """Read-only projection of one card for deck browsing."""
    id: int
    name: str
    label: str
    suit: Optional[str]
    upright: List[str]
    reversed: List[str]


def browse_deck(*, catalog: Optional[Catalog] = None) -> Dict[str, List[DeckEntry]]:
    """
    Group the deck for browsing: {"major": [...], "wands": [...], ...}.
    """
    cat = _catalog(catalog)

    def entry(card: tarot_core.Card) -> DeckEntry:
        return DeckEntry(
            id=card.id,
            name=card.name,
            label=card.label,
            suit=card.suit,
            upright=list(card.upright.keywords),
            reversed=list(card.reversed.keywords),
        )

    groups: Dict[str, List[DeckEntry]] = {"major": [entry(c) for c in cat.majors()]}
    for suit in cat.suits:
        groups[suit.key] = [entry(c) for c in cat.suit_cards(suit.key)]
    return groups


def browse_deck_dict(*, catalog: Optional[Catalog] = None) -> Dict[str, List[Dict[str, Any]]]:
    return {group: [asdict(e) for e in entries] for group, entries in browse_deck(catalog=catalog).items()}


# -----------------------------------------------------------------------------
# Persona
# -----------------------------------------------------------------------------

DEFAULT_PERSONA: Dict[str, str] = {
    "name": "Mystica",
    "style": "poetic and enigmatic, speaking in riddles and metaphors drawn from ancient wisdom",
}


def load_persona(path: Optional[Union[str, Path]] = None) -> Dict[str, str]:
    """
    Read the installed persona.json; fall back to the default persona when
    it is missing or unreadable.
    """
    source = Path(path) if path else config.OPENCLAW_HOME / "skills" / "clavtarot" / "persona.json"
    try:
        with open(source, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        return dict(DEFAULT_PERSONA)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read persona %s: %s", source, e)
        return dict(DEFAULT_PERSONA)
    if not isinstance(data, dict) or not data.get("name"):
        return dict(DEFAULT_PERSONA)
    return {"name": str(data["name"]), "style": str(data.get("style") or DEFAULT_PERSONA["style"])}


# -----------------------------------------------------------------------------
# Prompt construction for the LLM
# -----------------------------------------------------------------------------

_BASE_PROMPT = """### ROLE
You are {name}, a mystical tarot reader. Your speaking style is {style}.

### TASK
Interpret the drawn tarot cards for the seeker, card by card in the order given,
relating each card to its position in the spread and to the seeker's question.

### OUTPUT
One short paragraph per card, then a closing paragraph that ties the cards
into one story and offers practical, empowering guidance.
"""


def _build_llm_prompt(question: Optional[str], reading: Dict[str, Any], persona: Dict[str, str]) -> str:
    """
    Base persona prompt plus a deterministic block listing the cards,
    orientations and positions.
    """
    q = (question or "").strip()
    lines: List[str] = []
    lines.append("### INPUT")
    lines.append(f"Seeker's question: {q if q else '(none)'}")
    lines.append(f"Spread: {reading['name']}")
    lines.append("Cards drawn (in order):")
    for c in reading.get("cards", []):
        pos = c.get("position") or "-"
        keywords = ", ".join(c.get("keywords", []))
        lines.append(f"- {c['index'] + 1}. {c['card_name']} ({c['orientation']}) — pos={pos} — {keywords}")
    lines.append("")
    lines.append("### STYLE")
    lines.append("Compassionate, never judgmental. 2-4 sentences per card. Reversed cards are nuanced, not bad.")
    return _BASE_PROMPT.format(**persona) + "\n" + "\n".join(lines)


def perform_reading(
    spread: str,
    seed: Seed = None,
    question: Optional[str] = None,
    explain_with_llm: bool = False,
    *,
    model: Optional[str] = None,
    temperature: float = 0.2,
    persona: Optional[Dict[str, str]] = None,
    catalog: Optional[Catalog] = None,
) -> Dict[str, Any]:
    """
    Perform a tarot reading and (optionally) trigger an LLM interpretation.

    Args:
        spread: Spread id ("single", "three", "love", "career", "celtic").
        seed: Reproducibility seed (int or str); None for a fresh draw.
        question: The seeker's question (can be None/empty).
        explain_with_llm: When True, call the LLM with a persona prompt.
        model: Optional LLM model name (passed to clavtarot.llm.chat).
        temperature: LLM sampling temperature.
        persona: {"name", "style"}; defaults to the installed persona.

    Returns:
        A JSON-serializable dict:

        {
          "meta": {"seed": int|null, "spread": str, "question": str|null, "explain_with_llm": bool},
          "reading": {"spread": str, "name": str, "cards": [reveal event dicts, in order]},
          "llm": {"prompt": str|null, "response_text": str|null, "error": str|null}
        }

    Raises:
        UnknownSpreadError: `spread` is not registered.
    """
    reading = draw_spread(spread, seed, catalog=catalog).to_dict()

    result: Dict[str, Any] = {
        "meta": {
            "seed": tarot_core.norm_seed(seed),
            "spread": spread,
            "question": question or None,
            "explain_with_llm": bool(explain_with_llm),
        },
        "reading": reading,
        "llm": {
            "prompt": None,
            "response_text": None,
            "error": None,
        },
    }

    if explain_with_llm:
        prompt = _build_llm_prompt(question=question, reading=reading, persona=persona or load_persona())
        result["llm"]["prompt"] = prompt
        try:
            response_text = llm_chat(prompt=prompt, model=model, temperature=temperature)
            if not isinstance(response_text, str):
                response_text = str(response_text)
            if not response_text.strip():
                response_text = "The cards are silent for now..."
            result["llm"]["response_text"] = response_text
        except Exception as e:
            # Reported to the caller; the reading itself is still valid
            logger.warning("LLM interpretation failed: %s", e)
            result["llm"]["error"] = f"{type(e).__name__}: {e}"

    return result
