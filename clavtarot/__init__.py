"""ClavTarot: a 78-card tarot deck, spreads, and a date-seeded daily card."""

from .logic import daily_fortune, draw_spread, list_catalog, perform_reading
from .render import MismatchedReadingError, Reading, RevealEvent, present
from .tarot_core import (
    Card,
    Catalog,
    CatalogLoadError,
    DrawnCard,
    InvalidDrawSizeError,
    Spread,
    UnknownSpreadError,
    load_catalog,
)

__version__ = "0.2.0"
