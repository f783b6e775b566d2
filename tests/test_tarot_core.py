"""Tests for tarot_core — catalog, spreads, draw engine, daily card."""

import random
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from itertools import combinations

import pytest

from clavtarot import tarot_core
from clavtarot.tarot_core import (
    CatalogLoadError,
    InvalidDrawSizeError,
    InvalidParameterError,
    UnknownSpreadError,
)


# =========================
# Catalog
# =========================

class TestCatalog:

    def test_has_78_cards_with_unique_ids(self, catalog):
        assert len(catalog) == 78
        ids = [c.id for c in catalog]
        assert len(set(ids)) == 78
        assert sorted(ids) == list(range(1, 79))

    def test_major_and_suit_grouping(self, catalog):
        assert len(catalog.majors()) == 22
        assert all(c.suit is None and c.numeral for c in catalog.majors())
        for suit in tarot_core.SUITS:
            cards = catalog.suit_cards(suit)
            assert len(cards) == 14
            assert [c.rank for c in cards][0] == "Ace"
            assert [c.rank for c in cards][-1] == "King"

    def test_order_is_majors_then_suits(self, catalog):
        assert catalog[0].name == "The Fool"
        assert catalog[21].name == "The World"
        assert catalog[22].name == "Ace of Wands"
        assert catalog[77].name == "King of Pentacles"

    def test_every_card_has_both_facets(self, catalog):
        for card in catalog:
            for facet in (card.upright, card.reversed):
                assert facet.keywords, card.name
                assert facet.meaning.strip(), card.name

    def test_major_facets_carry_topics(self, catalog):
        for card in catalog.majors():
            assert card.upright.has_topics and card.reversed.has_topics
            assert card.upright.career and card.upright.health

    def test_by_id(self, catalog):
        assert catalog.by_id(1).name == "The Fool"
        assert all(catalog.by_id(c.id) is c for c in catalog)
        with pytest.raises(KeyError):
            catalog.by_id(999)

    def test_cards_are_immutable(self, catalog):
        with pytest.raises(AttributeError):
            catalog[0].name = "Changed"

    def test_suit_metadata(self, catalog):
        info = {s.key: s for s in catalog.suits}
        assert info["wands"].element == "Fire"
        assert info["pentacles"].theme == "Material & Career"


class TestCatalogValidation:

    def test_rejects_77_cards(self, document):
        document["minorArcana"]["wands"]["cards"].pop()
        with pytest.raises(CatalogLoadError, match="78"):
            tarot_core.parse_catalog(document)

    def test_rejects_79_cards(self, document):
        extra = dict(document["majorArcana"][0], id=79, name="The Extra")
        document["majorArcana"].append(extra)
        with pytest.raises(CatalogLoadError, match="78"):
            tarot_core.parse_catalog(document)

    def test_rejects_duplicate_id(self, document):
        document["minorArcana"]["cups"]["cards"][0]["id"] = 1
        with pytest.raises(CatalogLoadError, match="duplicate card id 1"):
            tarot_core.parse_catalog(document)

    def test_rejects_missing_meaning(self, document):
        del document["majorArcana"][3]["reversed"]["meaning"]
        with pytest.raises(CatalogLoadError, match="meaning"):
            tarot_core.parse_catalog(document)

    def test_rejects_empty_keywords(self, document):
        document["minorArcana"]["swords"]["cards"][5]["upright"]["keywords"] = []
        with pytest.raises(CatalogLoadError, match="keywords"):
            tarot_core.parse_catalog(document)

    def test_rejects_missing_facet(self, document):
        del document["majorArcana"][0]["upright"]
        with pytest.raises(CatalogLoadError, match="facet"):
            tarot_core.parse_catalog(document)

    def test_rejects_missing_suit(self, document):
        del document["minorArcana"]["pentacles"]
        with pytest.raises(CatalogLoadError, match="pentacles"):
            tarot_core.parse_catalog(document)

    def test_rejects_non_integer_id(self, document):
        document["majorArcana"][0]["id"] = "1"
        with pytest.raises(CatalogLoadError, match="id"):
            tarot_core.parse_catalog(document)

    def test_rejects_major_without_numeral(self, document):
        del document["majorArcana"][4]["numeral"]
        with pytest.raises(CatalogLoadError, match="numeral"):
            tarot_core.parse_catalog(document)

    def test_rejects_minor_without_rank(self, document):
        document["minorArcana"]["cups"]["cards"][2]["rank"] = ""
        with pytest.raises(CatalogLoadError, match="rank"):
            tarot_core.parse_catalog(document)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(CatalogLoadError, match="cannot read"):
            tarot_core.load_catalog(tmp_path / "nope.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogLoadError, match="not valid JSON"):
            tarot_core.load_catalog(path)


# =========================
# Spreads
# =========================

EXPECTED_SPREADS = {
    "single": ["The Message"],
    "three": ["Past", "Present", "Future"],
    "love": ["Your Feelings", "Their Feelings", "The Connection", "The Challenge", "The Potential"],
    "career": ["Current Position", "Obstacles", "Hidden Influence", "Best Action"],
    "celtic": [
        "Present Situation", "The Challenge", "Foundation", "Recent Past", "Crown",
        "Near Future", "Your Attitude", "External Influences", "Hopes & Fears", "Final Outcome",
    ],
}


class TestSpreads:

    @pytest.mark.parametrize("spread_id,labels", EXPECTED_SPREADS.items())
    def test_spread_table(self, spread_id, labels):
        spread = tarot_core.get_spread(spread_id)
        assert spread.card_count == len(labels) == len(spread.positions)
        assert [p.split(" — ")[0] for p in spread.positions] == labels

    def test_registry_has_exactly_five_spreads(self):
        assert [s.id for s in tarot_core.list_spreads()] == list(EXPECTED_SPREADS)

    def test_unknown_spread(self):
        with pytest.raises(UnknownSpreadError) as exc:
            tarot_core.get_spread("not-a-real-id")
        assert exc.value.spread_id == "not-a-real-id"
        assert "celtic" in str(exc.value)

    def test_daily_spread_is_not_registered(self):
        assert tarot_core.DAILY_SPREAD.card_count == 1
        with pytest.raises(UnknownSpreadError):
            tarot_core.get_spread("daily")


# =========================
# Draw engine
# =========================

class TestDraw:

    def test_every_size_returns_distinct_cards(self, catalog):
        rng = random.Random(7)
        for n in range(1, 79):
            drawn = tarot_core.draw(catalog, n, rng)
            assert len(drawn) == n
            assert len({d.id for d in drawn}) == n

    @pytest.mark.parametrize("n", [0, -1, 79, 1000])
    def test_out_of_bounds_size(self, catalog, n):
        with pytest.raises(InvalidDrawSizeError):
            tarot_core.draw(catalog, n)

    @pytest.mark.parametrize("n", ["3", 2.0, True, None])
    def test_non_integer_size(self, catalog, n):
        with pytest.raises(InvalidDrawSizeError):
            tarot_core.draw(catalog, n)

    def test_draw_size_error_is_a_parameter_error(self):
        assert issubclass(InvalidDrawSizeError, InvalidParameterError)

    def test_unseeded_draw_uses_system_source(self, catalog):
        assert isinstance(tarot_core.make_rng(), random.SystemRandom)
        assert len(tarot_core.draw(catalog, 5)) == 5

    def test_seeded_draw_is_reproducible(self, catalog):
        a = tarot_core.draw(catalog, 10, tarot_core.make_rng("demo-user-001"))
        b = tarot_core.draw(catalog, 10, tarot_core.make_rng("demo-user-001"))
        assert [(d.id, d.is_reversed) for d in a] == [(d.id, d.is_reversed) for d in b]

    def test_shuffle_is_a_permutation(self, catalog):
        shuffled = tarot_core.shuffle(catalog, random.Random(3))
        assert sorted(c.id for c in shuffled) == [c.id for c in catalog]
        assert catalog[0].name == "The Fool"

    def test_reversed_rate_is_fair(self, catalog):
        rng = random.Random(2024)
        trials = 10_000
        reversed_count = sum(tarot_core.draw(catalog, 1, rng)[0].is_reversed for _ in range(trials))
        # sd = 50 draws; +-300 is six sigma
        assert 4_700 <= reversed_count <= 5_300

    def test_card_frequency_is_uniform(self, catalog):
        rng = random.Random(99)
        trials = 10_000
        counts = Counter(tarot_core.draw(catalog, 1, rng)[0].id for _ in range(trials))
        assert set(counts) == {c.id for c in catalog}
        expected = trials / 78
        chi2 = sum((counts[c.id] - expected) ** 2 / expected for c in catalog)
        # 77 degrees of freedom; p(chi2 > 140) is far below 1e-4
        assert chi2 < 140

    def test_every_position_is_uniform(self, catalog):
        rng = random.Random(5)
        trials = 7_800
        last = Counter(tarot_core.draw(catalog, 3, rng)[2].id for _ in range(trials))
        expected = trials / 78
        chi2 = sum((last[c.id] - expected) ** 2 / expected for c in catalog)
        assert chi2 < 140

    def test_seed_normalization(self):
        assert tarot_core.norm_seed(None) is None
        assert tarot_core.norm_seed(42) == 42
        assert tarot_core.norm_seed("abc") == tarot_core.norm_seed("abc")
        assert tarot_core.norm_seed("abc") != tarot_core.norm_seed("abd")
        with pytest.raises(InvalidParameterError):
            tarot_core.norm_seed(1.5)


# =========================
# Daily card
# =========================

class TestDailyCard:

    def test_same_date_same_card(self, catalog):
        d = date(2024, 3, 15)
        first = tarot_core.daily_card(d, catalog)
        second = tarot_core.daily_card(d, catalog)
        assert (first.id, first.is_reversed) == (second.id, second.is_reversed)

    def test_time_of_day_and_timezone_are_ignored(self, catalog):
        base = tarot_core.daily_card(date(2024, 3, 15), catalog)
        for moment in (
            datetime(2024, 3, 15, 0, 0),
            datetime(2024, 3, 15, 23, 59, 59),
            datetime(2024, 3, 15, 12, 30, tzinfo=timezone(timedelta(hours=-8))),
            datetime(2024, 3, 15, 12, 30, tzinfo=timezone(timedelta(hours=9))),
        ):
            got = tarot_core.daily_card(moment, catalog)
            assert (got.id, got.is_reversed) == (base.id, base.is_reversed)

    def test_next_day_differs(self, catalog):
        a = tarot_core.daily_card(date(2024, 3, 15), catalog)
        b = tarot_core.daily_card(date(2024, 3, 16), catalog)
        assert (a.id, a.is_reversed) != (b.id, b.is_reversed)

    def test_date_seed(self):
        assert tarot_core.date_seed(date(2024, 3, 15)) == 20240315
        assert tarot_core.date_seed(datetime(2024, 3, 15, 18, 5)) == 20240315

    def test_date_seeds_never_collide(self):
        start = date(1990, 1, 1)
        seeds = [tarot_core.date_seed(start + timedelta(days=i)) for i in range(365 * 60)]
        assert len(set(seeds)) == len(seeds)
        assert seeds == sorted(seeds)

    def test_distinct_dates_mostly_differ(self, catalog):
        start = date(2024, 1, 1)
        results = [tarot_core.daily_card(start + timedelta(days=i), catalog) for i in range(366)]
        pairs = list(combinations(results, 2))
        differing = sum((a.id, a.is_reversed) != (b.id, b.is_reversed) for a, b in pairs)
        assert differing / len(pairs) > 0.95

    def test_daily_does_not_disturb_draw_rng(self, catalog):
        rng = tarot_core.make_rng(11)
        first = tarot_core.draw(catalog, 3, rng)
        rng = tarot_core.make_rng(11)
        tarot_core.daily_card(date(2024, 3, 15), catalog)
        second = tarot_core.draw(catalog, 3, rng)
        assert [d.id for d in first] == [d.id for d in second]

    def test_daily_ignores_global_random_state(self, catalog):
        random.seed(1)
        a = tarot_core.daily_card(date(2025, 6, 1), catalog)
        random.seed(2)
        random.random()
        b = tarot_core.daily_card(date(2025, 6, 1), catalog)
        assert a == b
