from datetime import date

import pytest

from clavtarot import cli, config, installer, logic, tarot_core
from clavtarot.cli import TarotApp
from clavtarot.render import TerminalPresenter
from clavtarot.tarot_core import CatalogLoadError, UnknownSpreadError


@pytest.fixture
def app(catalog, console):
    presenter = TerminalPresenter(console=console, delay=0, shuffle_seconds=0, sleep=lambda s: None)
    return TarotApp(catalog, console=console, presenter=presenter)


class Script:
    """Answers prompts from a fixed list; EOFError once exhausted."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


class TestTarotApp:

    @pytest.mark.parametrize("spread_id", sorted(tarot_core.SPREAD_REGISTRY))
    def test_spread_commands(self, app, console, spread_id):
        app.dispatch(spread_id)
        text = console.export_text()
        spread = tarot_core.get_spread(spread_id)
        assert spread.name in text
        assert cli.SHUFFLE_MESSAGES[spread_id] in text

    def test_seeded_spread_output_is_stable(self, catalog, console, app):
        app.dispatch("three", seed="repeatable")
        expected = logic.draw_spread("three", "repeatable", catalog=catalog)
        text = console.export_text()
        for drawn in expected.cards:
            assert drawn.name in text

    def test_daily(self, app, console, catalog):
        app.dispatch("daily", day=date(2024, 3, 15))
        card = tarot_core.daily_card(date(2024, 3, 15), catalog)
        text = console.export_text()
        assert "Friday, March 15, 2024" in text
        assert card.name in text

    def test_deck_lists_all_cards(self, app, console, catalog):
        app.dispatch("deck")
        text = console.export_text()
        for card in catalog:
            assert card.name in text
        assert "Total: 78 cards (22 Major + 56 Minor)" in text
        assert "MAJOR ARCANA (22 cards)" in text
        assert "WANDS" in text and "PENTACLES" in text

    @pytest.mark.parametrize("alias", ["help", "how", "guide"])
    def test_help_aliases(self, app, console, alias):
        app.dispatch(alias)
        assert "Upright" in console.export_text()

    def test_unknown_command(self, app):
        with pytest.raises(UnknownSpreadError):
            app.dispatch("tower")


class TestMenu:

    def test_exit_words(self, app, console):
        for word in ("0", "q", "QUIT", " exit "):
            app.menu(ask=Script(word))
        assert console.export_text().count("Farewell, seeker") == 4

    def test_unknown_choice_reprompts(self, app, console):
        script = Script("9", "1", "", "0")
        app.menu(ask=script)
        text = console.export_text()
        assert "The spirits don't recognize that symbol. Try 1-8 or 0 to exit." in text
        assert tarot_core.get_spread("single").name in text
        # menu, menu, "press enter", menu
        assert len(script.prompts) == 4

    def test_end_of_input_exits(self, app):
        script = Script()
        app.menu(ask=script)
        assert len(script.prompts) == 1

    def test_menu_numbers_map_to_commands(self):
        assert cli.MENU == {
            "1": "single", "2": "three", "3": "love", "4": "career",
            "5": "celtic", "6": "daily", "7": "deck", "8": "help",
        }


class TestMain:

    def test_deck(self, capsys):
        assert cli.main(["deck"]) == 0
        assert "Total: 78 cards" in capsys.readouterr().out

    def test_spread_without_delay(self, capsys):
        assert cli.main(["three", "--no-delay", "--seed", "42"]) == 0
        expected = logic.draw_spread("three", 42)
        out = capsys.readouterr().out
        for drawn in expected.cards:
            assert drawn.name in out

    def test_daily_with_date(self, capsys):
        assert cli.main(["daily", "--date", "2024-03-16", "--no-delay"]) == 0
        assert "March 16, 2024" in capsys.readouterr().out

    def test_unknown_command_exit_code(self, capsys):
        assert cli.main(["tower"]) == 2
        err = capsys.readouterr().err
        assert "tower" in err and "celtic" in err

    def test_bad_date_is_a_usage_error(self, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["daily", "--date", "15/03/2024"])
        assert exc.value.code == 2

    def test_catalog_failure(self, monkeypatch, capsys):
        def broken():
            raise CatalogLoadError("catalog must contain exactly 78 cards, got 77")

        monkeypatch.setattr(logic, "default_catalog", broken)
        assert cli.main(["single"]) == 1
        assert "77" in capsys.readouterr().err

    def test_seed_parsing(self):
        assert cli._seed("12") == 12
        assert cli._seed("abc") == "abc"


class TestMainArguments:

    def test_command_is_case_insensitive(self, capsys):
        assert cli.main(["DECK"]) == 0
        assert "Total: 78 cards" in capsys.readouterr().out

    def test_install_is_case_insensitive(self, monkeypatch):
        ran = []

        def fake_run(self):
            ran.append(True)
            return 0

        monkeypatch.setattr(installer.Wizard, "run", fake_run)
        assert cli.main(["INSTALL"]) == 0
        assert ran == [True]

    @pytest.mark.parametrize("command", ["daily", "deck", "help"])
    def test_seed_rejected_for_commands_without_draws(self, capsys, command):
        with pytest.raises(SystemExit) as exc:
            cli.main([command, "--seed", "7"])
        assert exc.value.code == 2
        assert "--seed only applies to spreads" in capsys.readouterr().err


class TestInstallCancel:

    @pytest.fixture(autouse=True)
    def ready_host(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "OPENCLAW_HOME", tmp_path / ".openclaw")
        monkeypatch.setattr(installer.Wizard, "check_prerequisites", lambda self: True)
        return tmp_path / ".openclaw"

    def _ask_raising(self, monkeypatch, exc):
        def ask(self, prompt):
            raise exc

        monkeypatch.setattr(installer.Wizard, "ask", ask)

    def test_interrupt_exits_130(self, monkeypatch, capsys, ready_host):
        self._ask_raising(monkeypatch, KeyboardInterrupt)
        assert cli.main(["install"]) == 130
        assert "Installation cancelled" in capsys.readouterr().out
        assert not (ready_host / "openclaw.json").exists()

    def test_closed_input_exits_1(self, monkeypatch, capsys, ready_host):
        self._ask_raising(monkeypatch, EOFError)
        assert cli.main(["install"]) == 1
        assert "installation cancelled" in capsys.readouterr().out
        assert not (ready_host / "openclaw.json").exists()
