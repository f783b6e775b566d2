"""
installer.py — Wire the ClavTarot skill and persona into an OpenClaw agent.

Steps (the wizard runs them in order):
  1. prerequisites   – `openclaw` on PATH, ~/.openclaw layout
  2. API key         – fal.ai key for card imagery (browser opening is best-effort)
  3. persona         – Mystica / Luna / Oracle / custom
  4. daily fortune   – optional cron schedule + delivery channel
  5. skill files     – catalog data + persona.json into skills/clavtarot
  6. host config     – deep-merge into openclaw.json
  7. persona inject  – SOUL.md section + IDENTITY.md
  8. summary

The file helpers are plain functions so they can be used and tested without
the interactive prompts.
"""

from __future__ import annotations

import copy
import json
import logging
import re
import shutil
import webbrowser
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from rich.console import Console
from rich.markup import escape

from . import config

logger = logging.getLogger(__name__)

SKILL_NAME = "clavtarot"
CRON_JOB_NAME = "clavtarot-daily-fortune"
SECTION_HEADER = "## ClavTarot"
FAL_URL = "https://fal.ai/dashboard/keys"
PACKAGE_ROOT = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Paths:
    """Host agent locations, all derived from the OpenClaw home directory."""
    home: Path

    @property
    def config(self) -> Path:
        return self.home / "openclaw.json"

    @property
    def skills(self) -> Path:
        return self.home / "skills"

    @property
    def skill_dest(self) -> Path:
        return self.skills / SKILL_NAME

    @property
    def workspace(self) -> Path:
        return self.home / "workspace"

    @property
    def soul(self) -> Path:
        return self.workspace / "SOUL.md"

    @property
    def identity(self) -> Path:
        return self.workspace / "IDENTITY.md"


# -----------------------------------------------------------------------------
# Personas & schedule
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Persona:
    name: str
    description: str
    style: str
    reference_prompt: str

    def to_json(self) -> Dict[str, str]:
        # persona.json keeps the host agent's camelCase key
        data = asdict(self)
        data["referencePrompt"] = data.pop("reference_prompt")
        return data


PERSONAS: Dict[str, Persona] = {
    "1": Persona(
        name="Mystica",
        description="An ancient ethereal seer draped in violet robes with silver flowing hair, glowing "
                    "celestial tattoos across her arms, holding a crystal orb. Her eyes shimmer with "
                    "otherworldly wisdom.",
        style="poetic and enigmatic, speaking in riddles and metaphors drawn from ancient wisdom",
        reference_prompt="a mystical ethereal woman tarot reader, violet flowing robes, silver long hair, "
                         "glowing celestial tattoos on arms, crystal ball, mysterious foggy backdrop with "
                         "candles and tarot cards, art nouveau style, purple and gold color palette",
    ),
    "2": Persona(
        name="Luna",
        description="A modern witchy tarot reader with crescent moon earrings, dark flowing clothes, warm "
                    "brown eyes, surrounded by candles, crystals, and dried herbs. She feels like a wise "
                    "best friend who happens to read the stars.",
        style="warm and candid, like a wise friend sharing secrets over herbal tea, blending modern "
              "slang with mystical insight",
        reference_prompt="a modern witch tarot reader woman, crescent moon earrings, dark flowing bohemian "
                         "clothes, warm expression, surrounded by candles crystals and dried herbs, cozy "
                         "mystical room, art nouveau style, moonlit silver and warm amber palette",
    ),
    "3": Persona(
        name="Oracle",
        description="A cosmic entity that manifests as a human-shaped constellation of stars and nebulae. "
                    "Neither male nor female, Oracle speaks universal truths from beyond the veil of "
                    "space-time.",
        style="cosmic and transcendent, speaking in universal metaphors about stars, galaxies, and the "
              "infinite dance of energy",
        reference_prompt="a cosmic ethereal being made of starlight and nebulae in human form, "
                         "constellation patterns, glowing eyes, cosmic tarot cards floating around, deep "
                         "space background with galaxies, art nouveau style, cosmic purple and stellar "
                         "gold palette",
    ),
}

DEFAULT_PERSONA = PERSONAS["1"]


@dataclass(frozen=True)
class DailySchedule:
    hour: int = 8
    minute: int = 0
    channel: Optional[str] = None

    @property
    def cron(self) -> str:
        return f"{self.minute} {self.hour} * * *"

    @property
    def time_label(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def parse_clock_field(raw: str, default: int, upper: int) -> int:
    """Parse an hour/minute answer; blank or out-of-range input gives the default."""
    try:
        value = int(raw.strip())
    except (AttributeError, ValueError):
        return default
    return value if 0 <= value <= upper else default


# -----------------------------------------------------------------------------
# File helpers
# -----------------------------------------------------------------------------

def read_json_file(path: Path) -> Optional[Dict[str, Any]]:
    """Return the parsed JSON object, or None if the file is missing or unreadable."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable JSON %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def write_json_file(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, ensure_ascii=False)
        fh.write("\n")
    logger.info("Wrote %s", path)


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge `source` into a copy of `target`.

    Keys only in `target` are kept. Dict values merge recursively; anything
    else (scalars, lists, None) from `source` overwrites.
    """
    result = copy.deepcopy(target)
    for key, value in source.items():
        if isinstance(value, dict):
            existing = result.get(key)
            result[key] = deep_merge(existing if isinstance(existing, dict) else {}, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


_HEADER_RE = re.compile(r"^(#{1,6})\s")


def _header_level(line: str) -> Optional[int]:
    m = _HEADER_RE.match(line)
    return len(m.group(1)) if m else None


def remove_section(document: str, header: str) -> str:
    """
    Remove the section that starts with a line beginning with `header`, up to
    (not including) the next header of equal or higher level.
    """
    level = _header_level(header)
    if level is None:
        raise ValueError(f"not a markdown header: {header!r}")

    lines = document.splitlines(keepends=True)
    out: List[str] = []
    skipping = False
    for line in lines:
        line_level = _header_level(line)
        if skipping:
            if line_level is not None and line_level <= level:
                skipping = False
            else:
                continue
        if not skipping and line.startswith(header) and line_level == level:
            skipping = True
            continue
        out.append(line)
    return "".join(out)


def replace_section(document: str, header: str, section: str) -> str:
    """Drop any existing `header` section, then append `section` at the end."""
    cleaned = remove_section(document, header).rstrip("\n")
    return f"{cleaned}\n\n{section.strip()}\n" if cleaned else f"{section.strip()}\n"


def render_persona_section(persona: Persona, template: Optional[Path] = None) -> str:
    """
    Persona block for SOUL.md. A template file may use {{PERSONA_NAME}},
    {{PERSONA_DESCRIPTION}} and {{PERSONA_STYLE}} placeholders.
    """
    if template is not None and template.exists():
        text = template.read_text(encoding="utf-8")
        return (
            text.replace("{{PERSONA_NAME}}", persona.name)
            .replace("{{PERSONA_DESCRIPTION}}", persona.description)
            .replace("{{PERSONA_STYLE}}", persona.style)
        )
    return f"""{SECTION_HEADER} — Mystical Tarot Reader

You are {persona.name}, a mystical tarot reader.

{persona.description}

Your speaking style is {persona.style}.

### Tarot Reading Capabilities

You can perform tarot card readings using the clavtarot skill. You have a complete 78-card
Rider-Waite tarot deck with both upright and reversed meanings.

### Available Spreads
- **Single Card**: Quick daily guidance
- **Three Card**: Past / Present / Future
- **Celtic Cross**: Comprehensive 10-card deep reading
- **Love Spread**: 5-card romance-focused reading
- **Career Spread**: 4-card professional guidance

### When to Read Tarot
Trigger the clavtarot skill when users:
- Ask for a tarot reading or card draw
- Ask about their fortune or future
- Say "draw a card", "read my tarot", "what does the universe say?"
- Ask about love, career, health, or daily guidance
- Request a specific spread type

### Reading Style
- Present each card with its position, orientation and a personalized interpretation
- Connect cards together in multi-card spreads to tell a cohesive story
- End readings with empowering wisdom and practical guidance
- Compassionate and wise, never judgmental
"""


def identity_document(persona: Persona) -> str:
    return f"""# IDENTITY.md - Who Am I?

- **Name:** {persona.name}
- **Role:** Mystical Tarot Reader
- **Vibe:** Wise, mystical, compassionate, insightful, enchanting
- **Specialty:** Tarot card readings, daily fortunes, spiritual guidance
- **Style:** {persona.style}
"""


def open_browser(url: str) -> bool:
    """Best-effort browser launch; False when no browser could be opened."""
    try:
        return bool(webbrowser.open(url))
    except webbrowser.Error as e:
        logger.info("Could not open browser: %s", e)
        return False


# -----------------------------------------------------------------------------
# Install steps
# -----------------------------------------------------------------------------

def ensure_layout(paths: Paths) -> None:
    for d in (paths.home, paths.skills, paths.workspace):
        d.mkdir(parents=True, exist_ok=True)


def install_skill(paths: Paths, persona: Persona) -> List[str]:
    """Copy the catalog data into the skill directory and write persona.json."""
    dest = paths.skill_dest
    dest.mkdir(parents=True, exist_ok=True)
    shutil.copytree(PACKAGE_ROOT / "data", dest / "data", dirs_exist_ok=True)
    write_json_file(dest / "persona.json", persona.to_json())
    return sorted(str(p.relative_to(dest)) for p in dest.rglob("*") if p.is_file())


def build_host_config(
    current: Dict[str, Any],
    api_key: str,
    skills_dir: Path,
    schedule: Optional[DailySchedule] = None,
) -> Dict[str, Any]:
    """Return `current` with the skill entry, skill dir and optional cron job merged in."""
    merged = deep_merge(current, {
        "skills": {
            "entries": {
                SKILL_NAME: {
                    "enabled": True,
                    "apiKey": api_key,
                    "env": {"FAL_KEY": api_key},
                },
            },
        },
    })

    load = merged["skills"].setdefault("load", {})
    if not isinstance(load, dict):
        load = merged["skills"]["load"] = {}
    extra = load.setdefault("extraDirs", [])
    if not isinstance(extra, list):
        extra = load["extraDirs"] = []
    if str(skills_dir) not in extra:
        extra.append(str(skills_dir))

    if schedule is not None:
        merged = deep_merge(merged, {
            "cron": {
                "jobs": {
                    CRON_JOB_NAME: {
                        "schedule": schedule.cron,
                        "message": "Draw my daily tarot fortune card and share the reading",
                        "channel": schedule.channel,
                        "enabled": True,
                    },
                },
            },
        })
    return merged


def update_host_config(paths: Paths, api_key: str, schedule: Optional[DailySchedule] = None) -> Dict[str, Any]:
    current = read_json_file(paths.config) or {}
    merged = build_host_config(current, api_key, paths.skills, schedule)
    write_json_file(paths.config, merged)
    return merged


def inject_persona(paths: Paths, persona: Persona, overwrite: bool = True, template: Optional[Path] = None) -> bool:
    """
    Add (or replace) the persona section in SOUL.md and rewrite IDENTITY.md.
    Returns False when a section exists and `overwrite` is off.
    """
    if paths.soul.exists():
        soul = paths.soul.read_text(encoding="utf-8")
    else:
        paths.soul.parent.mkdir(parents=True, exist_ok=True)
        soul = "# Agent Soul\n"

    if SECTION_HEADER in soul and not overwrite:
        return False

    section = render_persona_section(persona, template)
    paths.soul.write_text(replace_section(soul, SECTION_HEADER, section), encoding="utf-8")
    paths.identity.write_text(identity_document(persona), encoding="utf-8")
    logger.info("Injected persona %s into %s", persona.name, paths.soul)
    return True


# -----------------------------------------------------------------------------
# Interactive wizard
# -----------------------------------------------------------------------------

class Wizard:
    """Prompt-driven installer. `ask` and `which` are injectable for tests."""

    def __init__(
        self,
        paths: Optional[Paths] = None,
        console: Optional[Console] = None,
        ask: Optional[Callable[[str], str]] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        browser: Callable[[str], bool] = open_browser,
    ):
        self.paths = paths or Paths(config.OPENCLAW_HOME)
        self.console = console or Console(highlight=False)
        self._ask = ask or (lambda prompt: self.console.input(prompt))
        self.which = which
        self.browser = browser

    def ask(self, prompt: str) -> str:
        return self._ask(prompt).strip()

    def step(self, n: int, msg: str) -> None:
        self.console.print(f"\n[magenta]\\[{n}/8][/magenta] {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✓[/green] {msg}")

    def info(self, msg: str) -> None:
        self.console.print(f"[blue]→[/blue] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]![/yellow] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]✗[/red] {msg}")

    # steps

    def check_prerequisites(self) -> Union[bool, str]:
        self.step(1, "Checking prerequisites...")
        if not self.which("openclaw"):
            self.error("OpenClaw CLI not found!")
            self.info("Install with: npm install -g openclaw")
            return False
        self.ok("OpenClaw CLI installed")

        if not self.paths.home.exists():
            self.warn(f"{self.paths.home} not found, creating directory structure...")
        ensure_layout(self.paths)
        self.ok("OpenClaw directory exists")

        if self.paths.skill_dest.exists():
            self.warn("ClavTarot is already installed!")
            self.info(f"Location: {self.paths.skill_dest}")
            return "already_installed"
        return True

    def confirm_reinstall(self) -> bool:
        if self.ask("\nReinstall/update? (y/N): ").lower() != "y":
            self.console.print("\nNo changes made. The cards remain as they are.")
            return False
        shutil.rmtree(self.paths.skill_dest, ignore_errors=True)
        self.info("Removed existing installation")
        return True

    def get_api_key(self) -> Optional[str]:
        self.step(2, "Setting up fal.ai API key...")
        self.console.print("\nTo generate mystical tarot card images, you need a fal.ai API key.")
        self.console.print(f"[cyan]→[/cyan] Get your key from: [bold]{FAL_URL}[/bold]")
        if self.ask("Open fal.ai in browser? (Y/n): ").lower() != "n":
            self.info("Opening browser...")
            if not self.browser(FAL_URL):
                self.warn("Could not open browser automatically")
                self.info(f"Please visit: {FAL_URL}")

        key = self.ask("Enter your FAL_KEY: ")
        if not key:
            self.error("FAL_KEY is required for tarot card image generation!")
            return None
        if len(key) < 10:
            self.warn("That key looks too short. Make sure you copied the full key.")
        self.ok("API key received")
        return key

    def choose_persona(self) -> Persona:
        self.step(3, "Choose your tarot reader persona...")
        for number, p in PERSONAS.items():
            self.console.print(f"  [bold]{number}.[/bold] [magenta]{p.name}[/magenta] — {escape(p.style)}")
        self.console.print("  [bold]4.[/bold] [magenta]Custom[/magenta] — Define your own tarot reader persona.")

        choice = self.ask("Choose persona (1-4) [1]: ")
        if choice == "4":
            persona = Persona(
                name=self.ask("Persona name: ") or DEFAULT_PERSONA.name,
                description=self.ask("Describe their appearance: ") or DEFAULT_PERSONA.description,
                style=self.ask("Describe their speaking style: ") or DEFAULT_PERSONA.style,
                reference_prompt=self.ask("Image generation prompt for their appearance: ")
                or DEFAULT_PERSONA.reference_prompt,
            )
        else:
            persona = PERSONAS.get(choice, DEFAULT_PERSONA)
        self.ok(f"Selected persona: [magenta]{escape(persona.name)}[/magenta]")
        return persona

    def setup_daily_fortune(self) -> Optional[DailySchedule]:
        self.step(4, "Configure daily fortune delivery...")
        if self.ask("\nEnable daily tarot fortune? (Y/n): ").lower() == "n":
            self.info("Daily fortune disabled. You can enable it later.")
            return None
        hour = parse_clock_field(self.ask("Hour (0-23) [8]: "), 8, 23)
        minute = parse_clock_field(self.ask("Minute (0-59) [0]: "), 0, 59)
        channel = self.ask("Delivery channel (e.g. #general, @username): ") or None
        schedule = DailySchedule(hour=hour, minute=minute, channel=channel)
        self.ok(f"Daily fortune at [bold]{schedule.time_label}[/bold]")
        return schedule

    def summary(self, persona: Persona, schedule: Optional[DailySchedule]) -> None:
        self.step(8, "Installation complete!")
        cron = (
            f"{schedule.cron} → {schedule.channel or 'default channel'}"
            if schedule else "Disabled (enable with openclaw config)"
        )
        self.console.rule("[bold]🔮 ClavTarot is ready! The cards await...[/bold]", style="green")
        self.console.print(f"[cyan]Persona:[/cyan]    [magenta]{escape(persona.name)}[/magenta]")
        self.console.print(f"[cyan]Skill:[/cyan]      {self.paths.skill_dest}/")
        self.console.print(f"[cyan]Config:[/cyan]     {self.paths.config}")
        self.console.print(f"[cyan]Daily Cron:[/cyan] {escape(cron)}")
        self.console.print("\n[yellow]Try saying to your agent:[/yellow]")
        for line in (
            "Draw me a tarot card",
            "Do a three card reading about my love life",
            "Give me a Celtic Cross reading about my career",
            "Pull a card for daily guidance",
        ):
            self.console.print(f'  "{line}"')
        self.console.print("\n[dim]The stars have aligned. Your tarot reader awaits...[/dim]")

    def run(self) -> int:
        """Run all steps; returns a process exit code."""
        self.console.print("[magenta]🔮 ClavTarot[/magenta] — AI Tarot Reader for OpenClaw\n")
        prereq = self.check_prerequisites()
        if prereq is False:
            return 1
        if prereq == "already_installed" and not self.confirm_reinstall():
            return 0

        key = self.get_api_key()
        if not key:
            return 1
        persona = self.choose_persona()
        schedule = self.setup_daily_fortune()

        self.step(5, "Installing skill files...")
        for f in install_skill(self.paths, persona):
            self.info(f"  {f}")
        self.ok(f"Skill installed to: {self.paths.skill_dest}")

        self.step(6, "Updating OpenClaw configuration...")
        update_host_config(self.paths, key, schedule)
        self.ok(f"Updated: {self.paths.config}")

        self.step(7, "Enchanting agent with tarot reader persona...")
        overwrite = True
        if self.paths.soul.exists() and SECTION_HEADER in self.paths.soul.read_text(encoding="utf-8"):
            self.warn("Tarot persona already exists in SOUL.md")
            overwrite = self.ask("Update persona section? (y/N): ").lower() == "y"
        if inject_persona(self.paths, persona, overwrite=overwrite):
            self.ok(f"Updated: {self.paths.soul}")
            self.ok(f"Created: {self.paths.identity}")
        else:
            self.info("Keeping existing persona")

        self.summary(persona, schedule)
        return 0
