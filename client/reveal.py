from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from client.prizes import PrizeBase

CONSOLATION_TITLE = "Better Luck Next Time!"
WIN_TITLE = "Congratulations!"
CLAIM_INSTRUCTION = "Your prize has been recorded. Please contact the admin to claim it."
CONSOLATION_GLYPH = "🎲"
WIN_GLYPH = "🎉"

env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True, slots=True)
class Reveal:
    prize_id: str
    title: str
    name: str
    description: str | None
    glyph: str
    claim_instruction: str | None
    is_consolation: bool


class PrizeRevealPresenter:
    """Shows the won prize. Works the same for the wheel and the jackpot."""

    def __init__(self, on_show: Callable[[Reveal], None] | None = None) -> None:
        self.current: Reveal | None = None
        self._on_show = on_show

    def build(self, prize: PrizeBase) -> Reveal:
        consolation = prize.is_consolation
        return Reveal(
            prize_id=prize.id,
            title=CONSOLATION_TITLE if consolation else WIN_TITLE,
            name=prize.name,
            description=prize.description or None,
            glyph=prize.symbol or (CONSOLATION_GLYPH if consolation else WIN_GLYPH),
            claim_instruction=None if consolation else CLAIM_INSTRUCTION,
            is_consolation=consolation,
        )

    def show(self, prize: PrizeBase) -> Reveal:
        reveal = self.build(prize)
        self.current = reveal
        if self._on_show is not None:
            self._on_show(reveal)
        return reveal

    def dismiss(self) -> None:
        self.current = None

    def render(self, reveal: Reveal | None = None) -> str:
        reveal = reveal or self.current
        if reveal is None:
            return ""
        return env.get_template("reveal.html").render(reveal=reveal)
