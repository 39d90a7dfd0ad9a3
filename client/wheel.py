"""Wheel of gifts: segment geometry, SVG rendering and the spin engine.

Angles use the SVG convention: degrees, 0 points right and positive angles
turn clockwise. The first segment starts at -90 (top) and the pointer is
fixed at 270 (also the top). A rotation ``r`` moves the wheel-local angle
``a`` to ``a + r``.
"""
import logging
import math
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from client.clock import AnimationClock, TimerGroup
from client.errors import AlignmentError, DrawInProgressError
from client.prizes import WheelPrize

log = logging.getLogger(__name__)

POINTER_ANGLE = 270.0
START_ANGLE = -90.0

CENTER_X = 250.0
CENTER_Y = 250.0
RADIUS = 200.0
LABEL_RADIUS = RADIUS * 0.7

DEFAULT_COLORS = (
    "#00ff88",
    "#00d4ff",
    "#8b5cf6",
    "#ec4899",
    "#f59e0b",
    "#10b981",
    "#3b82f6",
    "#ef4444",
)

env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html", "svg"]),
)


def segment_angle(count: int) -> float:
    if count <= 0:
        raise ValueError("A wheel needs at least one segment")
    return 360.0 / count


def normalize_angle(angle: float) -> float:
    return angle % 360.0


def segment_center_angle(index: int, count: int) -> float:
    size = segment_angle(count)
    return normalize_angle(START_ANGLE + index * size + size / 2)


def target_angle(index: int, count: int) -> float:
    """Rotation (mod 360) that brings the centre of ``index`` under the pointer."""
    return normalize_angle(POINTER_ANGLE - segment_center_angle(index, count) + 360.0)


def segment_at_pointer(rotation: float, count: int) -> int:
    size = segment_angle(count)
    local = normalize_angle(POINTER_ANGLE - rotation)
    offset = normalize_angle(local - START_ANGLE)
    return int(offset // size) % count


def final_rotation(index: int, count: int, turns: int) -> float:
    if not isinstance(turns, int) or turns < 0:
        raise ValueError("turns must be a non-negative whole number")
    return turns * 360.0 + target_angle(index, count)


def cubic_bezier(x1: float, y1: float, x2: float, y2: float) -> Callable[[float], float]:
    """CSS-style easing curve through (0, 0) and (1, 1)."""

    def coord(t: float, p1: float, p2: float) -> float:
        u = 1 - t
        return 3 * u * u * t * p1 + 3 * u * t * t * p2 + t * t * t

    def ease(progress: float) -> float:
        if progress <= 0:
            return 0.0
        if progress >= 1:
            return 1.0
        lo, hi = 0.0, 1.0
        for _ in range(40):
            mid = (lo + hi) / 2
            if coord(mid, x1, x2) < progress:
                lo = mid
            else:
                hi = mid
        return coord((lo + hi) / 2, y1, y2)

    return ease


spin_easing = cubic_bezier(0.17, 0.67, 0.12, 0.99)


@dataclass(frozen=True, slots=True)
class WheelSegment:
    index: int
    prize: WheelPrize
    start_angle: float
    end_angle: float
    color: str
    path: str
    label_x: float
    label_y: float
    label_rotation: float


def _point(angle: float, radius: float) -> tuple[float, float]:
    rad = math.radians(angle)
    return (
        round(CENTER_X + radius * math.cos(rad), 3),
        round(CENTER_Y + radius * math.sin(rad), 3),
    )


def build_segments(prizes: Sequence[WheelPrize]) -> list[WheelSegment]:
    size = segment_angle(len(prizes))
    segments = []
    for index, prize in enumerate(prizes):
        start = START_ANGLE + index * size
        end = start + size
        x1, y1 = _point(start, RADIUS)
        x2, y2 = _point(end, RADIUS)
        large_arc = 1 if size > 180 else 0
        if len(prizes) == 1:
            # one arc cannot close on itself, so draw two halves
            xm, ym = _point(start + 180, RADIUS)
            path = (
                f"M {x1} {y1} A {RADIUS} {RADIUS} 0 1 1 {xm} {ym} "
                f"A {RADIUS} {RADIUS} 0 1 1 {x1} {y1} Z"
            )
        else:
            path = (
                f"M {CENTER_X} {CENTER_Y} L {x1} {y1} "
                f"A {RADIUS} {RADIUS} 0 {large_arc} 1 {x2} {y2} Z"
            )
        label_x, label_y = _point(start + size / 2, LABEL_RADIUS)
        segments.append(
            WheelSegment(
                index=index,
                prize=prize,
                start_angle=start,
                end_angle=end,
                color=prize.color or DEFAULT_COLORS[index % len(DEFAULT_COLORS)],
                path=path,
                label_x=label_x,
                label_y=label_y,
                label_rotation=index * size + size / 2,
            )
        )
    return segments


def render_wheel_svg(prizes: Sequence[WheelPrize], rotation: float = 0.0) -> str:
    template = env.get_template("wheel.svg")
    return template.render(
        segments=build_segments(prizes),
        rotation=round(rotation, 3),
        center_x=CENTER_X,
        center_y=CENTER_Y,
    )


class WheelState(str, Enum):
    idle = "idle"
    requesting_prize = "requesting_prize"
    spinning = "spinning"
    settled = "settled"


class WheelEngine:
    def __init__(
        self,
        prizes: Sequence[WheelPrize],
        on_complete: Callable[[WheelPrize], None],
        *,
        clock: AnimationClock,
        rng: random.Random | None = None,
        spin_seconds: float = 5.0,
        start_delay: float = 0.1,
        min_turns: int = 4,
        max_turns: int = 6,
    ) -> None:
        if not prizes:
            raise ValueError("The wheel needs at least one prize")
        if min_turns > max_turns:
            raise ValueError("min_turns must not exceed max_turns")
        self.prizes = tuple(prizes)
        self.clock = clock
        self.rng = rng or random.Random()
        self.spin_seconds = spin_seconds
        self.start_delay = start_delay
        self.min_turns = min_turns
        self.max_turns = max_turns
        self._on_complete = on_complete
        self._timers = TimerGroup(clock)
        self._mounted = True
        self._reset_state()

    def _reset_state(self) -> None:
        self.state = WheelState.idle
        self.rotation = 0.0
        self.winner: WheelPrize | None = None
        self.winning_index: int | None = None
        self.final_rotation: float | None = None
        self._spin_starts_at: float | None = None
        self._completed = False

    @property
    def is_busy(self) -> bool:
        return self.state in (WheelState.requesting_prize, WheelState.spinning)

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def index_of(self, prize_id: str) -> int:
        for index, prize in enumerate(self.prizes):
            if prize.id == prize_id:
                return index
        raise AlignmentError(f"Prize {prize_id} is not on the wheel")

    def begin_request(self) -> None:
        if not self._mounted:
            raise DrawInProgressError("The wheel is no longer on screen")
        if self.is_busy:
            raise DrawInProgressError("A spin is already in progress")
        self._reset_state()
        self.state = WheelState.requesting_prize

    def abort_request(self) -> None:
        if self.state != WheelState.requesting_prize:
            raise DrawInProgressError("Only a pending request can be aborted")
        self.state = WheelState.idle

    def start_spin(self, prize_id: str) -> float | None:
        if not self._mounted:
            # a result that arrives after unmount is dropped
            self.state = WheelState.idle
            return None
        if self.state != WheelState.requesting_prize:
            raise DrawInProgressError("start_spin needs a pending request")
        count = len(self.prizes)
        try:
            index = self.index_of(prize_id)
            turns = self.rng.randint(self.min_turns, self.max_turns)
            final = final_rotation(index, count, turns)
            landed = segment_at_pointer(final, count)
            if landed != index:
                raise AlignmentError(
                    f"Rotation {final:.2f} lands on segment {landed}, expected {index}"
                )
        except AlignmentError:
            log.error("Wheel alignment failed for prize %s", prize_id)
            self.state = WheelState.idle
            raise

        self.winner = self.prizes[index]
        self.winning_index = index
        self.final_rotation = final
        self.rotation = 0.0
        self.state = WheelState.spinning
        self._spin_starts_at = self.clock.now() + self.start_delay
        self._timers.call_later(self.start_delay + self.spin_seconds, self._settle)
        log.debug("Wheel spinning to segment %s (%.2f deg, %s turns)", index, final, turns)
        return final

    def rotation_at(self, at: float | None = None) -> float:
        if self.state == WheelState.settled:
            return self.final_rotation
        if self.state != WheelState.spinning:
            return self.rotation
        now = self.clock.now() if at is None else at
        elapsed = now - self._spin_starts_at
        progress = min(max(elapsed / self.spin_seconds, 0.0), 1.0)
        return self.final_rotation * spin_easing(progress)

    def segment_under_pointer(self, at: float | None = None) -> int:
        return segment_at_pointer(self.rotation_at(at), len(self.prizes))

    def _settle(self) -> None:
        # snap to the exact target so easing error never shows a neighbour
        self.rotation = self.final_rotation
        self.state = WheelState.settled
        if self._mounted and not self._completed:
            self._completed = True
            self._on_complete(self.winner)

    def reset(self) -> None:
        if self.is_busy:
            raise DrawInProgressError("Cannot reset while a spin is in progress")
        self._reset_state()

    def unmount(self) -> None:
        self._mounted = False
        self._timers.cancel_all()

    def render(self, at: float | None = None) -> str:
        return render_wheel_svg(self.prizes, self.rotation_at(at))
