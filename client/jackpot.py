"""Three-reel jackpot machine.

Reels start one after another, cycle random prizes once per frame and lock
onto the server's winner in order 0, 1, 2. The completion callback fires a
short settle delay after the last reel locks.
"""
import logging
import random
from collections.abc import Callable, Sequence
from enum import Enum
from functools import partial

from client.clock import AnimationClock, TimerGroup
from client.errors import AlignmentError, DrawInProgressError, PrizeUnavailableError
from client.prizes import JackpotPrize

log = logging.getLogger(__name__)

REEL_COUNT = 3
# fraction of a reel's running time between consecutive reel starts
REEL_STAGGER = 0.3


class JackpotState(str, Enum):
    idle = "idle"
    requesting_prize = "requesting_prize"
    spinning = "spinning"
    settling = "settling"
    settled = "settled"


class JackpotEngine:
    def __init__(
        self,
        prizes: Sequence[JackpotPrize],
        on_complete: Callable[[JackpotPrize], None],
        *,
        clock: AnimationClock,
        rng: random.Random | None = None,
        on_error: Callable[[Exception], None] | None = None,
        spin_seconds: float = 3.0,
        settle_seconds: float = 0.5,
        frame_seconds: float = 1 / 60,
    ) -> None:
        if not prizes:
            raise ValueError("The jackpot needs at least one prize")
        self.prizes = list(prizes)
        self.clock = clock
        self.rng = rng or random.Random()
        self.spin_seconds = spin_seconds
        self.settle_seconds = settle_seconds
        self.frame_seconds = frame_seconds
        self._on_complete = on_complete
        self._on_error = on_error
        self._timers = TimerGroup(clock)
        self._mounted = True

        self.state = JackpotState.idle
        self.is_animating = False
        self.winner: JackpotPrize | None = None
        self.reels: list[JackpotPrize] = [self.rng.choice(self.prizes) for _ in range(REEL_COUNT)]
        self.locked = [False] * REEL_COUNT
        self.lock_order: list[int] = []
        self._completed = False

    @property
    def slot_seconds(self) -> float:
        return self.spin_seconds / REEL_COUNT

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    @property
    def is_busy(self) -> bool:
        return self.is_animating or self.state == JackpotState.requesting_prize

    def glyphs(self) -> list[str]:
        return [prize.glyph for prize in self.reels]

    def is_winning_line(self) -> bool:
        if self.is_animating:
            return False
        first = self.reels[0].id
        return all(prize.id == first for prize in self.reels)

    def begin_request(self) -> None:
        if not self._mounted:
            raise DrawInProgressError("The jackpot is no longer on screen")
        if self.is_busy:
            raise DrawInProgressError("A spin is already in progress")
        self.state = JackpotState.requesting_prize

    def abort_request(self) -> None:
        if self.state != JackpotState.requesting_prize:
            raise DrawInProgressError("Only a pending request can be aborted")
        self.state = JackpotState.idle

    def start_spin(self, prize_id: str) -> None:
        if not self._mounted:
            self.state = JackpotState.idle
            return
        if self.is_animating:
            raise DrawInProgressError("A spin is already in progress")
        if self.state != JackpotState.requesting_prize:
            raise DrawInProgressError("start_spin needs a pending request")
        winner = next((p for p in self.prizes if p.id == prize_id), None)
        if winner is None:
            self.state = JackpotState.idle
            log.error("Jackpot prize %s is not on the reels", prize_id)
            raise AlignmentError(f"Prize {prize_id} is not on the reels")

        self.winner = winner
        self.is_animating = True
        self.state = JackpotState.spinning
        self.locked = [False] * REEL_COUNT
        self.lock_order = []
        self._completed = False
        for reel in range(REEL_COUNT):
            delay = reel * self.slot_seconds * REEL_STAGGER
            self._timers.call_later(delay, partial(self._start_reel, reel))

    def _start_reel(self, reel: int) -> None:
        self._frame(reel, self.clock.now())

    def _frame(self, reel: int, started_at: float) -> None:
        if not self.is_animating:
            return
        progress = (self.clock.now() - started_at) / self.slot_seconds
        previous_locked = reel == 0 or self.locked[reel - 1]
        if progress < 1 or not previous_locked:
            self.reels[reel] = self.rng.choice(self.prizes)
            self._timers.call_later(self.frame_seconds, partial(self._frame, reel, started_at))
            return

        self.reels[reel] = self.winner
        self.locked[reel] = True
        self.lock_order.append(reel)
        if reel == REEL_COUNT - 1:
            self.state = JackpotState.settling
            self._timers.call_later(self.settle_seconds, self._settle)

    def _settle(self) -> None:
        self.is_animating = False
        self.state = JackpotState.settled
        if self._mounted and not self._completed:
            self._completed = True
            self._on_complete(self.winner)

    def withdraw_prize(self, prize_id: str) -> None:
        """Drop a prize that became unavailable, aborting a spin that lands on it."""
        remaining = [p for p in self.prizes if p.id != prize_id]
        if remaining:
            self.prizes = remaining
        if self.is_animating and self.winner is not None and self.winner.id == prize_id:
            self._fail(PrizeUnavailableError("This prize is no longer available"))

    def _fail(self, exc: Exception) -> None:
        self._timers.cancel_all()
        self.is_animating = False
        self.state = JackpotState.idle
        self.winner = None
        self.locked = [False] * REEL_COUNT
        log.error("Jackpot spin aborted: %s", exc)
        if self._on_error is None:
            raise exc
        if self._mounted:
            self._on_error(exc)

    def unmount(self) -> None:
        self._mounted = False
        self.is_animating = False
        self._timers.cancel_all()
