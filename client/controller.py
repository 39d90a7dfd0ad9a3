"""Drives one draw surface (wheel or jackpot) for one participant.

The controller owns the sequence: check the toggle and eligibility, ask the
server for the outcome, animate towards it, then hand over to the reveal.
Every failure ends as a user-facing ``message`` instead of an exception,
except alignment failures which mean the screen cannot be trusted.
"""
import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone

from client.api import DrawApiClient, Eligibility
from client.clock import AnimationClock, LoopClock
from client.config import ClientSettings
from client.errors import (
    AlignmentError,
    ClientError,
    DrawInProgressError,
    DrawTransactionError,
    IneligibleError,
    NoPrizeAvailableError,
    PrizeUnavailableError,
)
from client.jackpot import JackpotEngine
from client.prizes import DrawResult, DrawType, PrizeBase, with_server_snapshot
from client.reveal import PrizeRevealPresenter, Reveal
from client.wheel import WheelEngine

log = logging.getLogger(__name__)

LOAD_FAILED = "Could not load the draw. Please try again later."
NO_PRIZES = "No prizes are available right now."
OUT_OF_STOCK = "All prizes are currently claimed. Please try again later."
RETRY = "Something went wrong while drawing. Please try again."
UNAVAILABLE = "That prize just became unavailable. Please try again."
ALIGNMENT = "We could not display your result. Please contact the admin."

# server and device clocks may disagree when matching a recovered spin
RECOVERY_SKEW = timedelta(minutes=2)


def cooldown_message(days: int) -> str:
    unit = "day" if days == 1 else "days"
    return f"You can draw again in {days} {unit}."


class DrawController:
    def __init__(
        self,
        api: DrawApiClient,
        draw_type: DrawType | str,
        *,
        presenter: PrizeRevealPresenter | None = None,
        settings: ClientSettings | None = None,
        clock: AnimationClock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.api = api
        self.draw_type = DrawType(draw_type)
        self.presenter = presenter or PrizeRevealPresenter()
        self.settings = settings or ClientSettings()
        self.clock = clock
        self.rng = rng
        self.enabled = False
        self.eligible = False
        self.days_remaining: int | None = None
        self.prizes: list[PrizeBase] = []
        self.message: str | None = None
        self.engine: WheelEngine | JackpotEngine | None = None
        self.loaded = False
        self._drawing = False
        self._pending: asyncio.Future | None = None

    @property
    def offered(self) -> bool:
        return self.enabled and bool(self.prizes)

    @property
    def busy(self) -> bool:
        return self._drawing

    @property
    def can_draw(self) -> bool:
        return self.offered and self.eligible and not self._drawing

    def _apply(self, eligibility: Eligibility) -> None:
        self.enabled = eligibility.enabled
        self.eligible = eligibility.eligible
        if eligibility.eligible or not eligibility.enabled:
            self.days_remaining = None
        else:
            self.days_remaining = eligibility.days_remaining
            self.message = cooldown_message(eligibility.days_remaining)

    async def load(self) -> None:
        self.message = None
        try:
            self.enabled = await self.api.get_feature_toggle(self.draw_type)
            if not self.enabled:
                self.eligible = False
                self.prizes = []
                return
            self._apply(await self.api.check_eligibility(self.draw_type))
            self.prizes = await self.api.list_active_prizes(self.draw_type)
            if not self.prizes:
                self.message = NO_PRIZES
        except ClientError as exc:
            log.warning("Loading the %s draw failed: %s", self.draw_type.value, exc)
            self.enabled = False
            self.eligible = False
            self.message = LOAD_FAILED
        finally:
            self.loaded = True

    def _build_engine(self, future: asyncio.Future) -> WheelEngine | JackpotEngine:
        def complete(prize: PrizeBase) -> None:
            if not future.done():
                future.set_result(prize)

        def fail(exc: Exception) -> None:
            if not future.done():
                future.set_exception(exc)

        clock = self.clock or LoopClock()
        cfg = self.settings
        if self.draw_type == DrawType.wheel:
            return WheelEngine(
                self.prizes,
                complete,
                clock=clock,
                rng=self.rng,
                spin_seconds=cfg.wheel_spin_seconds,
                start_delay=cfg.wheel_start_delay,
                min_turns=cfg.wheel_min_turns,
                max_turns=cfg.wheel_max_turns,
            )
        return JackpotEngine(
            self.prizes,
            complete,
            clock=clock,
            rng=self.rng,
            on_error=fail,
            spin_seconds=cfg.jackpot_spin_seconds,
            settle_seconds=cfg.jackpot_settle_seconds,
            frame_seconds=cfg.jackpot_frame_seconds,
        )

    async def _recover(self, requested_at: datetime) -> DrawResult | None:
        """Find out whether a failed draw request was recorded anyway."""
        try:
            eligibility = await self.api.check_eligibility(self.draw_type)
        except ClientError as exc:
            log.warning("Eligibility re-check after a failed draw failed: %s", exc)
            return None
        self._apply(eligibility)
        if eligibility.eligible:
            return None
        try:
            last = await self.api.get_last_spin(self.draw_type)
        except ClientError as exc:
            log.warning("Loading the last spin failed: %s", exc)
            return None
        if last is None or last.drawn_at < requested_at - RECOVERY_SKEW:
            return None
        log.info("Recovered spin %s after a failed draw request", last.spin_id)
        return last

    async def draw(self) -> Reveal | None:
        if self._drawing:
            raise DrawInProgressError("A draw is already in progress")
        if not self.prizes:
            self.message = NO_PRIZES
            return None
        self._drawing = True
        self.message = None
        try:
            return await self._draw()
        finally:
            self._drawing = False
            self._pending = None

    async def _draw(self) -> Reveal | None:
        try:
            eligibility = await self.api.check_eligibility(self.draw_type)
        except ClientError as exc:
            log.warning("Eligibility check failed: %s", exc)
            self.message = RETRY
            return None
        self._apply(eligibility)
        if not eligibility.eligible:
            return None

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending = future
        engine = self._build_engine(future)
        self.engine = engine
        engine.begin_request()

        requested_at = datetime.now(timezone.utc)
        try:
            result = await self.api.execute_draw(self.draw_type)
        except IneligibleError as exc:
            engine.abort_request()
            self.eligible = False
            if exc.reason == "disabled":
                self.enabled = False
                self.days_remaining = None
            else:
                self.days_remaining = exc.days_remaining
                self.message = cooldown_message(exc.days_remaining)
            return None
        except NoPrizeAvailableError:
            engine.abort_request()
            self.message = OUT_OF_STOCK
            return None
        except DrawTransactionError as exc:
            engine.abort_request()
            log.warning("Draw request failed: %s", exc)
            result = await self._recover(requested_at)
            if result is None:
                self.message = RETRY
                return None
            if future.done():
                return None
            engine.begin_request()

        self.eligible = False
        if future.done():
            # closed while the request was in flight
            engine.abort_request()
            return None
        try:
            engine.start_spin(result.prize_id)
        except AlignmentError:
            self.message = ALIGNMENT
            raise

        try:
            shown = await future
        except PrizeUnavailableError:
            self.message = UNAVAILABLE
            return None
        if shown is None:
            return None

        await asyncio.sleep(self.settings.handoff_seconds)
        return self.presenter.show(with_server_snapshot(shown, result))

    def withdraw_prize(self, prize_id: str) -> None:
        self.prizes = [p for p in self.prizes if p.id != prize_id]
        if isinstance(self.engine, JackpotEngine):
            self.engine.withdraw_prize(prize_id)

    def close(self) -> None:
        if self.engine is not None:
            self.engine.unmount()
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(None)
