"""Asyncio driver that runs a RoundStateMachine against real timers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Set

from .classifier import ClassificationError, Classifier
from .rounds import (
    RESULT_DISPLAY_DELAY,
    SAMPLE_INTERVAL,
    ClassificationTicket,
    Phase,
    RoundResult,
    RoundStateMachine,
)

logger = logging.getLogger(__name__)

PERSIST_ATTEMPTS = 3

ResultHook = Callable[[RoundResult], Awaitable[None]]


@dataclass
class RoundTiming:
    """Timer settings; intervals are expressed in countdown units."""

    time_unit: float = 1.0
    sample_interval: float = SAMPLE_INTERVAL
    display_delay: float = RESULT_DISPLAY_DELAY
    request_timeout: float = 10.0


class GameSession:
    """Drives one player's rounds: countdown, canvas sampling and hand-off.

    All mutation happens on the event loop thread. Both timers are cancelled
    on every terminal transition and on ``close()``.
    """

    def __init__(
        self,
        machine: RoundStateMachine,
        classifier: Classifier,
        timing: Optional[RoundTiming] = None,
        on_result: Optional[ResultHook] = None,
    ) -> None:
        self.machine = machine
        self.classifier = classifier
        self.timing = timing or RoundTiming()
        self.on_result = on_result
        self.completed = asyncio.Event()
        self._countdown: Optional[asyncio.Task] = None
        self._sampler: Optional[asyncio.Task] = None
        self._advance: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._saves: Set[asyncio.Task] = set()

    # ---- player actions ----

    def acknowledge(self) -> None:
        self.machine.acknowledge()
        self._countdown = self._spawn(self._run_countdown())
        self._sampler = self._spawn(self._run_sampler())

    def update_canvas(self, image: str) -> bool:
        return self.machine.update_canvas(image)

    def skip(self) -> RoundResult:
        result = self.machine.skip()
        self._on_terminal(result)
        return result

    def close(self) -> None:
        """Abandon the session; pending timers and requests are dropped."""

        self.machine.abandon()
        for task in list(self._tasks):
            self._cancel(task)

    async def wait_complete(self) -> None:
        await self.completed.wait()

    @property
    def timers_running(self) -> bool:
        return any(
            task is not None and not task.done()
            for task in (self._countdown, self._sampler)
        )

    # ---- loops ----

    async def _run_countdown(self) -> None:
        while self.machine.phase is Phase.DRAWING:
            await asyncio.sleep(self.timing.time_unit)
            result = self.machine.tick()
            if result is not None:
                self._on_terminal(result)
                return

    async def _run_sampler(self) -> None:
        interval = self.timing.sample_interval * self.timing.time_unit
        while self.machine.phase is Phase.DRAWING:
            await asyncio.sleep(interval)
            ticket = self.machine.begin_classification()
            if ticket is not None:
                self._spawn(self._classify(ticket))

    async def _classify(self, ticket: ClassificationTicket) -> None:
        try:
            outcome = await asyncio.wait_for(
                self.classifier.classify(ticket.image, ticket.prompt),
                timeout=self.timing.request_timeout,
            )
        except (ClassificationError, asyncio.TimeoutError) as exc:
            logger.warning("Classification for round %d failed: %s", ticket.round_index, exc)
            self.machine.fail_classification(ticket)
            return
        except Exception:
            logger.exception("Classifier raised unexpectedly in round %d", ticket.round_index)
            self.machine.fail_classification(ticket)
            return

        result = self.machine.resolve_classification(ticket, outcome.guess_text)
        if result is not None:
            self._on_terminal(result)

    async def _advance_after_delay(self) -> None:
        await asyncio.sleep(self.timing.display_delay * self.timing.time_unit)
        if self.machine.phase is not Phase.TERMINAL:
            return
        if self.machine.advance() is Phase.COMPLETE:
            logger.info(
                "Session complete: %d/%d correct",
                self.machine.correct_count,
                self.machine.total_rounds,
            )
            self.completed.set()

    async def _persist(self, result: RoundResult) -> None:
        if self.on_result is None:
            return
        for attempt in range(1, PERSIST_ATTEMPTS + 1):
            try:
                await self.on_result(result)
                return
            except Exception:
                logger.exception(
                    "Saving round %d failed (attempt %d/%d)",
                    result.round_index,
                    attempt,
                    PERSIST_ATTEMPTS,
                )
                await asyncio.sleep(0.1 * attempt * self.timing.time_unit)

    # ---- helpers ----

    def _on_terminal(self, result: RoundResult) -> None:
        logger.info(
            "Round %d (%s) ended by %s, guess=%r",
            result.round_index,
            result.prompt,
            result.ended_by.value,
            result.final_guess_text,
        )
        self._cancel(self._countdown)
        self._cancel(self._sampler)
        # Saves outlive close() so a finished round is still recorded.
        save = asyncio.ensure_future(self._persist(result))
        self._saves.add(save)
        save.add_done_callback(self._saves.discard)
        self._advance = self._spawn(self._advance_after_delay())

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    def _cancel(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            return
        task.cancel()
