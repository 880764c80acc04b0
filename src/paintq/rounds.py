"""Round sequencing for a PaintQ drawing session.

The machine here is synchronous and free of timers: the session driver feeds
it countdown ticks, canvas snapshots and classification outcomes. Every
classification request carries a token; only the response to the pending
token of the round being drawn may change state, so late responses are
dropped instead of leaking into a later round.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from .matcher import matches

ROUND_SECONDS = 20
SAMPLE_INTERVAL = 0.5
RESULT_DISPLAY_DELAY = 1.0
MIN_SNAPSHOT_LENGTH = 300  # a blank canvas encodes to fewer characters
GUESS_HISTORY_SIZE = 5
NO_ANSWER = "no answer"


class Phase(str, Enum):
    PROMPTING = "prompting"
    DRAWING = "drawing"
    TERMINAL = "terminal"
    COMPLETE = "complete"
    ABANDONED = "abandoned"


class EndReason(str, Enum):
    MATCH = "match"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"


class TransitionError(ValueError):
    """Raised when an action is not allowed in the current phase."""


class EmptyTopicError(ValueError):
    """Raised when a session is started without any words to draw."""


@dataclass
class Round:
    index: int
    prompt: str
    deadline_seconds: int = ROUND_SECONDS
    started_at: Optional[float] = None


@dataclass
class GuessSample:
    raw_image: str
    guess_text: str
    is_match: bool


@dataclass(frozen=True)
class RoundResult:
    round_index: int
    prompt: str
    final_image: str
    final_guess_text: str
    is_correct: bool
    ended_by: EndReason


@dataclass(frozen=True)
class ClassificationTicket:
    """A canvas snapshot handed to the classifier on behalf of one round."""

    token: int
    round_index: int
    image: str
    prompt: str


@dataclass
class RoundStateMachine:
    rounds: List[Round]
    matcher: Callable[[str, str], bool] = matches
    clock: Callable[[], float] = time.time
    phase: Phase = Phase.PROMPTING
    index: int = 0
    remaining: int = 0
    canvas: Optional[str] = None
    last_sample: Optional[GuessSample] = None
    guess_history: List[str] = field(default_factory=list)
    results: List[RoundResult] = field(default_factory=list)

    _token: int = field(default=0, init=False, repr=False)
    _pending: Optional[ClassificationTicket] = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if not self.rounds:
            raise EmptyTopicError("Topic has no words to draw")

    @classmethod
    def from_prompts(
        cls,
        prompts: Sequence[str],
        deadline_seconds: int = ROUND_SECONDS,
        **kwargs,
    ) -> "RoundStateMachine":
        rounds = [
            Round(index=i, prompt=prompt, deadline_seconds=deadline_seconds)
            for i, prompt in enumerate(prompts)
        ]
        return cls(rounds=rounds, **kwargs)

    # ---- read-only views ----

    @property
    def current_round(self) -> Round:
        return self.rounds[min(self.index, len(self.rounds) - 1)]

    @property
    def total_rounds(self) -> int:
        return len(self.rounds)

    @property
    def has_pending_request(self) -> bool:
        return self._pending is not None

    @property
    def last_result(self) -> Optional[RoundResult]:
        return self.results[-1] if self.results else None

    @property
    def can_skip(self) -> bool:
        # Once the classifier has named something wrong the player waits for the clock.
        if self.phase is not Phase.DRAWING:
            return False
        return self.last_sample is None or self.last_sample.is_match

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.results if r.is_correct)

    def score_percentage(self) -> int:
        if not self.rounds:
            return 0
        return round(self.correct_count / len(self.rounds) * 100)

    # ---- player actions ----

    def acknowledge(self) -> Round:
        """Leave the prompt screen and start drawing the current round."""

        if self.phase is not Phase.PROMPTING:
            raise TransitionError(f"Cannot start drawing while {self.phase.value}")
        current = self.current_round
        current.started_at = self.clock()
        self.remaining = current.deadline_seconds
        self.canvas = None
        self.last_sample = None
        self.guess_history = []
        self.phase = Phase.DRAWING
        return current

    def update_canvas(self, image: str) -> bool:
        if self.phase is not Phase.DRAWING:
            return False
        self.canvas = image
        return True

    def skip(self) -> RoundResult:
        if self.phase is not Phase.DRAWING:
            raise TransitionError(f"Cannot skip while {self.phase.value}")
        if not self.can_skip:
            raise TransitionError("The last guess was wrong; wait for the timer")
        guess = self.last_sample.guess_text if self.last_sample else NO_ANSWER
        return self._finish(EndReason.SKIPPED, self.canvas or "", guess, False)

    # ---- timers ----

    def tick(self, units: int = 1) -> Optional[RoundResult]:
        """Advance the countdown; returns the result when time runs out."""

        if self.phase is not Phase.DRAWING:
            return None
        self.remaining = max(0, self.remaining - units)
        if self.remaining > 0:
            return None
        guess = self.last_sample.guess_text if self.last_sample else NO_ANSWER
        return self._finish(EndReason.TIMEOUT, self.canvas or "", guess, False)

    def advance(self) -> Phase:
        """Move on from a resolved round to the next prompt or the summary."""

        if self.phase is not Phase.TERMINAL:
            raise TransitionError(f"Cannot advance while {self.phase.value}")
        if self.index + 1 < len(self.rounds):
            self.index += 1
            self.canvas = None
            self.last_sample = None
            self.guess_history = []
            self.phase = Phase.PROMPTING
        else:
            self.phase = Phase.COMPLETE
        return self.phase

    def abandon(self) -> None:
        self.phase = Phase.ABANDONED
        self._pending = None
        self._token += 1

    # ---- classification ----

    def begin_classification(self) -> Optional[ClassificationTicket]:
        """Freeze the canvas into a ticket unless a request is already out."""

        if self.phase is not Phase.DRAWING or self._pending is not None:
            return None
        if not self.canvas or len(self.canvas) < MIN_SNAPSHOT_LENGTH:
            return None
        self._token += 1
        self._pending = ClassificationTicket(
            token=self._token,
            round_index=self.index,
            image=self.canvas,
            prompt=self.current_round.prompt,
        )
        return self._pending

    def is_current(self, ticket: ClassificationTicket) -> bool:
        return (
            self.phase is Phase.DRAWING
            and self._pending is not None
            and self._pending.token == ticket.token
            and ticket.round_index == self.index
        )

    def resolve_classification(
        self, ticket: ClassificationTicket, guess_text: str
    ) -> Optional[RoundResult]:
        """Apply a classifier answer; stale tickets are ignored."""

        if not self.is_current(ticket):
            return None
        self._pending = None
        is_match = self.matcher(guess_text, ticket.prompt)
        self.last_sample = GuessSample(
            raw_image=ticket.image, guess_text=guess_text, is_match=is_match
        )
        self._remember_guess(guess_text)
        if not is_match:
            return None
        return self._finish(EndReason.MATCH, ticket.image, guess_text, True)

    def fail_classification(self, ticket: ClassificationTicket) -> None:
        if self.is_current(ticket):
            self._pending = None

    # ---- helpers ----

    def _remember_guess(self, guess_text: str) -> None:
        history = [g for g in self.guess_history if g != guess_text]
        history.append(guess_text)
        self.guess_history = history[-GUESS_HISTORY_SIZE:]

    def _finish(
        self, reason: EndReason, image: str, guess: str, correct: bool
    ) -> RoundResult:
        if len(self.results) != self.index:
            raise RuntimeError(
                f"Round {self.index} resolved with {len(self.results)} results recorded"
            )
        result = RoundResult(
            round_index=self.index,
            prompt=self.current_round.prompt,
            final_image=image,
            final_guess_text=guess,
            is_correct=correct,
            ended_by=reason,
        )
        self.results.append(result)
        self.phase = Phase.TERMINAL
        self._pending = None
        self._token += 1
        return result
