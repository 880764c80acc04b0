"""Unit tests for the synchronous round state machine."""

import random

import pytest

from paintq.rounds import (
    MIN_SNAPSHOT_LENGTH,
    NO_ANSWER,
    EmptyTopicError,
    EndReason,
    Phase,
    RoundStateMachine,
    TransitionError,
)

IMAGE = "data:image/png;base64," + "A" * MIN_SNAPSHOT_LENGTH


def _drawing_machine(prompts=("사과", "별"), deadline=20):
    machine = RoundStateMachine.from_prompts(list(prompts), deadline_seconds=deadline)
    machine.acknowledge()
    machine.update_canvas(IMAGE)
    return machine


def test_empty_topic_cannot_start():
    with pytest.raises(EmptyTopicError):
        RoundStateMachine.from_prompts([])


def test_acknowledge_starts_countdown():
    machine = RoundStateMachine.from_prompts(["사과"], clock=lambda: 42.0)
    assert machine.phase is Phase.PROMPTING
    current = machine.acknowledge()
    assert machine.phase is Phase.DRAWING
    assert machine.remaining == 20
    assert current.started_at == 42.0

    with pytest.raises(TransitionError):
        machine.acknowledge()


def test_canvas_is_ignored_outside_drawing():
    machine = RoundStateMachine.from_prompts(["사과"])
    assert machine.update_canvas(IMAGE) is False
    assert machine.canvas is None


def test_blank_canvas_is_not_sampled():
    machine = RoundStateMachine.from_prompts(["사과"])
    machine.acknowledge()
    assert machine.begin_classification() is None
    machine.update_canvas("data:image/png;base64,AAAA")
    assert machine.begin_classification() is None


def test_only_one_request_in_flight():
    machine = _drawing_machine()
    first = machine.begin_classification()
    assert first is not None
    assert machine.begin_classification() is None

    machine.resolve_classification(first, "고양이")
    second = machine.begin_classification()
    assert second is not None
    assert second.token > first.token


def test_match_ends_round():
    machine = _drawing_machine()
    ticket = machine.begin_classification()
    result = machine.resolve_classification(ticket, "Apple")

    assert result is not None
    assert result.is_correct is True
    assert result.ended_by is EndReason.MATCH
    assert result.final_guess_text == "Apple"
    assert result.final_image == IMAGE
    assert machine.phase is Phase.TERMINAL
    assert machine.tick() is None


def test_wrong_guess_keeps_drawing_and_updates_history():
    machine = _drawing_machine()
    for guess in ("고양이", "강아지", "고양이"):
        ticket = machine.begin_classification()
        assert machine.resolve_classification(ticket, guess) is None
    assert machine.phase is Phase.DRAWING
    assert machine.last_sample.guess_text == "고양이"
    assert machine.guess_history == ["강아지", "고양이"]


def test_timeout_records_last_guess():
    machine = _drawing_machine()
    ticket = machine.begin_classification()
    machine.resolve_classification(ticket, "고양이")
    result = machine.tick(20)

    assert result.ended_by is EndReason.TIMEOUT
    assert result.is_correct is False
    assert result.final_guess_text == "고양이"


def test_timeout_without_guess_uses_fallback():
    machine = _drawing_machine()
    result = None
    for _ in range(20):
        result = machine.tick()
    assert result.final_guess_text == NO_ANSWER
    assert result.ended_by is EndReason.TIMEOUT


def test_timeout_wins_over_correct_guess_in_flight():
    machine = _drawing_machine()
    ticket = machine.begin_classification()
    result = machine.tick(20)

    assert machine.resolve_classification(ticket, "사과") is None
    assert result.is_correct is False
    assert result.ended_by is EndReason.TIMEOUT
    assert len(machine.results) == 1


def test_failed_request_frees_the_slot():
    machine = _drawing_machine()
    ticket = machine.begin_classification()
    machine.fail_classification(ticket)
    assert machine.phase is Phase.DRAWING
    assert machine.last_sample is None
    assert machine.begin_classification() is not None


def test_stale_response_does_not_touch_next_round():
    machine = _drawing_machine()
    stale = machine.begin_classification()
    machine.skip()
    machine.advance()
    machine.acknowledge()
    machine.update_canvas(IMAGE)

    assert machine.resolve_classification(stale, "사과") is None
    machine.fail_classification(stale)
    assert machine.phase is Phase.DRAWING
    assert machine.index == 1
    assert machine.last_sample is None
    assert len(machine.results) == 1
    assert machine.begin_classification() is not None


def test_skip_rejected_after_known_wrong_guess():
    machine = _drawing_machine()
    ticket = machine.begin_classification()
    machine.resolve_classification(ticket, "고양이")

    assert machine.can_skip is False
    with pytest.raises(TransitionError):
        machine.skip()


def test_skip_accepted_without_wrong_guess():
    machine = _drawing_machine()
    assert machine.can_skip is True
    result = machine.skip()
    assert result.ended_by is EndReason.SKIPPED
    assert result.is_correct is False

    with pytest.raises(TransitionError):
        machine.skip()


def test_abandon_ignores_later_events():
    machine = _drawing_machine()
    ticket = machine.begin_classification()
    machine.abandon()

    assert machine.resolve_classification(ticket, "사과") is None
    assert machine.tick(20) is None
    assert machine.results == []
    with pytest.raises(TransitionError):
        machine.advance()


def test_two_round_session_scores_in_order():
    machine = _drawing_machine(("사과", "별"))
    machine.tick()
    machine.tick()
    ticket = machine.begin_classification()
    machine.tick()
    first = machine.resolve_classification(ticket, "사과")
    assert first.round_index == 0
    assert first.is_correct and first.ended_by is EndReason.MATCH

    assert machine.advance() is Phase.PROMPTING
    assert machine.current_round.prompt == "별"
    machine.acknowledge()
    machine.update_canvas(IMAGE)
    second = None
    for _ in range(20):
        ticket = machine.begin_classification()
        if ticket is not None:
            machine.resolve_classification(ticket, "고양이")
        second = machine.tick() or second
    assert second.round_index == 1
    assert second.is_correct is False and second.ended_by is EndReason.TIMEOUT

    assert machine.advance() is Phase.COMPLETE
    assert [r.round_index for r in machine.results] == [0, 1]
    assert machine.correct_count == 1
    assert machine.score_percentage() == 50


@pytest.mark.parametrize("seed", range(25))
def test_results_stay_ordered_under_shuffled_responses(seed):
    rng = random.Random(seed)
    prompts = ["사과", "별", "해", "달"]
    machine = RoundStateMachine.from_prompts(prompts, deadline_seconds=6)
    issued = []

    for _ in range(5000):
        if machine.phase is Phase.COMPLETE:
            break
        if machine.phase is Phase.PROMPTING:
            machine.acknowledge()
            continue
        if machine.phase is Phase.TERMINAL:
            machine.advance()
            continue

        action = rng.random()
        if action < 0.3:
            machine.update_canvas(IMAGE)
            ticket = machine.begin_classification()
            if ticket is not None:
                issued.append(ticket)
        elif action < 0.6 and issued:
            ticket = issued.pop(rng.randrange(len(issued)))
            guess = rng.choice(prompts + ["고양이", "unknown"])
            if rng.random() < 0.2:
                machine.fail_classification(ticket)
            else:
                machine.resolve_classification(ticket, guess)
        elif action < 0.65 and machine.can_skip:
            machine.skip()
        else:
            machine.tick()

        assert [r.round_index for r in machine.results] == list(range(len(machine.results)))

    assert machine.phase is Phase.COMPLETE
    assert len(machine.results) == len(prompts)
    assert [r.round_index for r in machine.results] == [0, 1, 2, 3]
    assert [r.prompt for r in machine.results] == prompts
