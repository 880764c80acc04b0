"""Tests for Gemini reply parsing and the classifier wrapper."""

import asyncio
import base64
from types import SimpleNamespace

import pytest

from paintq.classifier import (
    UNKNOWN_GUESS,
    ClassificationError,
    GeminiClassifier,
    UnconfiguredClassifier,
    build_classifier,
    parse_guess,
    strip_data_url,
)

PNG = base64.b64encode(b"\x89PNG\r\n\x1a\n fake image bytes").decode()


class FakeModels:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.requests = []

    async def generate_content(self, model, contents):
        self.requests.append({"model": model, "contents": contents})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.reply)


def _classifier(models):
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiClassifier(api_key="unused", model="test-model", client=client)


def test_parse_guess_reads_json_reply():
    assert parse_guess('```json\n{"aiGuess": "고양이"}\n```') == "고양이"


def test_parse_guess_falls_back_to_first_line():
    assert parse_guess("사과\n설명: 빨간 과일") == "사과"


def test_parse_guess_filters_uncertain_answers():
    assert parse_guess('{"aiGuess": "알 수 없음"}') == UNKNOWN_GUESS
    assert parse_guess("Unclear drawing") == UNKNOWN_GUESS
    assert parse_guess("??") == UNKNOWN_GUESS
    assert parse_guess("") == UNKNOWN_GUESS
    assert parse_guess('{"aiGuess": ') == UNKNOWN_GUESS


def test_strip_data_url():
    assert strip_data_url("data:image/png;base64,QUJD") == "QUJD"
    assert strip_data_url("QUJD") == "QUJD"


def test_classify_judges_guess_locally():
    models = FakeModels(reply='{"aiGuess": "apple"}')
    verdict = asyncio.run(_classifier(models).classify("data:image/png;base64," + PNG, "사과"))

    assert verdict.guess_text == "apple"
    assert verdict.is_match is True
    assert models.requests[0]["model"] == "test-model"
    assert len(models.requests[0]["contents"]) == 2


def test_classify_wrong_guess_is_not_a_match():
    models = FakeModels(reply='{"aiGuess": "나무집"}')
    verdict = asyncio.run(_classifier(models).classify(PNG, "나무"))
    assert verdict.is_match is False


def test_unknown_guess_never_matches():
    models = FakeModels(reply='{"aiGuess": "모르겠어요"}')
    verdict = asyncio.run(_classifier(models).classify(PNG, "unknown"))
    assert verdict.guess_text == UNKNOWN_GUESS
    assert verdict.is_match is False


def test_api_errors_become_classification_errors():
    models = FakeModels(error=RuntimeError("429 quota exceeded"))
    with pytest.raises(ClassificationError):
        asyncio.run(_classifier(models).classify(PNG, "사과"))


def test_empty_reply_is_an_error():
    models = FakeModels(reply="   ")
    with pytest.raises(ClassificationError):
        asyncio.run(_classifier(models).classify(PNG, "사과"))


def test_invalid_image_is_rejected_before_calling_gemini():
    models = FakeModels(reply='{"aiGuess": "사과"}')
    with pytest.raises(ClassificationError):
        asyncio.run(_classifier(models).classify("not base64!!", "사과"))
    assert models.requests == []


def test_missing_api_key_gives_failing_classifier():
    classifier = build_classifier(None)
    assert isinstance(classifier, UnconfiguredClassifier)
    with pytest.raises(ClassificationError):
        asyncio.run(classifier.classify(PNG, "사과"))
