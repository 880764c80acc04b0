"""Gemini-backed guessing of what a canvas drawing shows."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from google import genai
from google.genai import types as genai_types

from .matcher import matches

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-lite"
UNKNOWN_GUESS = "unknown"
UNCERTAIN_MARKERS = ("알 수 없", "모르겠", "불확실", "unknown", "unclear", "cannot")

GUESS_PROMPT = """
이 그림이 무엇인지 맞춰보세요.

1. 손으로 그린 간단한 그림입니다. 대략적인 형태를 보고 추측하세요.
2. 한 단어로만 답하세요. (예: 고양이, 사과, 자동차, 별, 해)

응답 형식:
{
  "aiGuess": "추측한 단어"
}
"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ClassificationError(RuntimeError):
    """Raised when the model could not produce a guess."""


@dataclass(frozen=True)
class Classification:
    guess_text: str
    is_match: bool


class Classifier(Protocol):
    async def classify(self, image_base64: str, answer: str) -> Classification:
        ...


def strip_data_url(image: str) -> str:
    """Drop a ``data:image/png;base64,`` prefix if the browser sent one."""

    return image.split(",", 1)[1] if "," in image else image


def parse_guess(text: str) -> str:
    """Extract the single-word guess from a model reply."""

    guess = ""
    found = _JSON_OBJECT.search(text)
    if found:
        try:
            parsed = json.loads(found.group(0))
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            guess = str(parsed.get("aiGuess") or "")
    if not guess:
        lines = text.strip().splitlines()
        guess = lines[0] if lines else ""
    guess = guess.strip().strip("\"'")

    lowered = guess.lower()
    if not guess or guess in ("?", "??") or guess.startswith("{"):
        return UNKNOWN_GUESS
    if any(marker in lowered for marker in UNCERTAIN_MARKERS):
        return UNKNOWN_GUESS
    return guess


def judge(guess: str, answer: str) -> Classification:
    if guess == UNKNOWN_GUESS:
        return Classification(guess_text=UNKNOWN_GUESS, is_match=False)
    return Classification(guess_text=guess, is_match=matches(guess, answer))


class GeminiClassifier:
    """Ask a Gemini vision model to name the drawing, then judge it locally."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        self._client = client if client is not None else genai.Client(api_key=api_key)

    async def classify(self, image_base64: str, answer: str) -> Classification:
        try:
            image_bytes = base64.b64decode(strip_data_url(image_base64), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ClassificationError("Image is not valid base64 data") from exc

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=[
                    GUESS_PROMPT,
                    genai_types.Part.from_bytes(data=image_bytes, mime_type="image/png"),
                ],
            )
        except Exception as exc:
            raise ClassificationError(f"Gemini request failed: {exc}") from exc

        text = getattr(response, "text", None) or ""
        if not text.strip():
            raise ClassificationError("Gemini returned an empty response")

        verdict = judge(parse_guess(text), answer)
        logger.debug("Guess %r for %r (match=%s)", verdict.guess_text, answer, verdict.is_match)
        return verdict


class UnconfiguredClassifier:
    """Stand-in used when no API key is configured; every request fails."""

    async def classify(self, image_base64: str, answer: str) -> Classification:
        raise ClassificationError("GEMINI_API_KEY is not configured")


def build_classifier(api_key: Optional[str], model: str = DEFAULT_MODEL) -> Classifier:
    if not api_key:
        logger.warning("GEMINI_API_KEY is not set; drawings will not be classified")
        return UnconfiguredClassifier()
    return GeminiClassifier(api_key=api_key, model=model)
