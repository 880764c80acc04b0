"""Answer matching between a model guess and the word being drawn."""

from __future__ import annotations

import re
from typing import Dict, FrozenSet, Tuple

_STRIP_PATTERN = re.compile(r"[\s\-_.]")

# Canonical answer -> accepted spellings (transliterations, English, short forms).
SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "자동차": ("자동차", "차", "car"),
    "고양이": ("고양이", "냥이", "cat"),
    "강아지": ("강아지", "개", "멍멍이", "dog", "puppy"),
    "바나나": ("바나나", "banana"),
    "사과": ("사과", "apple"),
    "비행기": ("비행기", "항공기", "airplane", "plane"),
    "기차": ("기차", "열차", "train"),
    "자전거": ("자전거", "bicycle", "bike"),
    "배": ("배", "선박", "ship", "boat"),
    "별": ("별", "star", "스타"),
    "해": ("해", "태양", "sun"),
    "달": ("달", "moon"),
    "구름": ("구름", "cloud"),
    "나무": ("나무", "tree"),
    "꽃": ("꽃", "flower"),
    "집": ("집", "house", "하우스"),
    "사람": ("사람", "person", "human"),
    "동그라미": ("동그라미", "원", "circle"),
    # Brand aliases are listed under every spelling so lookup works both ways.
    "lg": ("lg", "엘지"),
    "엘지": ("엘지", "lg"),
}


def normalize(text: str) -> str:
    """Lowercase ``text`` and drop whitespace, hyphens, underscores and periods."""

    return _STRIP_PATTERN.sub("", text.strip().lower())


# Keys are matched after normalization, so "LG", "Lg" and "L.G" share a row.
_BY_KEY: Dict[str, Tuple[str, ...]] = {normalize(k): v for k, v in SYNONYMS.items()}


def accepted_answers(answer: str) -> FrozenSet[str]:
    """Normalized spellings accepted for ``answer``."""

    spellings = _BY_KEY.get(normalize(answer), (answer,))
    return frozenset(normalize(s) for s in spellings) | {normalize(answer)}


def matches(guess: str, answer: str) -> bool:
    """Return True when ``guess`` names the same thing as ``answer``.

    Only exact (normalized) equality and the synonym table count. A guess that
    merely contains the answer, such as "treehouse" for "tree", is wrong.
    """

    if not guess or not answer:
        return False
    normalized_guess = normalize(guess)
    if not normalized_guess:
        return False
    if normalized_guess == normalize(answer):
        return True
    return normalized_guess in accepted_answers(answer)
