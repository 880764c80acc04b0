"""In-memory records for access codes, topics, words, games and drawings.

Everything lives for the lifetime of the process. The number of stored games
is capped; the oldest games (and their drawings) are evicted first.
"""

from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

DEFAULT_ACCESS_CODE = "0000"
MAX_ACCESS_CODE = 9999
MAX_TOPIC_WORDS = 10


class StoreError(Exception):
    """Base class for store failures."""


class NotFoundError(StoreError):
    pass


class ForbiddenError(StoreError):
    pass


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class AccessCode:
    code: str
    id: str = field(default_factory=_new_id)
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    deactivated_at: Optional[datetime] = None


@dataclass
class Word:
    topic_id: str
    word: str
    order: int
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class Topic:
    access_code_id: str
    name: str
    question_count: Optional[int] = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Game:
    access_code_id: str
    topic_id: str
    word_id: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class Drawing:
    game_id: str
    image_data: str
    ai_guess: Optional[str]
    is_correct: Optional[bool]
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)


def clean_words(words: Sequence[str]) -> List[str]:
    return [w.strip() for w in words if w and w.strip()]


class MemoryStore:
    def __init__(self, max_games: int = 5000) -> None:
        self.max_games = max_games
        self._lock = threading.RLock()
        self._codes: Dict[str, AccessCode] = {}
        self._topics: Dict[str, Topic] = {}
        self._words: Dict[str, Word] = {}
        self._games: "OrderedDict[str, Game]" = OrderedDict()
        self._drawings: Dict[str, Drawing] = {}  # keyed by game id

    # ---- access codes ----

    def list_access_codes(self) -> List[AccessCode]:
        with self._lock:
            return list(reversed(list(self._codes.values())))

    def create_access_code(self) -> AccessCode:
        """Allocate the next free 4-digit code, counting up from ``0000``."""

        with self._lock:
            numeric = [int(c) for c in self._codes if c.isdigit() and len(c) == 4]
            next_number = max(numeric) + 1 if numeric else 0
            if next_number > MAX_ACCESS_CODE:
                raise StoreError("No access codes left (limit 9999)")
            code = AccessCode(code=f"{next_number:04d}")
            self._codes[code.code] = code
            return code

    def get_access_code(self, code: str, create_default: bool = True) -> AccessCode:
        with self._lock:
            found = self._codes.get(code)
            if found is None and create_default and code == DEFAULT_ACCESS_CODE:
                found = AccessCode(code=DEFAULT_ACCESS_CODE)
                self._codes[found.code] = found
            if found is None:
                raise NotFoundError("Access code not found")
            return found

    def active_access_code(self, code: str) -> AccessCode:
        found = self.get_access_code(code)
        if not found.is_active:
            raise ForbiddenError("Access code is deactivated")
        return found

    def set_active(self, code: str, is_active: Optional[bool]) -> AccessCode:
        with self._lock:
            found = self.get_access_code(code, create_default=False)
            if is_active is not None:
                found.is_active = is_active
            found.deactivated_at = None if found.is_active else datetime.now()
            return found

    def deactivate(self, code: str) -> AccessCode:
        return self.set_active(code, False)

    def counts(self, access_code: AccessCode) -> Dict[str, int]:
        with self._lock:
            topics = sum(
                1 for t in self._topics.values() if t.access_code_id == access_code.id
            )
            games = sum(
                1 for g in self._games.values() if g.access_code_id == access_code.id
            )
            return {"topics": topics, "games": games}

    # ---- topics ----

    def list_topics(self, code: str) -> List[Topic]:
        access_code = self.active_access_code(code)
        with self._lock:
            return [
                t
                for t in reversed(list(self._topics.values()))
                if t.access_code_id == access_code.id
            ]

    def create_topic(
        self,
        code: str,
        name: str,
        words: Sequence[str],
        question_count: Optional[int] = None,
    ) -> Topic:
        access_code = self.active_access_code(code)
        with self._lock:
            topic = Topic(
                access_code_id=access_code.id,
                name=name.strip(),
                question_count=question_count or None,
            )
            self._topics[topic.id] = topic
            self._replace_words(topic, words)
            return topic

    def get_topic(self, code: str, topic_id: str) -> Topic:
        access_code = self.get_access_code(code)
        with self._lock:
            topic = self._topics.get(topic_id)
            if topic is None:
                raise NotFoundError("Topic not found")
            if topic.access_code_id != access_code.id:
                raise ForbiddenError("Topic belongs to another access code")
            return topic

    def update_topic(
        self,
        code: str,
        topic_id: str,
        name: str,
        words: Sequence[str],
        question_count: Optional[int] = None,
    ) -> Topic:
        with self._lock:
            topic = self.get_topic(code, topic_id)
            topic.name = name.strip()
            topic.question_count = question_count or None
            topic.updated_at = datetime.now()
            self._replace_words(topic, words)
            return topic

    def delete_topic(self, code: str, topic_id: str) -> None:
        with self._lock:
            topic = self.get_topic(code, topic_id)
            for word in self.words_for(topic.id):
                del self._words[word.id]
            for game_id in [g.id for g in self._games.values() if g.topic_id == topic.id]:
                self._drop_game(game_id)
            del self._topics[topic.id]

    def words_for(self, topic_id: str) -> List[Word]:
        with self._lock:
            return sorted(
                (w for w in self._words.values() if w.topic_id == topic_id),
                key=lambda w: w.order,
            )

    def get_word(self, word_id: str) -> Word:
        with self._lock:
            word = self._words.get(word_id)
            if word is None:
                raise NotFoundError("Word not found")
            return word

    # ---- games & drawings ----

    def record_game(
        self,
        code: str,
        topic_id: str,
        word_id: str,
        image_data: str,
        ai_guess: Optional[str],
        is_correct: Optional[bool],
    ) -> Tuple[Game, Drawing]:
        access_code = self.active_access_code(code)
        with self._lock:
            topic = self.get_topic(code, topic_id)
            word = self.get_word(word_id)
            if word.topic_id != topic.id:
                raise NotFoundError("Word not found in this topic")
            game = Game(access_code_id=access_code.id, topic_id=topic.id, word_id=word.id)
            drawing = Drawing(
                game_id=game.id,
                image_data=image_data,
                ai_guess=ai_guess,
                is_correct=is_correct,
            )
            self._games[game.id] = game
            self._drawings[game.id] = drawing
            while len(self._games) > self.max_games:
                oldest = next(iter(self._games))
                self._drop_game(oldest)
            return game, drawing

    def drawings_for_word(
        self,
        code: str,
        word_id: str,
        limit: Optional[int] = 4,
        best: bool = True,
    ) -> Tuple[List[Drawing], int]:
        """Drawings made for ``word_id`` under ``code`` plus the total count.

        ``best`` puts correct drawings first; ties are broken newest first.
        A ``limit`` of None returns every drawing.
        """

        access_code = self.get_access_code(code, create_default=False)
        with self._lock:
            drawings = [
                self._drawings[g.id]
                for g in reversed(list(self._games.values()))
                if g.access_code_id == access_code.id
                and g.word_id == word_id
                and g.id in self._drawings
            ]
        if best:
            drawings.sort(key=lambda d: bool(d.is_correct), reverse=True)
        total = len(drawings)
        if limit is not None:
            drawings = drawings[:limit]
        return drawings, total

    # ---- helpers ----

    def _replace_words(self, topic: Topic, words: Sequence[str]) -> None:
        for word in self.words_for(topic.id):
            del self._words[word.id]
        for order, text in enumerate(clean_words(words), start=1):
            word = Word(topic_id=topic.id, word=text, order=order)
            self._words[word.id] = word

    def _drop_game(self, game_id: str) -> None:
        self._games.pop(game_id, None)
        self._drawings.pop(game_id, None)
