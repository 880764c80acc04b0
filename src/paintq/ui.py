"""FastAPI application: REST endpoints plus the browser client for PaintQ."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, NoReturn, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .classifier import (
    ClassificationError,
    Classifier,
    build_classifier,
    strip_data_url,
)
from .config import settings
from .rounds import EmptyTopicError, Phase, RoundResult, RoundStateMachine, TransitionError
from .session import GameSession, RoundTiming
from .store import (
    MAX_TOPIC_WORDS,
    AccessCode,
    Drawing,
    ForbiddenError,
    Game,
    MemoryStore,
    NotFoundError,
    StoreError,
    Topic,
    clean_words,
)

logger = logging.getLogger(__name__)

ANALYSIS_FAILED = "analysis failed"
DEFAULT_DRAWING_LIMIT = 4


@dataclass
class PlaySession:
    """A player's game session and the records it is played against."""

    access_code: str
    topic_id: str
    word_ids: List[str]
    game: GameSession
    last_active: float = field(default_factory=lambda: time.time())


STORE = MemoryStore(max_games=settings.MAX_GAMES)
SESSIONS: Dict[str, PlaySession] = {}
CLASSIFIER: Optional[Classifier] = None
ROUND_TIMING = RoundTiming(time_unit=settings.TIME_UNIT)
ROUND_SECONDS = settings.ROUND_SECONDS

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Draw the word before the AI runs out of guesses",
    debug=settings.DEBUG,
)


def _get_classifier() -> Classifier:
    global CLASSIFIER
    if CLASSIFIER is None:
        CLASSIFIER = build_classifier(settings.GEMINI_API_KEY, settings.GEMINI_MODEL)
    return CLASSIFIER


def _raise_for(exc: StoreError) -> NoReturn:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    logger.error("Store failure: %s", exc)
    raise HTTPException(status_code=500, detail=str(exc)) from exc


# ---------- Request models ----------


class AccessCodeUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_active: Optional[bool] = Field(default=None, alias="isActive")


class TopicRequest(BaseModel):
    """Topic name plus its ordered list of words to draw."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    words: List[str] = Field(min_length=1, max_length=MAX_TOPIC_WORDS)
    question_count: Optional[int] = Field(default=None, alias="questionCount", ge=1)

    @field_validator("name")
    @classmethod
    def ensure_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Topic name must not be blank")
        return value

    @field_validator("words")
    @classmethod
    def ensure_words(cls, value: List[str]) -> List[str]:
        if not clean_words(value):
            raise ValueError("At least one word is required")
        return value


class GameRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic_id: str = Field(alias="topicId", min_length=1)
    word_id: str = Field(alias="wordId", min_length=1)
    image_data: str = Field(alias="imageData", min_length=1)
    ai_guess: Optional[str] = Field(default=None, alias="aiGuess")
    is_correct: Optional[bool] = Field(default=None, alias="isCorrect")


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_data: str = Field(alias="imageData", min_length=1)
    correct_answer: str = Field(alias="correctAnswer", min_length=1)


class SessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic_id: str = Field(alias="topicId", min_length=1)


class CanvasRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_data: str = Field(alias="imageData")


# ---------- Serialization ----------


def _serialize_access_code(code: AccessCode) -> Dict[str, object]:
    return {
        "id": code.id,
        "code": code.code,
        "isActive": code.is_active,
        "createdAt": code.created_at.isoformat(),
        "deactivatedAt": code.deactivated_at.isoformat() if code.deactivated_at else None,
        "_count": STORE.counts(code),
    }


def _serialize_topic(topic: Topic) -> Dict[str, object]:
    return {
        "id": topic.id,
        "name": topic.name,
        "questionCount": topic.question_count,
        "createdAt": topic.created_at.isoformat(),
        "updatedAt": topic.updated_at.isoformat(),
        "words": [
            {"id": w.id, "topicId": w.topic_id, "word": w.word, "order": w.order}
            for w in STORE.words_for(topic.id)
        ],
    }


def _serialize_drawing(drawing: Drawing) -> Dict[str, object]:
    return {
        "id": drawing.id,
        "gameId": drawing.game_id,
        "imageData": drawing.image_data,
        "aiGuess": drawing.ai_guess,
        "isCorrect": drawing.is_correct,
        "createdAt": drawing.created_at.isoformat(),
    }


def _serialize_game(game: Game, drawing: Drawing) -> Dict[str, object]:
    return {
        "id": game.id,
        "topicId": game.topic_id,
        "wordId": game.word_id,
        "createdAt": game.created_at.isoformat(),
        "drawing": _serialize_drawing(drawing),
    }


def _serialize_result(result: RoundResult) -> Dict[str, object]:
    return {
        "roundIndex": result.round_index,
        "prompt": result.prompt,
        "imageData": result.final_image,
        "aiGuess": result.final_guess_text,
        "isCorrect": result.is_correct,
        "endedBy": result.ended_by.value,
    }


def _serialize_session(session_id: str, session: PlaySession) -> Dict[str, object]:
    machine = session.game.machine
    current = machine.current_round
    last = machine.last_result
    state: Dict[str, object] = {
        "id": session_id,
        "topicId": session.topic_id,
        "phase": machine.phase.value,
        "roundIndex": machine.index,
        "totalRounds": machine.total_rounds,
        "prompt": current.prompt,
        "deadlineSeconds": current.deadline_seconds,
        "remainingSeconds": machine.remaining,
        "aiGuess": machine.last_sample.guess_text if machine.last_sample else None,
        "aiGuessHistory": list(machine.guess_history),
        "canSkip": machine.can_skip,
        "results": [_serialize_result(r) for r in machine.results],
        "correctCount": machine.correct_count,
    }
    if last is not None:
        state["lastResult"] = _serialize_result(last)
    if machine.phase is Phase.COMPLETE:
        state["scorePercentage"] = machine.score_percentage()
    return state


# ---------- Access codes ----------


@app.get("/api/access-codes")
def list_access_codes() -> List[Dict[str, object]]:
    return [_serialize_access_code(c) for c in STORE.list_access_codes()]


@app.post("/api/access-codes", status_code=201)
def create_access_code() -> Dict[str, object]:
    try:
        code = STORE.create_access_code()
    except StoreError as exc:
        _raise_for(exc)
    logger.info("Created access code %s", code.code)
    return _serialize_access_code(code)


@app.get("/api/access-codes/{code}")
def get_access_code(code: str) -> Dict[str, object]:
    try:
        return _serialize_access_code(STORE.get_access_code(code))
    except StoreError as exc:
        _raise_for(exc)


@app.patch("/api/access-codes/{code}")
def update_access_code(code: str, request: AccessCodeUpdate) -> Dict[str, object]:
    try:
        return _serialize_access_code(STORE.set_active(code, request.is_active))
    except StoreError as exc:
        _raise_for(exc)


@app.delete("/api/access-codes/{code}")
def delete_access_code(code: str) -> Dict[str, object]:
    try:
        return _serialize_access_code(STORE.deactivate(code))
    except StoreError as exc:
        _raise_for(exc)


# ---------- Topics ----------


@app.get("/api/access-codes/{code}/topics")
def list_topics(code: str) -> List[Dict[str, object]]:
    try:
        return [_serialize_topic(t) for t in STORE.list_topics(code)]
    except StoreError as exc:
        _raise_for(exc)


@app.post("/api/access-codes/{code}/topics", status_code=201)
def create_topic(code: str, request: TopicRequest) -> Dict[str, object]:
    try:
        topic = STORE.create_topic(
            code, request.name, request.words, request.question_count
        )
    except StoreError as exc:
        _raise_for(exc)
    logger.info("Created topic %r for access code %s", topic.name, code)
    return _serialize_topic(topic)


@app.get("/api/access-codes/{code}/topics/{topic_id}")
def get_topic(code: str, topic_id: str) -> Dict[str, object]:
    try:
        return _serialize_topic(STORE.get_topic(code, topic_id))
    except StoreError as exc:
        _raise_for(exc)


@app.put("/api/access-codes/{code}/topics/{topic_id}")
def update_topic(code: str, topic_id: str, request: TopicRequest) -> Dict[str, object]:
    try:
        topic = STORE.update_topic(
            code, topic_id, request.name, request.words, request.question_count
        )
    except StoreError as exc:
        _raise_for(exc)
    return _serialize_topic(topic)


@app.delete("/api/access-codes/{code}/topics/{topic_id}")
def delete_topic(code: str, topic_id: str) -> Dict[str, bool]:
    try:
        STORE.delete_topic(code, topic_id)
    except StoreError as exc:
        _raise_for(exc)
    return {"success": True}


# ---------- Games & drawings ----------


@app.post("/api/access-codes/{code}/games")
async def create_game(code: str, request: GameRequest) -> Dict[str, object]:
    try:
        STORE.active_access_code(code)
        STORE.get_topic(code, request.topic_id)
        word = STORE.get_word(request.word_id)
    except StoreError as exc:
        _raise_for(exc)

    ai_guess, is_correct = request.ai_guess, request.is_correct
    if ai_guess is None or is_correct is None:
        try:
            verdict = await _get_classifier().classify(
                strip_data_url(request.image_data), word.word
            )
            ai_guess, is_correct = verdict.guess_text, verdict.is_match
        except ClassificationError as exc:
            logger.warning("Analysis of a submitted drawing failed: %s", exc)
            ai_guess, is_correct = ANALYSIS_FAILED, False

    try:
        game, drawing = STORE.record_game(
            code, request.topic_id, request.word_id, request.image_data, ai_guess, is_correct
        )
    except StoreError as exc:
        _raise_for(exc)
    return _serialize_game(game, drawing)


@app.get("/api/access-codes/{code}/drawings/{word_id}")
def list_drawings(
    code: str,
    word_id: str,
    limit: str = Query(default=str(DEFAULT_DRAWING_LIMIT)),
    best: bool = Query(default=True),
) -> Dict[str, object]:
    if limit == "all":
        max_items: Optional[int] = None
    else:
        try:
            parsed = int(limit)
        except ValueError:
            parsed = 0
        max_items = parsed if parsed > 0 else DEFAULT_DRAWING_LIMIT
    try:
        drawings, total = STORE.drawings_for_word(code, word_id, max_items, best)
    except StoreError as exc:
        _raise_for(exc)
    return {
        "drawings": [_serialize_drawing(d) for d in drawings],
        "totalCount": total,
        "isLimited": max_items is not None and total > len(drawings),
    }


@app.post("/api/analyze-drawing")
async def analyze_drawing(request: AnalyzeRequest) -> Dict[str, object]:
    try:
        verdict = await _get_classifier().classify(
            strip_data_url(request.image_data), request.correct_answer
        )
    except ClassificationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"aiGuess": verdict.guess_text, "isCorrect": verdict.is_match}


@app.get("/api/super-admin/auth")
def super_admin_auth(key: Optional[str] = None) -> Dict[str, bool]:
    if not settings.SUPER_ADMIN_SECRET_KEY:
        raise HTTPException(status_code=500, detail="Super admin key is not configured")
    if not key or key != settings.SUPER_ADMIN_SECRET_KEY:
        raise HTTPException(status_code=401, detail="Authentication failed")
    return {"authenticated": True}


# ---------- Game sessions ----------


def _cleanup_sessions() -> None:
    """Close and forget sessions nobody has touched within the TTL."""

    now = time.time()
    expired = [
        session_id
        for session_id, session in list(SESSIONS.items())
        if now - session.last_active >= settings.SESSION_TTL_SECONDS
    ]
    for session_id in expired:
        session = SESSIONS.pop(session_id, None)
        if session is not None:
            session.game.close()
            logger.info("Session %s expired after inactivity", session_id)


def _get_session(session_id: str) -> PlaySession:
    try:
        session = SESSIONS[session_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    session.last_active = time.time()
    return session


def _result_recorder(code: str, topic_id: str, word_ids: List[str]):
    async def record(result: RoundResult) -> None:
        STORE.record_game(
            code,
            topic_id,
            word_ids[result.round_index],
            result.final_image,
            result.final_guess_text,
            result.is_correct,
        )

    return record


@app.post("/api/access-codes/{code}/sessions")
async def create_session(code: str, request: SessionRequest) -> Dict[str, object]:
    try:
        STORE.active_access_code(code)
        topic = STORE.get_topic(code, request.topic_id)
    except StoreError as exc:
        _raise_for(exc)

    words = STORE.words_for(topic.id)
    if topic.question_count:
        words = words[: topic.question_count]
    try:
        machine = RoundStateMachine.from_prompts(
            [w.word for w in words], deadline_seconds=ROUND_SECONDS
        )
    except EmptyTopicError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    word_ids = [w.id for w in words]
    game = GameSession(
        machine,
        _get_classifier(),
        timing=ROUND_TIMING,
        on_result=_result_recorder(code, topic.id, word_ids),
    )
    _cleanup_sessions()
    session_id = uuid.uuid4().hex
    session = PlaySession(
        access_code=code, topic_id=topic.id, word_ids=word_ids, game=game
    )
    SESSIONS[session_id] = session
    logger.info("Session %s started on topic %r (%d rounds)", session_id, topic.name, len(words))
    return _serialize_session(session_id, session)


@app.get("/api/sessions/{session_id}")
def get_session(session_id: str) -> Dict[str, object]:
    return _serialize_session(session_id, _get_session(session_id))


@app.post("/api/sessions/{session_id}/acknowledge")
async def acknowledge_prompt(session_id: str) -> Dict[str, object]:
    session = _get_session(session_id)
    try:
        session.game.acknowledge()
    except TransitionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _serialize_session(session_id, session)


@app.put("/api/sessions/{session_id}/canvas")
async def update_canvas(session_id: str, request: CanvasRequest) -> Dict[str, object]:
    session = _get_session(session_id)
    accepted = session.game.update_canvas(request.image_data)
    return {"accepted": accepted, "phase": session.game.machine.phase.value}


@app.post("/api/sessions/{session_id}/skip")
async def skip_round(session_id: str) -> Dict[str, object]:
    session = _get_session(session_id)
    try:
        session.game.skip()
    except TransitionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _serialize_session(session_id, session)


@app.get("/api/sessions/{session_id}/results")
def get_session_results(session_id: str) -> Dict[str, object]:
    machine = _get_session(session_id).game.machine
    return {
        "complete": machine.phase is Phase.COMPLETE,
        "correctCount": machine.correct_count,
        "totalRounds": machine.total_rounds,
        "scorePercentage": machine.score_percentage(),
        "results": [_serialize_result(r) for r in machine.results],
    }


@app.delete("/api/sessions/{session_id}")
async def leave_session(session_id: str) -> Dict[str, str]:
    session = SESSIONS.pop(session_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    session.game.close()
    return {"status": "success"}


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"ko\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>PaintQ</title>
    <style>
      :root {
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
        color: #1c2333;
      }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        background: #fff4e6;
        padding: 2rem 1rem;
      }
      main {
        width: min(860px, 100%);
        background: #ffffff;
        border-radius: 18px;
        padding: 1.5rem;
        box-shadow: 0 18px 40px rgba(0, 0, 0, 0.08);
      }
      .hidden { display: none; }
      .prompt-word { font-size: 3rem; font-weight: 700; text-align: center; margin: 1rem 0; }
      .row { display: flex; gap: 0.75rem; align-items: center; flex-wrap: wrap; }
      button {
        border: none;
        border-radius: 10px;
        padding: 0.6rem 1.1rem;
        background: #f97316;
        color: white;
        font-weight: 600;
        cursor: pointer;
      }
      button:disabled { background: #d1d5db; cursor: not-allowed; }
      canvas { border: 2px solid #e5e7eb; border-radius: 12px; width: 100%; touch-action: none; background: white; }
      .banner { padding: 0.75rem; border-radius: 10px; font-weight: 600; text-align: center; }
      .banner.correct { background: #dcfce7; color: #166534; }
      .banner.wrong { background: #fee2e2; color: #991b1b; }
      .topics button { margin: 0.25rem; }
      .results img { width: 140px; border: 1px solid #e5e7eb; border-radius: 8px; }
    </style>
  </head>
  <body>
    <main>
      <h1>PaintQ</h1>
      <section id=\"code-view\">
        <div class=\"row\">
          <input id=\"code-input\" maxlength=\"4\" placeholder=\"0000\" />
          <button id=\"code-button\">입장</button>
        </div>
        <p id=\"code-error\"></p>
      </section>
      <section id=\"topic-view\" class=\"hidden\">
        <h2>주제를 선택하세요</h2>
        <div id=\"topics\" class=\"topics\"></div>
      </section>
      <section id=\"prompt-view\" class=\"hidden\">
        <p id=\"round-label\"></p>
        <div id=\"prompt-word\" class=\"prompt-word\"></div>
        <div class=\"row\"><button id=\"ack-button\">알겠어요!</button></div>
      </section>
      <section id=\"draw-view\" class=\"hidden\">
        <div class=\"row\">
          <strong id=\"draw-word\"></strong>
          <span id=\"timer\"></span>
          <span id=\"ai-guess\"></span>
          <button id=\"clear-button\">지우기</button>
          <button id=\"skip-button\">다음</button>
        </div>
        <canvas id=\"canvas\" width=\"800\" height=\"600\"></canvas>
        <div id=\"banner\" class=\"banner hidden\"></div>
      </section>
      <section id=\"summary-view\" class=\"hidden\">
        <h2 id=\"score\"></h2>
        <div id=\"results\" class=\"results row\"></div>
        <button id=\"again-button\">주제 선택으로</button>
      </section>
    </main>
    <script>
      const views = ['code-view', 'topic-view', 'prompt-view', 'draw-view', 'summary-view'];
      const canvas = document.getElementById('canvas');
      const ctx = canvas.getContext('2d');
      let accessCode = null;
      let sessionId = null;
      let pollTimer = null;
      let pushTimer = null;
      let drawing = false;
      let dirty = false;

      function show(id) {
        views.forEach((view) => document.getElementById(view).classList.toggle('hidden', view !== id));
      }

      function resetCanvas() {
        ctx.fillStyle = 'white';
        ctx.fillRect(0, 0, canvas.width, canvas.height);
        ctx.strokeStyle = '#111827';
        ctx.lineWidth = 6;
        ctx.lineCap = 'round';
        dirty = false;
      }

      function point(event) {
        const rect = canvas.getBoundingClientRect();
        return {
          x: ((event.clientX - rect.left) / rect.width) * canvas.width,
          y: ((event.clientY - rect.top) / rect.height) * canvas.height,
        };
      }

      canvas.addEventListener('pointerdown', (event) => {
        drawing = true;
        const p = point(event);
        ctx.beginPath();
        ctx.moveTo(p.x, p.y);
      });
      canvas.addEventListener('pointermove', (event) => {
        if (!drawing) return;
        const p = point(event);
        ctx.lineTo(p.x, p.y);
        ctx.stroke();
        dirty = true;
      });
      ['pointerup', 'pointerleave'].forEach((name) => canvas.addEventListener(name, () => { drawing = false; }));

      async function api(path, options = {}) {
        const response = await fetch(path, {
          headers: { 'Content-Type': 'application/json' },
          ...options,
        });
        const payload = await response.json();
        if (!response.ok) throw new Error(payload.detail || 'Request failed');
        return payload;
      }

      async function enterCode() {
        const code = document.getElementById('code-input').value.trim();
        if (!/^\\d{4}$/.test(code)) {
          document.getElementById('code-error').textContent = '4자리 숫자 코드를 입력하세요.';
          return;
        }
        try {
          const info = await api(`/api/access-codes/${code}`);
          if (!info.isActive) throw new Error('비활성화된 접속 코드입니다.');
          accessCode = code;
          await loadTopics();
        } catch (error) {
          document.getElementById('code-error').textContent = error.message;
        }
      }

      async function loadTopics() {
        const topics = await api(`/api/access-codes/${accessCode}/topics`);
        const container = document.getElementById('topics');
        container.innerHTML = '';
        topics.forEach((topic) => {
          const button = document.createElement('button');
          button.textContent = `${topic.name} (${topic.words.length})`;
          button.disabled = topic.words.length === 0;
          button.addEventListener('click', () => startSession(topic.id));
          container.appendChild(button);
        });
        show('topic-view');
      }

      async function startSession(topicId) {
        try {
          const state = await api(`/api/access-codes/${accessCode}/sessions`, {
            method: 'POST',
            body: JSON.stringify({ topicId }),
          });
          sessionId = state.id;
          render(state);
          pollTimer = setInterval(poll, 250);
        } catch (error) {
          alert(error.message);
        }
      }

      async function poll() {
        if (!sessionId) return;
        try {
          render(await api(`/api/sessions/${sessionId}`));
        } catch (error) {
          stopTimers();
        }
      }

      function stopTimers() {
        clearInterval(pollTimer);
        clearInterval(pushTimer);
        pollTimer = null;
        pushTimer = null;
      }

      async function pushCanvas() {
        if (!sessionId || !dirty) return;
        await api(`/api/sessions/${sessionId}/canvas`, {
          method: 'PUT',
          body: JSON.stringify({ imageData: canvas.toDataURL('image/png') }),
        });
      }

      function render(state) {
        const banner = document.getElementById('banner');
        if (state.phase === 'prompting') {
          document.getElementById('round-label').textContent = `${state.roundIndex + 1} / ${state.totalRounds}`;
          document.getElementById('prompt-word').textContent = state.prompt;
          banner.classList.add('hidden');
          show('prompt-view');
        } else if (state.phase === 'drawing') {
          if (document.getElementById('draw-view').classList.contains('hidden')) {
            resetCanvas();
            show('draw-view');
          }
          document.getElementById('draw-word').textContent = state.prompt;
          document.getElementById('timer').textContent = `${state.remainingSeconds}s`;
          document.getElementById('ai-guess').textContent = state.aiGuess ? `AI: ${state.aiGuess}?` : '';
          document.getElementById('skip-button').disabled = !state.canSkip;
        } else if (state.phase === 'terminal' && state.lastResult) {
          const result = state.lastResult;
          banner.textContent = result.isCorrect ? `정답! AI: ${result.aiGuess}` : `아쉬워요. AI: ${result.aiGuess}`;
          banner.className = `banner ${result.isCorrect ? 'correct' : 'wrong'}`;
        } else if (state.phase === 'complete') {
          stopTimers();
          document.getElementById('score').textContent =
            `정답률: ${state.correctCount} / ${state.totalRounds} (${state.scorePercentage}%)`;
          const container = document.getElementById('results');
          container.innerHTML = '';
          state.results.forEach((result) => {
            const figure = document.createElement('figure');
            const img = document.createElement('img');
            img.src = result.imageData;
            const caption = document.createElement('figcaption');
            caption.textContent = `${result.prompt} → ${result.aiGuess} ${result.isCorrect ? 'O' : 'X'}`;
            figure.appendChild(img);
            figure.appendChild(caption);
            container.appendChild(figure);
          });
          show('summary-view');
        }
      }

      document.getElementById('code-button').addEventListener('click', enterCode);
      document.getElementById('ack-button').addEventListener('click', async () => {
        render(await api(`/api/sessions/${sessionId}/acknowledge`, { method: 'POST' }));
        clearInterval(pushTimer);
        pushTimer = setInterval(pushCanvas, 500);
      });
      document.getElementById('clear-button').addEventListener('click', resetCanvas);
      document.getElementById('skip-button').addEventListener('click', async () => {
        try {
          render(await api(`/api/sessions/${sessionId}/skip`, { method: 'POST' }));
        } catch (error) {
          alert(error.message);
        }
      });
      document.getElementById('again-button').addEventListener('click', async () => {
        if (sessionId) await api(`/api/sessions/${sessionId}`, { method: 'DELETE' });
        sessionId = null;
        await loadTopics();
      });
      window.addEventListener('beforeunload', () => {
        if (sessionId) fetch(`/api/sessions/${sessionId}`, { method: 'DELETE', keepalive: true });
      });
    </script>
  </body>
</html>
"""
