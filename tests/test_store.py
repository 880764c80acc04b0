"""Tests for the in-memory record store."""

import pytest

from paintq.store import (
    AccessCode,
    ForbiddenError,
    MemoryStore,
    NotFoundError,
    StoreError,
)


def test_access_codes_are_sequential():
    store = MemoryStore()
    assert store.create_access_code().code == "0000"
    assert store.create_access_code().code == "0001"
    assert [c.code for c in store.list_access_codes()] == ["0001", "0000"]


def test_access_code_space_is_limited():
    store = MemoryStore()
    store._codes["9999"] = AccessCode(code="9999")
    with pytest.raises(StoreError):
        store.create_access_code()


def test_default_code_is_created_on_demand():
    store = MemoryStore()
    assert store.get_access_code("0000").is_active
    with pytest.raises(NotFoundError):
        store.get_access_code("1234")


def test_deactivated_code_blocks_topics():
    store = MemoryStore()
    code = store.create_access_code().code
    store.create_topic(code, "과일", ["사과"])
    deactivated = store.deactivate(code)
    assert deactivated.deactivated_at is not None

    with pytest.raises(ForbiddenError):
        store.list_topics(code)

    reactivated = store.set_active(code, True)
    assert reactivated.deactivated_at is None
    assert len(store.list_topics(code)) == 1


def test_topic_words_are_cleaned_and_ordered():
    store = MemoryStore()
    code = store.create_access_code().code
    topic = store.create_topic(code, "  하늘 ", [" 해 ", "", "달", "   ", "별"], 2)

    assert topic.name == "하늘"
    assert topic.question_count == 2
    words = store.words_for(topic.id)
    assert [(w.word, w.order) for w in words] == [("해", 1), ("달", 2), ("별", 3)]

    store.update_topic(code, topic.id, "밤하늘", ["별", "달"])
    assert [w.word for w in store.words_for(topic.id)] == ["별", "달"]
    assert store.get_topic(code, topic.id).question_count is None


def test_topics_are_scoped_to_their_access_code():
    store = MemoryStore()
    owner = store.create_access_code().code
    other = store.create_access_code().code
    topic = store.create_topic(owner, "동물", ["고양이"])

    with pytest.raises(ForbiddenError):
        store.get_topic(other, topic.id)
    with pytest.raises(NotFoundError):
        store.get_topic(owner, "missing")
    assert [t.id for t in store.list_topics(owner)] == [topic.id]
    assert store.list_topics(other) == []


def test_delete_topic_cascades():
    store = MemoryStore()
    code = store.create_access_code().code
    topic = store.create_topic(code, "과일", ["사과"])
    word = store.words_for(topic.id)[0]
    store.record_game(code, topic.id, word.id, "img", "사과", True)

    store.delete_topic(code, topic.id)
    assert store.words_for(topic.id) == []
    assert store.drawings_for_word(code, word.id) == ([], 0)
    assert store.counts(store.get_access_code(code)) == {"topics": 0, "games": 0}


def test_drawings_best_order_and_limit():
    store = MemoryStore()
    code = store.create_access_code().code
    topic = store.create_topic(code, "과일", ["사과"])
    word = store.words_for(topic.id)[0]
    for index, correct in enumerate([False, True, False, True, False]):
        store.record_game(code, topic.id, word.id, f"img-{index}", "guess", correct)

    best, total = store.drawings_for_word(code, word.id, limit=4, best=True)
    assert total == 5
    assert [d.image_data for d in best] == ["img-3", "img-1", "img-4", "img-2"]

    newest, _ = store.drawings_for_word(code, word.id, limit=None, best=False)
    assert [d.image_data for d in newest] == ["img-4", "img-3", "img-2", "img-1", "img-0"]


def test_game_word_must_belong_to_topic():
    store = MemoryStore()
    code = store.create_access_code().code
    fruit = store.create_topic(code, "과일", ["사과"])
    sky = store.create_topic(code, "하늘", ["별"])
    star = store.words_for(sky.id)[0]

    with pytest.raises(NotFoundError):
        store.record_game(code, fruit.id, star.id, "img", None, None)


def test_oldest_games_are_evicted():
    store = MemoryStore(max_games=2)
    code = store.create_access_code().code
    topic = store.create_topic(code, "과일", ["사과"])
    word = store.words_for(topic.id)[0]
    for index in range(3):
        store.record_game(code, topic.id, word.id, f"img-{index}", "사과", True)

    drawings, total = store.drawings_for_word(code, word.id, limit=None)
    assert total == 2
    assert [d.image_data for d in drawings] == ["img-2", "img-1"]
