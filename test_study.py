from datetime import datetime, timezone

import pytest

from flashstudy.errors import EmptyDeckStudyAttempt
from flashstudy.models import Deck, Flashcard
from flashstudy.study import StudyMode


def make_deck(size=3):
    now = datetime.now(timezone.utc)
    cards = [Flashcard(id=f"card-{i}", front=f"Q{i}", back=f"A{i}", created_at=now) for i in range(size)]
    return Deck(id="deck-1", name="Capitals", user_id="alice", created_at=now, flashcards=cards)


def test_initial_state():
    study = StudyMode(make_deck())
    assert study.session.current_card_index == 0
    assert not study.session.is_flipped
    assert study.current_card.id == "card-0"
    assert study.progress == 0
    assert study.accuracy is None
    assert not study.is_complete


def test_empty_deck_is_refused():
    with pytest.raises(EmptyDeckStudyAttempt):
        StudyMode(make_deck(size=0))


def test_answer_before_flip_is_ignored():
    study = StudyMode(make_deck())
    assert not study.answer(True)
    assert study.session.current_card_index == 0
    assert study.session.correct_count == 0


def test_flip_toggles():
    study = StudyMode(make_deck())
    study.flip()
    assert study.session.is_flipped
    study.flip()
    assert not study.session.is_flipped


def test_completes_after_n_flipped_answers():
    study = StudyMode(make_deck(size=3))
    for i, correct in enumerate([True, False, True]):
        assert not study.is_complete
        study.answer(True)  # ignored, not flipped
        study.flip()
        assert study.answer(correct)
        assert study.session.current_card_index == i + 1
        assert not study.session.is_flipped

    assert study.is_complete
    assert study.current_card is None
    assert study.progress == 100
    assert study.session.correct_count == 2
    assert study.session.incorrect_count == 1
    assert study.accuracy == pytest.approx(200 / 3)


def test_complete_ignores_flip_and_answer():
    study = StudyMode(make_deck(size=1))
    study.flip()
    study.answer(False)
    study.flip()
    assert not study.session.is_flipped
    assert not study.answer(True)
    assert study.session.incorrect_count == 1


def test_capitals_scenario():
    now = datetime.now(timezone.utc)
    deck = Deck(id="d", name="Capitals", user_id="alice", created_at=now,
                flashcards=[Flashcard(id="c", front="France", back="Paris", created_at=now)])
    study = StudyMode(deck)
    study.flip()
    study.answer(True)
    assert study.is_complete
    assert study.session.correct_count == 1
    assert study.session.incorrect_count == 0
    assert study.accuracy == 100


def test_all_zero_accuracy_is_none_not_nan():
    study = StudyMode(make_deck(size=2))
    study.restart()
    assert study.accuracy is None
    assert study.snapshot()["accuracy"] is None


def test_restart_resets_session():
    study = StudyMode(make_deck(size=2))
    for _ in range(2):
        study.flip()
        study.answer(True)
    study.restart()
    assert study.session.current_card_index == 0
    assert not study.session.is_flipped
    assert study.session.correct_count == 0
    assert study.session.incorrect_count == 0
    assert study.session.deck_id == "deck-1"


def test_answers_are_reported():
    reported = []
    study = StudyMode(make_deck(size=2), on_answer=lambda *args: reported.append(args))
    study.flip()
    study.answer(False)
    study.answer(True)  # not flipped
    study.flip()
    study.answer(True)
    assert reported == [("deck-1", "card-0", False), ("deck-1", "card-1", True)]
