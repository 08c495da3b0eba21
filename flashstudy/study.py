import logging
from typing import Callable, Optional

from .errors import EmptyDeckStudyAttempt
from .models import Deck, Flashcard, StudySession

logger = logging.getLogger(__name__)

# (deck_id, flashcard_id, correct)
AnswerCallback = Callable[[str, str, bool], None]


class StudyMode:
    """
    One pass through a deck's cards: flip a card, then mark it right or wrong.

    States are Active(index, flipped) while cards remain and Complete once
    every card has been answered. Answers only count once the card has been
    flipped. Each recorded answer is reported to ``on_answer`` so the owning
    controller can update the flashcard's lifetime tallies.
    """

    def __init__(self, deck: Deck, on_answer: Optional[AnswerCallback] = None):
        if not deck.flashcards:
            raise EmptyDeckStudyAttempt()
        self.deck = deck
        self.on_answer = on_answer
        self.session = StudySession(deck_id=deck.id)

    @property
    def size(self) -> int:
        return len(self.deck.flashcards)

    @property
    def is_complete(self) -> bool:
        return self.session.current_card_index >= self.size

    @property
    def current_card(self) -> Optional[Flashcard]:
        if self.is_complete:
            return None
        return self.deck.flashcards[self.session.current_card_index]

    @property
    def progress(self) -> float:
        return self.session.current_card_index / self.size * 100

    @property
    def accuracy(self) -> Optional[float]:
        """Percentage of correct answers this session, None before any answer."""
        answered = self.session.correct_count + self.session.incorrect_count
        if answered == 0:
            return None
        return self.session.correct_count / answered * 100

    def flip(self):
        if self.is_complete:
            return
        self.session.is_flipped = not self.session.is_flipped

    def answer(self, correct: bool) -> bool:
        """Records an answer for the current card. Returns False if it was ignored."""
        if self.is_complete or not self.session.is_flipped:
            return False

        card = self.current_card
        if correct:
            self.session.correct_count += 1
        else:
            self.session.incorrect_count += 1

        if self.on_answer is not None:
            self.on_answer(self.deck.id, card.id, correct)

        self.session.current_card_index += 1
        self.session.is_flipped = False

        if self.is_complete:
            logger.info(
                f"Finished studying deck {self.deck.id}: "
                f"{self.session.correct_count} correct, {self.session.incorrect_count} incorrect"
            )
        return True

    def restart(self):
        self.session = StudySession(deck_id=self.deck.id)

    def snapshot(self) -> dict:
        return {
            "session": self.session.model_dump(by_alias=True),
            "deckName": self.deck.name,
            "totalCards": self.size,
            "currentCard": self.current_card.model_dump(mode="json", by_alias=True) if self.current_card else None,
            "isComplete": self.is_complete,
            "progress": self.progress,
            "accuracy": self.accuracy,
        }
