from typing import List, Optional

import pandas as pd

from .models import Deck


def _accuracy(correct: int, incorrect: int) -> Optional[float]:
    answered = correct + incorrect
    if answered == 0:
        return None
    return round(correct / answered * 100, 1)


def deck_stats(decks: List[Deck]) -> dict:
    """Dashboard totals plus a per-deck breakdown of lifetime answers."""
    rows = [
        {
            "deck_id": deck.id,
            "card_id": card.id,
            "times_correct": card.times_correct,
            "times_incorrect": card.times_incorrect,
        }
        for deck in decks
        for card in deck.flashcards
    ]
    cards_df = pd.DataFrame(rows, columns=["deck_id", "card_id", "times_correct", "times_incorrect"])

    per_deck = cards_df.groupby("deck_id").agg(
        cards=("card_id", "count"),
        correct=("times_correct", "sum"),
        incorrect=("times_incorrect", "sum"),
    )

    breakdown = []
    for deck in decks:
        if deck.id in per_deck.index:
            row = per_deck.loc[deck.id]
            cards, correct, incorrect = int(row["cards"]), int(row["correct"]), int(row["incorrect"])
        else:
            cards, correct, incorrect = 0, 0, 0
        breakdown.append({
            "deckId": deck.id,
            "name": deck.name,
            "cards": cards,
            "timesCorrect": correct,
            "timesIncorrect": incorrect,
            "accuracy": _accuracy(correct, incorrect),
            "lastStudied": deck.last_studied.isoformat() if deck.last_studied else None,
        })

    total_correct = int(cards_df["times_correct"].sum())
    total_incorrect = int(cards_df["times_incorrect"].sum())

    return {
        "totalDecks": len(decks),
        "totalCards": int(len(cards_df)),
        "studiedDecks": sum(1 for deck in decks if deck.last_studied),
        "timesCorrect": total_correct,
        "timesIncorrect": total_incorrect,
        "accuracy": _accuracy(total_correct, total_incorrect),
        "decks": breakdown,
    }
