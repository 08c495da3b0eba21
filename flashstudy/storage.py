import json
import logging
import re
from typing import List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from . import config
from .errors import StorageUnavailable
from .local_storage import LocalStorage
from .models import Deck, DeckDraft, FlashcardDraft, Theme

logger = logging.getLogger(__name__)

_decks_adapter = TypeAdapter(List[Deck])

DraftT = TypeVar("DraftT", bound=BaseModel)


def export_filename(deck: Deck) -> str:
    name = re.sub(r"\s+", "_", deck.name)
    return f"{name}_flashcards.json"


class DeckStore:
    """
    Persists decks (with their nested flashcards) under ``flashcard-decks``,
    plus the theme preference and the create-deck / add-flashcard drafts.

    Loading validates every deck; one malformed record marks the whole
    collection as corrupt and an empty list is returned instead.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    # --- Decks ---

    def load_all_decks(self) -> List[Deck]:
        try:
            stored = self.storage.get_item(config.DECKS_KEY)
            if not stored:
                return []
            return _decks_adapter.validate_json(stored)
        except (StorageUnavailable, ValidationError) as e:
            logger.error(f"Failed to load decks: {e}")
            return []

    def load_user_decks(self, user_id: str) -> List[Deck]:
        return [deck for deck in self.load_all_decks() if deck.user_id == user_id]

    def save_decks(self, decks: List[Deck]):
        """
        Merges decks into the stored collection by id.

        Stored decks whose id appears in ``decks`` are replaced, every other
        stored deck is kept as is. Callers must pass decks from a single
        user context; ownership is not checked here.
        """
        incoming = {deck.id for deck in decks}
        others = [deck for deck in self.load_all_decks() if deck.id not in incoming]
        self._write(others + list(decks))

    def delete_deck(self, deck_id: str) -> bool:
        decks = self.load_all_decks()
        remaining = [deck for deck in decks if deck.id != deck_id]
        if len(remaining) == len(decks):
            return False
        self._write(remaining)
        return True

    def _write(self, decks: List[Deck]):
        try:
            payload = _decks_adapter.dump_json(decks, by_alias=True).decode("utf-8")
            self.storage.set_item(config.DECKS_KEY, payload)
            logger.debug(f"Saved {len(decks)} decks")
        except StorageUnavailable as e:
            logger.error(f"Failed to save decks: {e}")

    def export_deck(self, deck: Deck) -> Tuple[str, str]:
        """
        Serializes one deck for download.

        Returns:
            tuple: (document, filename) - pretty-printed JSON and a suggested
            name such as "World_Capitals_flashcards.json"
        """
        document = json.dumps(deck.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)
        filename = export_filename(deck)
        logger.info(f"Exported deck {deck.id} as {filename} ({len(deck.flashcards)} cards)")
        return document, filename

    # --- Theme ---

    def load_theme(self) -> Theme:
        try:
            theme = self.storage.get_item(config.THEME_KEY)
        except StorageUnavailable as e:
            logger.error(f"Failed to load theme: {e}")
            return "light"
        return "dark" if theme == "dark" else "light"

    def save_theme(self, theme: Theme):
        try:
            self.storage.set_item(config.THEME_KEY, theme)
        except StorageUnavailable as e:
            logger.error(f"Failed to save theme: {e}")

    # --- Drafts ---

    def _load_draft(self, key: str, model: Type[DraftT]) -> Optional[DraftT]:
        try:
            stored = self.storage.get_item(key)
            if not stored:
                return None
            return model.model_validate_json(stored)
        except (StorageUnavailable, ValidationError) as e:
            logger.error(f"Failed to load draft {key}: {e}")
            return None

    def _save_draft(self, key: str, draft: BaseModel):
        try:
            self.storage.set_item(key, draft.model_dump_json())
        except StorageUnavailable as e:
            logger.error(f"Failed to save draft {key}: {e}")

    def _clear_draft(self, key: str):
        try:
            self.storage.remove_item(key)
        except StorageUnavailable as e:
            logger.error(f"Failed to clear draft {key}: {e}")

    def load_deck_draft(self) -> Optional[DeckDraft]:
        return self._load_draft(config.DECK_DRAFT_KEY, DeckDraft)

    def save_deck_draft(self, draft: DeckDraft):
        # Blank forms are not worth keeping
        if draft.name.strip() or draft.description.strip():
            self._save_draft(config.DECK_DRAFT_KEY, draft)

    def clear_deck_draft(self):
        self._clear_draft(config.DECK_DRAFT_KEY)

    def load_flashcard_draft(self) -> Optional[FlashcardDraft]:
        return self._load_draft(config.FLASHCARD_DRAFT_KEY, FlashcardDraft)

    def save_flashcard_draft(self, draft: FlashcardDraft):
        if draft.front.strip() or draft.back.strip():
            self._save_draft(config.FLASHCARD_DRAFT_KEY, draft)

    def clear_flashcard_draft(self):
        self._clear_draft(config.FLASHCARD_DRAFT_KEY)
