import logging
import threading
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from . import config
from .auth import AuthService
from .debounce import Debouncer
from .errors import DeckNotFound, FlashcardNotFound, UserNotFound
from .local_storage import LocalStorage
from .models import (
    AuthResult,
    Deck,
    Flashcard,
    LoginCredentials,
    ProfileUpdate,
    RegisterCredentials,
    Theme,
    User,
    utcnow,
)
from .stats import deck_stats
from .storage import DeckStore
from .study import StudyMode
from .user_storage import UserStore

logger = logging.getLogger(__name__)


# --- Auth ---

class AuthState:
    def __init__(self):
        self.user: Optional[User] = None
        self.is_authenticated = False
        self.is_loading = True


class AuthController:
    """Holds who is logged in and keeps the stored session in step with it."""

    def __init__(self, auth: AuthService):
        self.auth = auth
        self.state = AuthState()

    def _set_user(self, user: User):
        self.state.user = user
        self.state.is_authenticated = True
        self.state.is_loading = False
        # Every change of user refreshes the session expiry
        self.auth.save_session(user)

    def restore_session(self) -> Optional[User]:
        user = self.auth.get_session()
        if user is not None:
            self._set_user(user)
        else:
            self.state.is_loading = False
        return user

    async def login(self, credentials: LoginCredentials) -> AuthResult:
        self.state.is_loading = True
        try:
            result = await self.auth.login(credentials)
        finally:
            self.state.is_loading = False
        if result.success:
            self._set_user(result.user)
        return result

    async def register(self, credentials: RegisterCredentials) -> AuthResult:
        self.state.is_loading = True
        try:
            result = await self.auth.register(credentials)
        finally:
            self.state.is_loading = False
        if result.success:
            self._set_user(result.user)
        return result

    async def update_profile(self, updates: ProfileUpdate) -> AuthResult:
        if self.state.user is None:
            error = UserNotFound()
            return AuthResult(success=False, error=error.message, code=error.code)
        result = await self.auth.update_profile(self.state.user.id, updates)
        if result.success:
            self._set_user(result.user)
        return result

    def logout(self):
        self.auth.clear_session()
        self.state.user = None
        self.state.is_authenticated = False
        self.state.is_loading = False


# --- Flashcards ---

class FlashcardState:
    def __init__(self):
        self.decks: List[Deck] = []
        self.current_deck_id: Optional[str] = None
        self.theme: Theme = "light"
        self.is_auto_saving = False
        self.last_saved: Optional[datetime] = None

    @property
    def current_deck(self) -> Optional[Deck]:
        return next((d for d in self.decks if d.id == self.current_deck_id), None)


class FlashcardController:
    """
    In-memory view of the logged-in user's decks.

    Mutations never edit a Deck or Flashcard in place: each one builds new
    model instances, swaps them into ``state.decks`` and hands a snapshot to
    the auto-save debouncer, so only the latest state reaches storage.
    """

    def __init__(self, store: DeckStore, auto_save_delay: float = config.AUTO_SAVE_DELAY,
                 timer_factory=threading.Timer):
        self.store = store
        self.state = FlashcardState()
        self._saver = Debouncer(self._save, auto_save_delay, timer_factory)

    def _save(self, decks: List[Deck]):
        self.store.save_decks(decks)
        # A newer snapshot may have been queued while this one was written
        self.state.is_auto_saving = self._saver.pending
        self.state.last_saved = utcnow()

    def _set_decks(self, decks: List[Deck]):
        self.state.decks = decks
        self.state.is_auto_saving = True
        self._saver.submit(list(decks))

    def _replace_deck(self, deck: Deck):
        self._set_decks([deck if d.id == deck.id else d for d in self.state.decks])

    def flush(self) -> bool:
        return self._saver.flush()

    def reset(self):
        self.flush()
        self.state.decks = []
        self.state.current_deck_id = None

    # Decks

    def load_user_decks(self, user_id: str) -> List[Deck]:
        self.flush()
        self.state.decks = self.store.load_user_decks(user_id)
        self.state.current_deck_id = None
        self.state.theme = self.store.load_theme()
        logger.info(f"Loaded {len(self.state.decks)} decks for user {user_id}")
        return self.state.decks

    def get_deck(self, deck_id: str) -> Deck:
        for deck in self.state.decks:
            if deck.id == deck_id:
                return deck
        raise DeckNotFound(f"Deck {deck_id} not found")

    def create_deck(self, user_id: str, name: str, description: str = "") -> Deck:
        deck = Deck(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            user_id=user_id,
            created_at=utcnow(),
        )
        self._set_decks(self.state.decks + [deck])
        self.store.clear_deck_draft()
        return deck

    def update_deck(self, deck_id: str, name: Optional[str] = None, description: Optional[str] = None) -> Deck:
        deck = self.get_deck(deck_id)
        data = deck.model_dump()
        if name is not None:
            data["name"] = name
        if description is not None:
            data["description"] = description
        updated = Deck.model_validate(data)
        self._replace_deck(updated)
        return updated

    def delete_deck(self, deck_id: str):
        self.get_deck(deck_id)
        self._set_decks([d for d in self.state.decks if d.id != deck_id])
        if self.state.current_deck_id == deck_id:
            self.state.current_deck_id = None
        # Merge-saving can only add or replace, so removal goes to the store directly
        self.store.delete_deck(deck_id)

    def set_current_deck(self, deck_id: Optional[str]) -> Optional[Deck]:
        if deck_id is not None:
            self.get_deck(deck_id)
        self.state.current_deck_id = deck_id
        return self.state.current_deck

    # Flashcards

    def _find_card(self, deck: Deck, flashcard_id: str) -> Flashcard:
        for card in deck.flashcards:
            if card.id == flashcard_id:
                return card
        raise FlashcardNotFound(f"Flashcard {flashcard_id} not found in deck {deck.id}")

    def add_flashcard(self, deck_id: str, front: str, back: str) -> Flashcard:
        deck = self.get_deck(deck_id)
        card = Flashcard(id=str(uuid.uuid4()), front=front, back=back, created_at=utcnow())
        self._replace_deck(deck.model_copy(update={"flashcards": deck.flashcards + [card]}))
        self.store.clear_flashcard_draft()
        return card

    def update_flashcard(self, deck_id: str, flashcard_id: str,
                         front: Optional[str] = None, back: Optional[str] = None) -> Flashcard:
        deck = self.get_deck(deck_id)
        data = self._find_card(deck, flashcard_id).model_dump()
        if front is not None:
            data["front"] = front
        if back is not None:
            data["back"] = back
        updated = Flashcard.model_validate(data)
        cards = [updated if c.id == flashcard_id else c for c in deck.flashcards]
        self._replace_deck(deck.model_copy(update={"flashcards": cards}))
        return updated

    def delete_flashcard(self, deck_id: str, flashcard_id: str):
        deck = self.get_deck(deck_id)
        self._find_card(deck, flashcard_id)
        cards = [c for c in deck.flashcards if c.id != flashcard_id]
        self._replace_deck(deck.model_copy(update={"flashcards": cards}))

    def record_answer(self, deck_id: str, flashcard_id: str, correct: bool):
        """Bumps a card's lifetime tally and stamps the card and deck as studied."""
        try:
            deck = self.get_deck(deck_id)
            card = self._find_card(deck, flashcard_id)
        except (DeckNotFound, FlashcardNotFound) as e:
            # Deck or card was deleted while a study session was open
            logger.warning(f"Answer not recorded: {e}")
            return

        now = utcnow()
        updated = card.model_copy(update={
            "last_studied": now,
            "times_correct": card.times_correct + (1 if correct else 0),
            "times_incorrect": card.times_incorrect + (0 if correct else 1),
        })
        cards = [updated if c.id == flashcard_id else c for c in deck.flashcards]
        self._replace_deck(deck.model_copy(update={"flashcards": cards, "last_studied": now}))

    def search_flashcards(self, deck_id: str, term: str) -> List[Flashcard]:
        deck = self.get_deck(deck_id)
        term = term.strip().lower()
        if not term:
            return list(deck.flashcards)
        return [c for c in deck.flashcards if term in c.front.lower() or term in c.back.lower()]

    # Misc

    def toggle_theme(self) -> Theme:
        self.state.theme = "dark" if self.state.theme == "light" else "light"
        self.store.save_theme(self.state.theme)
        return self.state.theme

    def export_deck(self, deck_id: str) -> Tuple[str, str]:
        return self.store.export_deck(self.get_deck(deck_id))

    def start_study(self, deck_id: str) -> StudyMode:
        return StudyMode(self.get_deck(deck_id), on_answer=self.record_answer)

    def stats(self) -> dict:
        return deck_stats(self.state.decks)


# --- Application ---

class AppController:
    """
    Top-level owner of all application state.

    Wires the stores, the auth and flashcard controllers and the single
    study session that can be open at a time (one user, one window).
    """

    def __init__(self, storage: LocalStorage, auth_latency: float = config.AUTH_LATENCY,
                 auto_save_delay: float = config.AUTO_SAVE_DELAY, timer_factory=threading.Timer):
        self.storage = storage
        self.users = UserStore(storage)
        self.deck_store = DeckStore(storage)
        self.auth = AuthController(AuthService(self.users, storage, latency=auth_latency))
        self.flashcards = FlashcardController(self.deck_store, auto_save_delay, timer_factory)
        self.study: Optional[StudyMode] = None

    @property
    def current_user(self) -> Optional[User]:
        return self.auth.state.user

    def start(self) -> Optional[User]:
        user = self.auth.restore_session()
        if user is not None:
            self.flashcards.load_user_decks(user.id)
        return user

    def _on_authenticated(self, result: AuthResult) -> AuthResult:
        if result.success:
            self.study = None
            self.flashcards.load_user_decks(result.user.id)
        return result

    async def login(self, credentials: LoginCredentials) -> AuthResult:
        return self._on_authenticated(await self.auth.login(credentials))

    async def register(self, credentials: RegisterCredentials) -> AuthResult:
        return self._on_authenticated(await self.auth.register(credentials))

    async def update_profile(self, updates: ProfileUpdate) -> AuthResult:
        return await self.auth.update_profile(updates)

    def logout(self):
        self.study = None
        self.flashcards.reset()
        self.auth.logout()

    def start_study(self, deck_id: str) -> StudyMode:
        self.study = self.flashcards.start_study(deck_id)
        return self.study

    def exit_study(self):
        self.study = None

    def shutdown(self):
        self.flashcards.flush()
