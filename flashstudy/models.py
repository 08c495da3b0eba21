from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Theme = Literal["light", "dark"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    # Stored JSON uses camelCase keys (createdAt, userId, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self, **kwargs) -> str:
        return self.model_dump_json(by_alias=True, **kwargs)


# --- Users & sessions ---

class User(CamelModel):
    id: str
    email: str
    name: str
    created_at: datetime
    last_login: datetime
    avatar: Optional[str] = None


class StoredUser(User):
    password: str  # digest from password.hash_password

    def sanitize(self) -> User:
        """Returns the user without the password digest."""
        return User(**self.model_dump(exclude={"password"}))


class Session(CamelModel):
    user_id: str
    expires_at: int  # epoch milliseconds


class LoginCredentials(BaseModel):
    email: str
    password: str


class RegisterCredentials(BaseModel):
    name: str
    email: str
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


class AuthResult(BaseModel):
    success: bool
    user: Optional[User] = None
    error: Optional[str] = None
    code: Optional[str] = None


# --- Decks & flashcards ---

class Flashcard(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    id: str
    front: str = Field(min_length=1, max_length=500)
    back: str = Field(min_length=1, max_length=500)
    created_at: datetime
    last_studied: Optional[datetime] = None
    times_correct: int = Field(default=0, ge=0)
    times_incorrect: int = Field(default=0, ge=0)


class Deck(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    id: str
    name: str = Field(min_length=1, max_length=50)
    description: str = Field(default="", max_length=200)
    flashcards: List[Flashcard] = Field(default_factory=list)
    created_at: datetime
    last_studied: Optional[datetime] = None
    user_id: str


class StudySession(CamelModel):
    deck_id: str
    current_card_index: int = 0
    is_flipped: bool = False
    correct_count: int = 0
    incorrect_count: int = 0


# --- Form drafts & requests ---

class DeckDraft(BaseModel):
    name: str = ""
    description: str = ""


class FlashcardDraft(BaseModel):
    front: str = ""
    back: str = ""


class DeckCreate(BaseModel):
    name: str
    description: str = ""


class DeckUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class FlashcardCreate(BaseModel):
    front: str
    back: str


class FlashcardUpdate(BaseModel):
    front: Optional[str] = None
    back: Optional[str] = None


class AnswerRequest(BaseModel):
    correct: bool
