class FlashcardError(Exception):
    """Base class for every error raised by the flashcard app."""
    message = "Unexpected error"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    @property
    def code(self) -> str:
        return type(self).__name__


class AuthError(FlashcardError):
    """Account validation failure, reported to callers as an AuthResult."""


class DuplicateEmail(AuthError):
    message = "Email already in use"


class WeakPassword(AuthError):
    message = "Password must be at least 6 characters"


class InvalidCredentials(AuthError):
    message = "Invalid email or password"


class UserNotFound(AuthError):
    message = "User not found"


class StorageUnavailable(FlashcardError):
    """Raised by LocalStorage on quota, I/O or parse failures."""
    message = "Storage unavailable"


class EmptyDeckStudyAttempt(FlashcardError):
    message = "Add some flashcards before studying this deck"


class DeckNotFound(FlashcardError):
    message = "Deck not found"


class FlashcardNotFound(FlashcardError):
    message = "Flashcard not found"
