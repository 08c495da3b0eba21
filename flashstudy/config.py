import os
from datetime import timedelta

# Storage
STORAGE_PATH = os.environ.get("FLASHCARD_STORAGE_PATH", "flashcard-storage.json")
STORAGE_QUOTA = int(os.environ.get("FLASHCARD_STORAGE_QUOTA", str(5 * 1024 * 1024)))  # 5MB, like a browser

SESSION_KEY = "flashcard-session"
USERS_KEY = "flashcard-users"
DECKS_KEY = "flashcard-decks"
THEME_KEY = "flashcard-theme"
DECK_DRAFT_KEY = "deck-draft"
FLASHCARD_DRAFT_KEY = "flashcard-draft"

# Auth
SESSION_DURATION = timedelta(days=7)
AUTH_LATENCY = float(os.environ.get("FLASHCARD_AUTH_LATENCY", "0.3"))  # seconds
MIN_PASSWORD_LENGTH = 6
PASSWORD_SALT = "flashcard-app-salt"

DEMO_USER_ID = "demo-user-id"
DEMO_USER_NAME = "Demo User"
DEMO_USER_EMAIL = "demo@example.com"
DEMO_USER_PASSWORD = "demo123"

# Auto-save
AUTO_SAVE_DELAY = float(os.environ.get("FLASHCARD_AUTO_SAVE_DELAY", "0.3"))  # seconds

LOG_LEVEL = os.environ.get("FLASHCARD_LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
