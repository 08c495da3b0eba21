import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from . import config
from .controllers import AppController
from .errors import DeckNotFound, EmptyDeckStudyAttempt, FlashcardNotFound
from .local_storage import LocalStorage
from .models import (
    AnswerRequest,
    AuthResult,
    Deck,
    DeckCreate,
    DeckDraft,
    DeckUpdate,
    Flashcard,
    FlashcardCreate,
    FlashcardDraft,
    FlashcardUpdate,
    LoginCredentials,
    ProfileUpdate,
    RegisterCredentials,
    User,
)
from .study import StudyMode

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

app = FastAPI(title="Flashcard Study API")

# CORS Setup
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Singleton controller (one local user, one window)
controller = AppController(LocalStorage(config.STORAGE_PATH, quota=config.STORAGE_QUOTA))


def get_controller() -> AppController:
    return controller


def current_user(ctl: AppController = Depends(get_controller)) -> User:
    if ctl.current_user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return ctl.current_user


def active_study(ctl: AppController = Depends(get_controller), user: User = Depends(current_user)) -> StudyMode:
    if ctl.study is None:
        raise HTTPException(status_code=404, detail="No study session in progress")
    return ctl.study


@app.on_event("startup")
def startup_event():
    user = controller.start()
    if user:
        logging.info(f"Restored session for {user.email}")


@app.on_event("shutdown")
def shutdown_event():
    # Don't lose edits still waiting in the auto-save window
    controller.shutdown()


@app.exception_handler(DeckNotFound)
@app.exception_handler(FlashcardNotFound)
def not_found_handler(request: Request, exc):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(EmptyDeckStudyAttempt)
def empty_deck_handler(request: Request, exc: EmptyDeckStudyAttempt):
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.exception_handler(ValidationError)
def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.errors(include_url=False, include_context=False)})


def _auth_response(result: AuthResult, status_code: int) -> User:
    if not result.success:
        raise HTTPException(status_code=status_code, detail=result.error)
    return result.user


# --- Auth ---

@app.post("/auth/register")
async def register(credentials: RegisterCredentials, ctl: AppController = Depends(get_controller)):
    return _auth_response(await ctl.register(credentials), 400)


@app.post("/auth/login")
async def login(credentials: LoginCredentials, ctl: AppController = Depends(get_controller)):
    return _auth_response(await ctl.login(credentials), 401)


@app.post("/auth/logout")
def logout(ctl: AppController = Depends(get_controller)):
    ctl.logout()
    return {"success": True}


@app.get("/auth/session")
def get_session(user: User = Depends(current_user)):
    return user


@app.put("/auth/profile")
async def update_profile(updates: ProfileUpdate, ctl: AppController = Depends(get_controller),
                         user: User = Depends(current_user)):
    result = await ctl.update_profile(updates)
    return _auth_response(result, 404 if result.code == "UserNotFound" else 400)


# --- Decks ---

@app.get("/decks", response_model=List[Deck])
def list_decks(ctl: AppController = Depends(get_controller), user: User = Depends(current_user)):
    return ctl.flashcards.state.decks


@app.post("/decks")
def create_deck(request: DeckCreate, ctl: AppController = Depends(get_controller),
                user: User = Depends(current_user)):
    return ctl.flashcards.create_deck(user.id, request.name, request.description)


@app.get("/decks/{deck_id}")
def get_deck(deck_id: str, ctl: AppController = Depends(get_controller), user: User = Depends(current_user)):
    return ctl.flashcards.set_current_deck(deck_id)


@app.put("/decks/{deck_id}")
def update_deck(deck_id: str, request: DeckUpdate, ctl: AppController = Depends(get_controller),
                user: User = Depends(current_user)):
    return ctl.flashcards.update_deck(deck_id, name=request.name, description=request.description)


@app.delete("/decks/{deck_id}")
def delete_deck(deck_id: str, ctl: AppController = Depends(get_controller), user: User = Depends(current_user)):
    ctl.flashcards.delete_deck(deck_id)
    if ctl.study is not None and ctl.study.deck.id == deck_id:
        ctl.exit_study()
    return {"success": True}


@app.get("/decks/{deck_id}/export")
def export_deck(deck_id: str, ctl: AppController = Depends(get_controller), user: User = Depends(current_user)):
    document, filename = ctl.flashcards.export_deck(deck_id)
    # Header values must be latin-1; non-ASCII names go in the RFC 5987 filename* form
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "").replace("\\", "")
    disposition = f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"
    return Response(
        content=document,
        media_type="application/json",
        headers={"Content-Disposition": disposition},
    )


# --- Flashcards ---

@app.get("/decks/{deck_id}/cards", response_model=List[Flashcard])
def list_cards(deck_id: str, q: Optional[str] = None, ctl: AppController = Depends(get_controller),
               user: User = Depends(current_user)):
    return ctl.flashcards.search_flashcards(deck_id, q or "")


@app.post("/decks/{deck_id}/cards")
def add_card(deck_id: str, request: FlashcardCreate, ctl: AppController = Depends(get_controller),
             user: User = Depends(current_user)):
    return ctl.flashcards.add_flashcard(deck_id, request.front, request.back)


@app.put("/decks/{deck_id}/cards/{card_id}")
def update_card(deck_id: str, card_id: str, request: FlashcardUpdate,
                ctl: AppController = Depends(get_controller), user: User = Depends(current_user)):
    return ctl.flashcards.update_flashcard(deck_id, card_id, front=request.front, back=request.back)


@app.delete("/decks/{deck_id}/cards/{card_id}")
def delete_card(deck_id: str, card_id: str, ctl: AppController = Depends(get_controller),
                user: User = Depends(current_user)):
    ctl.flashcards.delete_flashcard(deck_id, card_id)
    return {"success": True}


# --- Study ---

@app.post("/decks/{deck_id}/study")
def start_study(deck_id: str, ctl: AppController = Depends(get_controller), user: User = Depends(current_user)):
    return ctl.start_study(deck_id).snapshot()


@app.get("/study")
def get_study(study: StudyMode = Depends(active_study)):
    return study.snapshot()


@app.post("/study/flip")
def flip_card(study: StudyMode = Depends(active_study)):
    study.flip()
    return study.snapshot()


@app.post("/study/answer")
def answer_card(request: AnswerRequest, study: StudyMode = Depends(active_study)):
    if not study.answer(request.correct):
        raise HTTPException(status_code=409, detail="Flip the card before answering")
    return study.snapshot()


@app.post("/study/restart")
def restart_study(study: StudyMode = Depends(active_study)):
    study.restart()
    return study.snapshot()


@app.delete("/study")
def exit_study(ctl: AppController = Depends(get_controller), user: User = Depends(current_user)):
    ctl.exit_study()
    return {"success": True}


# --- Dashboard & preferences ---

@app.get("/stats")
def get_stats(ctl: AppController = Depends(get_controller), user: User = Depends(current_user)):
    return ctl.flashcards.stats()


@app.get("/theme")
def get_theme(ctl: AppController = Depends(get_controller)):
    return {"theme": ctl.flashcards.state.theme}


@app.post("/theme/toggle")
def toggle_theme(ctl: AppController = Depends(get_controller)):
    return {"theme": ctl.flashcards.toggle_theme()}


@app.get("/drafts/deck")
def get_deck_draft(ctl: AppController = Depends(get_controller)):
    return ctl.deck_store.load_deck_draft() or DeckDraft()


@app.put("/drafts/deck")
def save_deck_draft(draft: DeckDraft, ctl: AppController = Depends(get_controller)):
    ctl.deck_store.save_deck_draft(draft)
    return {"success": True}


@app.delete("/drafts/deck")
def clear_deck_draft(ctl: AppController = Depends(get_controller)):
    ctl.deck_store.clear_deck_draft()
    return {"success": True}


@app.get("/drafts/flashcard")
def get_flashcard_draft(ctl: AppController = Depends(get_controller)):
    return ctl.deck_store.load_flashcard_draft() or FlashcardDraft()


@app.put("/drafts/flashcard")
def save_flashcard_draft(draft: FlashcardDraft, ctl: AppController = Depends(get_controller)):
    ctl.deck_store.save_flashcard_draft(draft)
    return {"success": True}


@app.delete("/drafts/flashcard")
def clear_flashcard_draft(ctl: AppController = Depends(get_controller)):
    ctl.deck_store.clear_flashcard_draft()
    return {"success": True}
