"""
Delivery: running review sessions in the terminal.

Components:
- WordDeck: JSON deck loading
- StateStore: SQLite persistence for offline mode
- ReviewSession: controller wiring input gates to the queue engine
- review_cli: Typer / Rich terminal interface
"""

from .deck import WordDeck
from .session import ReviewSession, SessionBackend, SessionStatus, build_backend
from .state_store import ReviewRecord, SessionRecord, StateStore

__all__ = [
    # Decks
    "WordDeck",
    # Persistence
    "StateStore",
    "ReviewRecord",
    "SessionRecord",
    # Sessions
    "ReviewSession",
    "SessionBackend",
    "SessionStatus",
    "build_backend",
]
