"""Session abstraction used by the CSRF guard."""

from csrfguard.sessions.memory import MemorySession, MemorySessionManager
from csrfguard.sessions.middleware import SessionMiddleware
from csrfguard.sessions.protocol import SessionStore

__all__ = ["MemorySession", "MemorySessionManager", "SessionMiddleware", "SessionStore"]
