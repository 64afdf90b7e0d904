"""Session store protocol.

Created: 2026-10-19
Defines the interface the CSRF guard expects from a server-side session.

Following the protocol-first design used across the codebase, any session
backend can be plugged in:
- MemorySession: in-process dict (default, used by the demo server)
- Future: Redis, database-backed sessions, etc.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """One client's server-side session.

    The identifier may change during the session's lifetime (for example on
    login or role change); data written before the change stays readable.
    """

    def identifier(self) -> str:
        """Current session identifier."""
        ...

    def get(self, key: str) -> str | None:
        """Value stored under *key*, or None."""
        ...

    def put(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    def remove(self, key: str) -> str | None:
        """Atomically remove *key* and return the value it held, or None."""
        ...

    def put_if_absent(self, key: str, value: str) -> bool:
        """Store *value* only if *key* is unset. Returns True if it was stored."""
        ...
