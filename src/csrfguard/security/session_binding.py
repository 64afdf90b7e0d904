"""Binds issued tokens to the session identifier they were issued for.

The binding is stored in the session as ``{session_id}/{token}``. When the
session identifier changes (login, role change) the stored prefix no longer
matches and the old token is treated as foreign, without any revocation
bookkeeping.
"""

from __future__ import annotations

import hmac
import logging

from csrfguard.exceptions import RejectReason
from csrfguard.sessions.protocol import SessionStore

__all__ = ["SessionBinder"]

logger = logging.getLogger(__name__)


class SessionBinder:
    def __init__(self, key: str):
        self.key = key

    def bind(self, session: SessionStore, token: str) -> None:
        session.put(self.key, f"{session.identifier()}/{token}")

    def lookup(self, session: SessionStore) -> str | None:
        """Token bound to the current session identifier, or None."""
        return self._token_for(session.identifier(), session.get(self.key))

    def consume(self, session: SessionStore) -> None:
        session.remove(self.key)

    def claim(self, session: SessionStore, token: str) -> RejectReason | None:
        """Consume the binding if it holds *token* for this session.

        Returns None on success, otherwise the reason the claim failed. The
        binding is taken with a single ``remove()`` so two concurrent requests
        cannot both claim it. A binding that does not match *token* is put
        back with ``put_if_absent()``, so a newer binding written meanwhile
        (for example by a concurrent GET) wins. Between the remove and the
        restore a concurrent claim of the legitimate token sees no binding
        and is rejected; the client recovers by fetching a fresh token.
        """
        session_id = session.identifier()
        stored = session.remove(self.key)
        if stored is None:
            logger.debug("No token has been added to the session")
            return RejectReason.NO_SESSION_BINDING

        bound = self._token_for(session_id, stored)
        if bound is None:
            logger.debug("Token has been issued for a different session")
            return RejectReason.FOREIGN_SESSION
        if not hmac.compare_digest(bound.encode(), token.encode()):
            logger.debug("Token has been used or is outdated")
            session.put_if_absent(self.key, stored)
            return RejectReason.TOKEN_MISMATCH
        return None

    @staticmethod
    def _token_for(session_id: str | None, stored: str | None) -> str | None:
        if stored is None or not session_id:
            return None
        prefix, sep, token = stored.partition("/")
        if not sep or prefix != session_id:
            return None
        return token
