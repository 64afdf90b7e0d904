# Tests for the in-memory session store and token/session binding.
# Created: 2026-10-19

import threading

from csrfguard.exceptions import RejectReason
from csrfguard.security.session_binding import SessionBinder
from csrfguard.sessions import MemorySession, MemorySessionManager, SessionStore

KEY = "X-XSRF-TOKEN"


class TestMemorySession:
    def test_satisfies_protocol(self):
        assert isinstance(MemorySession(), SessionStore)

    def test_get_put_remove(self):
        s = MemorySession("abc")
        assert s.identifier() == "abc"
        assert s.get("k") is None
        s.put("k", "v")
        assert s.get("k") == "v"
        assert s.remove("k") == "v"
        assert s.remove("k") is None

    def test_put_if_absent(self):
        s = MemorySession("abc")
        assert s.put_if_absent("k", "first") is True
        assert s.put_if_absent("k", "second") is False
        assert s.get("k") == "first"


class TestMemorySessionManager:
    def test_create_and_get(self):
        mgr = MemorySessionManager()
        s = mgr.create()
        assert mgr.get(s.identifier()) is s
        assert mgr.get("unknown") is None
        assert mgr.get(None) is None

    def test_regenerate_keeps_data(self):
        mgr = MemorySessionManager()
        s = mgr.create()
        s.put("k", "v")
        old_id = s.identifier()
        mgr.regenerate(s)
        assert s.identifier() != old_id
        assert mgr.get(old_id) is None
        assert mgr.get(s.identifier()).get("k") == "v"

    def test_destroy(self):
        mgr = MemorySessionManager()
        s = mgr.create()
        mgr.destroy(s)
        assert len(mgr) == 0

    def test_cleanup_removes_idle(self):
        mgr = MemorySessionManager(idle_timeout=60)
        old = mgr.create()
        old.last_access -= 120
        mgr.create()
        assert mgr.cleanup() == 1
        assert mgr.get(old.identifier()) is None
        assert len(mgr) == 1


class TestSessionBinder:
    def test_bind_format(self):
        s = MemorySession("sid")
        SessionBinder(KEY).bind(s, "tok")
        assert s.get(KEY) == "sid/tok"

    def test_lookup_same_session(self):
        s = MemorySession("sid")
        binder = SessionBinder(KEY)
        binder.bind(s, "a.b.c")
        assert binder.lookup(s) == "a.b.c"

    def test_lookup_without_binding(self):
        assert SessionBinder(KEY).lookup(MemorySession("sid")) is None

    def test_lookup_after_identifier_change(self):
        mgr = MemorySessionManager()
        s = mgr.create()
        binder = SessionBinder(KEY)
        binder.bind(s, "a.b.c")
        mgr.regenerate(s)
        assert binder.lookup(s) is None

    def test_lookup_rejects_prefix_only_match(self):
        s = MemorySession("sid")
        s.put(KEY, "sid-other/tok")
        assert SessionBinder(KEY).lookup(s) is None
        s.put(KEY, "no-separator")
        assert SessionBinder(KEY).lookup(s) is None

    def test_token_may_contain_slashes(self):
        s = MemorySession("sid")
        binder = SessionBinder(KEY)
        binder.bind(s, "ab/cd.123.ef/gh=")
        assert binder.lookup(s) == "ab/cd.123.ef/gh="

    def test_consume(self):
        s = MemorySession("sid")
        binder = SessionBinder(KEY)
        binder.bind(s, "tok")
        binder.consume(s)
        assert s.get(KEY) is None

    def test_bind_overwrites(self):
        s = MemorySession("sid")
        binder = SessionBinder(KEY)
        binder.bind(s, "one")
        binder.bind(s, "two")
        assert binder.lookup(s) == "two"


class TestClaim:
    def test_claim_consumes(self):
        s = MemorySession("sid")
        binder = SessionBinder(KEY)
        binder.bind(s, "tok")
        assert binder.claim(s, "tok") is None
        assert s.get(KEY) is None
        assert binder.claim(s, "tok") == RejectReason.NO_SESSION_BINDING

    def test_mismatch_restores_binding(self):
        s = MemorySession("sid")
        binder = SessionBinder(KEY)
        binder.bind(s, "tok")
        assert binder.claim(s, "other") == RejectReason.TOKEN_MISMATCH
        assert binder.lookup(s) == "tok"

    def test_foreign_session(self):
        mgr = MemorySessionManager()
        s = mgr.create()
        binder = SessionBinder(KEY)
        binder.bind(s, "tok")
        mgr.regenerate(s)
        assert binder.claim(s, "tok") == RejectReason.FOREIGN_SESSION

    def test_concurrent_claims_have_one_winner(self):
        s = MemorySession("sid")
        binder = SessionBinder(KEY)
        binder.bind(s, "tok")
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(binder.claim(s, "tok"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(None) == 1
        assert results.count(RejectReason.NO_SESSION_BINDING) == 7


class _RebindDuringRemove(MemorySession):
    """Writes a newer binding right after the claim removes the old one."""

    __slots__ = ("newer",)

    def __init__(self, session_id, newer):
        super().__init__(session_id)
        self.newer = newer

    def remove(self, key):
        stored = super().remove(key)
        self.put(key, self.newer)
        return stored


class TestClaimRestore:
    def test_mismatch_does_not_overwrite_newer_binding(self):
        s = _RebindDuringRemove("sid", "sid/newer")
        binder = SessionBinder(KEY)
        s.put(KEY, "sid/tok")
        assert binder.claim(s, "other") == RejectReason.TOKEN_MISMATCH
        assert s.get(KEY) == "sid/newer"
