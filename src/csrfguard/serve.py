"""Demo API server for ``python -m csrfguard``.

Builds a small FastAPI application protected by ``CSRFMiddleware`` with the
in-memory session store in front of it. Useful for trying the protocol from a
browser or curl, and as a wiring example for real applications.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request

from csrfguard.config import CSRFSettings
from csrfguard.middleware import CSRFMiddleware
from csrfguard.sessions import MemorySessionManager, SessionMiddleware

logger = logging.getLogger(__name__)


def create_app(
    settings: CSRFSettings | None = None,
    sessions: MemorySessionManager | None = None,
) -> FastAPI:
    """Build the demo application.

    With *sessions* set to None a fresh ``MemorySessionManager`` is used.
    """
    if settings is None:
        settings = CSRFSettings.load()
    if sessions is None:
        sessions = MemorySessionManager(idle_timeout=settings.timeout.total_seconds())

    app = FastAPI(
        title="csrfguard demo",
        description="Double-submit cookie CSRF protection with session binding.",
        version="0.1.0",
    )
    app.state.csrf_settings = settings
    app.state.sessions = sessions

    # --- Middleware (last added runs first) ------------------------------
    app.add_middleware(CSRFMiddleware, settings=settings)
    app.add_middleware(SessionMiddleware, manager=sessions)

    # --- Routes ---------------------------------------------------------

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "sessions": len(sessions)}

    @app.get("/api/csrf")
    async def get_csrf_token(request: Request):
        """Current token, for clients that cannot read the cookie."""
        return {
            "token": request.state.csrf_token,
            "header_name": settings.header_name,
        }

    @app.post("/api/echo")
    async def echo(request: Request):
        body = await request.body()
        return {"ok": True, "received": body.decode("utf-8", errors="replace")}

    @app.post("/api/session/rotate")
    async def rotate_session(request: Request):
        """Regenerate the session identifier, as a login or role change would."""
        sessions.regenerate(request.state.session)
        return {"ok": True}

    return app


def run_server(
    host: str = "127.0.0.1",
    port: int = 8000,
    dev: bool = False,
) -> None:
    """Start the demo server with uvicorn."""
    import uvicorn

    settings = CSRFSettings.load()
    if settings.origin is None:
        logger.warning("CSRF_ORIGIN is not set; Origin/Referer checks are disabled")

    print("\n" + "=" * 50)
    print("CSRFGUARD DEMO SERVER")
    print("=" * 50)
    print(f"\nListening on http://{host}:{port}  (docs at /docs)\n")

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "csrfguard.serve:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        uvicorn.run(create_app(settings), host=host, port=port)
