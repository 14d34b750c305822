"""FastAPI application entry point."""
from typing import Optional

from fastapi import FastAPI

from .auth import router as auth_router
from .database import build_store
from .routers.admin import router as admin_router
from .routers.contact import router as contact_router
from .routers.profile import router as profile_router
from .routers.system import router as system_router
from .routers.tickets import router as tickets_router
from .store import RecordStore


def create_app(store: Optional[RecordStore] = None) -> FastAPI:
    """
    Build the API around one record store.

    Passing a store (tests, embedding) skips building one from settings
    at startup.
    """

    app = FastAPI(title="Karriery Backend", version="1.0.0")
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(tickets_router)
    app.include_router(contact_router)
    app.include_router(admin_router)
    app.include_router(system_router)

    if store is not None:
        store.initialize()
        app.state.store = store

    @app.on_event("startup")
    async def on_startup() -> None:
        """Ensure the store exists and holds the bootstrap admin."""

        if getattr(app.state, "store", None) is None:
            app.state.store = build_store()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        active_store = getattr(app.state, "store", None)
        if active_store is not None:
            active_store.substrate.close()

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        """Simple readiness probe for uptime checks."""

        return {"status": "ok"}

    return app


app = create_app()
