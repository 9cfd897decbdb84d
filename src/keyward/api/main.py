# Keyward API - FastAPI application
#
# Local backend for the desktop frontend. Binds to 127.0.0.1 by default;
# all vault endpoints require the per-process session token.

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .. import __version__
from .security import get_session_token, initialize_session_token
from .vault_routes import close_vault_service, router as vault_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    initialize_session_token()
    yield
    await close_vault_service()


app = FastAPI(
    title="Keyward",
    description="Personal credential vault API",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(vault_router)


@app.get("/api/session")
async def get_session():
    """
    Get the session token for API authentication.

    The frontend calls this once on load and sends the token in the
    X-Session-Token header on every /api/vault call. Unprotected because
    the frontend needs it to authenticate; the server binds to localhost
    and the token changes on every restart.
    """
    return {
        "session_token": get_session_token()
    }


@app.get("/api")
async def root():
    """Liveness check for the desktop frontend."""
    return {"name": "keyward", "version": __version__}


def start_api_server(host: str = "127.0.0.1", port: int = 8000):
    """Run the API server (blocking)."""
    logger.info("Starting Keyward API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")
