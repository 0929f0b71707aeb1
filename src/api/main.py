import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from src.api.deps import get_context, get_rules, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and migrate on startup (fail-fast)
    try:
        rules = get_rules()
        logging.basicConfig(level=rules.logging.level)
        get_context()
        logger.info("Rules loaded from %s", settings.rules_path)
    except Exception as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    yield
    # Shutdown cleanup if needed


app = FastAPI(
    title="Structured Entries API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import entries  # noqa: E402

app.include_router(entries.router, prefix="/api/entries", tags=["Entries"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
