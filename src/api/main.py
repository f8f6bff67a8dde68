import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.deps import get_settings
from src.core.services.drag import build_drag_table, check_drag_integrity
from src.core.services.editor_plugins import create_editor_plugins
from src.rules.loader import load_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and check the plugin tables on startup (fail-fast)
    rules = load_rules(settings.rules_path)
    check_drag_integrity(build_drag_table(), create_editor_plugins(rules))
    logger.info("Editor ready with rules from %s", settings.rules_path)

    yield


app = FastAPI(
    title="Slate HTML Pipeline API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import preview  # noqa: E402

app.include_router(preview.router, prefix="/api/preview", tags=["Preview"])


# CORS (Allow Frontend)
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
