import logging
import os
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .config import ALLOWED_ORIGINS
from .database import SessionLocal
from .routes import include_modular_routers
from .services.errors import ConnectionFlowError

logger = logging.getLogger(__name__)

app = FastAPI(title="Connect API")
include_modular_routers(app)

# Specific origins required for credentials: "include"
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConnectionFlowError)
def handle_connection_flow_error(request: Request, exc: ConnectionFlowError) -> JSONResponse:
    logger.info("[api] %s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


MIGRATION_DIR_CANDIDATES = (
    Path("/app/migrations"),
    Path(__file__).resolve().parents[1] / "migrations",
)


def resolve_migrations_dir() -> Path:
    override = os.getenv("MIGRATIONS_DIR", "").strip()
    candidates = [Path(override)] if override else list(MIGRATION_DIR_CANDIDATES)
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    checked = ", ".join(str(c) for c in candidates)
    raise FileNotFoundError(f"No migrations directory found (checked {checked})")


def run_migrations() -> list[str]:
    """Apply every ``*.sql`` file in name order. Files must be idempotent."""
    migrations_dir = resolve_migrations_dir()
    applied = sorted(p.name for p in migrations_dir.glob("*.sql") if p.is_file())
    with SessionLocal() as db:
        for name in applied:
            db.execute(text((migrations_dir / name).read_text(encoding="utf-8")))
        db.commit()
    logger.info("[startup] applied %d migration file(s) from %s", len(applied), migrations_dir)
    return applied


def wait_for_db(max_attempts: int = 20, delay_seconds: float = 1.5) -> None:
    for attempt in range(1, max_attempts + 1):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
            return
        except OperationalError:
            if attempt == max_attempts:
                raise
            logger.warning("[startup] database not ready (attempt %d/%d)", attempt, max_attempts)
            time.sleep(delay_seconds)


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    run_migrations()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
