"""
FastAPI main application
Pub quiz contest server

Routers in pubquiz/api/:
- health.py: Health check and system status
- admin.py: Round lifecycle, contest definition, roster and team formation
- submission.py: Team status, guess submission and rename
- leaderboard.py: Leaderboard data and per-round results
- people.py: Registration actions for individual people
- config.py: Configuration retrieval

Shared settings live in the pubquiz.state module.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
import logging
import os

from pubquiz import state
from pubquiz.config import load_config
from pubquiz.core.content import MediaDirectoryResolver
from pubquiz.database import SessionLocal, init_db
from pubquiz.services.team_registry import ensure_admin_team

from pubquiz.api import health, admin, submission, leaderboard, people
from pubquiz.api import config as config_router


# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "QUIZ_CONFIG"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    try:
        state.SETTINGS = load_config(os.environ.get(CONFIG_PATH_ENV, "config/quiz.yaml"))
        init_db(state.SETTINGS.database_url)
        with SessionLocal() as db:
            ensure_admin_team(db, state.SETTINGS.admin_team_id)
        state.CONTENT_RESOLVER = MediaDirectoryResolver(state.SETTINGS.media_dir)
        logger.info(f"✅ Server started | team size {state.SETTINGS.team_size}")
    except Exception as e:
        logger.error(f"❌ Failed to start: {e}")
        raise

    yield

    logger.info("🛑 Server shutting down")


app = FastAPI(
    title="Pub Quiz Server",
    description="Live multi-team quiz contest with timed hints and round scoring",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware (allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"💥 Store error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"ok": False, "error": "server_error"})


# ==================== INCLUDE ROUTERS ====================

# Health check (GET /)
app.include_router(health.router)

# Admin endpoints (POST /admin/round, /admin/define, /admin/make-teams, ...)
app.include_router(admin.router)

# Team endpoints (GET /status, POST /guess, POST /rename)
app.include_router(submission.router)

# Leaderboard endpoints (GET /api/leaderboard-data, /api/rounds/{id}/results)
app.include_router(leaderboard.router)

# Registration endpoints (GET /people/status, POST /people/join, ...)
app.include_router(people.router)

# Config endpoint (GET /config)
app.include_router(config_router.router)


# ==================== RUN SERVER ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
