import logging
import sqlite3
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.routers import feed, follows, reviews, search, subjects, users

logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create/migrate the database, then integrity-check it
    try:
        from app.database import init_db
        settings.data_path.mkdir(parents=True, exist_ok=True)
        init_db(settings.db_path)
        conn = sqlite3.connect(str(settings.db_path))
        result = conn.execute("PRAGMA integrity_check").fetchone()
        conn.close()
        if result and result[0] == "ok":
            logger.info("Database integrity check passed.")
        else:
            logger.error("DATABASE INTEGRITY CHECK FAILED: %s", result)
    except (OSError, sqlite3.Error) as exc:
        logger.error("Could not run startup migration/integrity check: %s", exc)
    yield
    # Shutdown: drop all bearer sessions
    from app.services.session_service import session_service
    session_service.clear()


app = FastAPI(
    title="ReviewHub",
    description="Reviews and follows with ranked search and keyset-paginated feeds",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router, prefix=settings.api_prefix)
app.include_router(subjects.router, prefix=settings.api_prefix)
app.include_router(reviews.router, prefix=settings.api_prefix)
app.include_router(follows.router, prefix=settings.api_prefix)
app.include_router(feed.router, prefix=settings.api_prefix)
app.include_router(search.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}
