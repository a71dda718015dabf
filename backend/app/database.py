import sqlite3
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.config import settings


class Base(DeclarativeBase):
    pass


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(db_path: Path | None = None):
    path = db_path or settings.db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


SCHEMA_SQL = """\
-- ============================================================
-- USERS
-- ============================================================
CREATE TABLE IF NOT EXISTS users (
    id            INTEGER PRIMARY KEY,
    username      TEXT NOT NULL UNIQUE,
    display_name  TEXT,
    password_hash TEXT NOT NULL,
    is_moderator  INTEGER NOT NULL DEFAULT 0,
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

-- ============================================================
-- SUBJECTS
-- ============================================================
CREATE TABLE IF NOT EXISTS subject_types (
    id           INTEGER PRIMARY KEY,
    key          TEXT NOT NULL UNIQUE,
    display_name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS subjects (
    id              INTEGER PRIMARY KEY,
    subject_type_id INTEGER NOT NULL REFERENCES subject_types(id),
    name            TEXT NOT NULL,
    slug            TEXT NOT NULL UNIQUE,
    is_deleted      INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_subjects_type ON subjects(subject_type_id);
CREATE INDEX IF NOT EXISTS idx_subjects_created ON subjects(created_at DESC, id DESC);

-- ============================================================
-- REVIEWS
-- ============================================================
CREATE TABLE IF NOT EXISTS reviews (
    id         INTEGER PRIMARY KEY,
    subject_id INTEGER NOT NULL REFERENCES subjects(id),
    user_id    INTEGER NOT NULL REFERENCES users(id),
    title      TEXT,
    content    TEXT,
    excerpt    TEXT,
    status     TEXT NOT NULL DEFAULT 'pending'
               CHECK(status IN ('pending','approved','rejected','flagged')),
    is_deleted INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_reviews_subject ON reviews(subject_id);
CREATE INDEX IF NOT EXISTS idx_reviews_user ON reviews(user_id);
CREATE INDEX IF NOT EXISTS idx_reviews_latest ON reviews(status, is_deleted, created_at DESC, id DESC);

-- ============================================================
-- FOLLOWS
-- ============================================================
CREATE TABLE IF NOT EXISTS follows (
    id               INTEGER PRIMARY KEY,
    follower_id      INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    target_type      TEXT NOT NULL CHECK(target_type IN ('subject','subject_type','user')),
    subject_id       INTEGER REFERENCES subjects(id) ON DELETE CASCADE,
    subject_type_id  INTEGER REFERENCES subject_types(id) ON DELETE CASCADE,
    followed_user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
    created_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_follows_follower ON follows(follower_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_follows_target
    ON follows(follower_id, target_type, IFNULL(subject_id, 0),
               IFNULL(subject_type_id, 0), IFNULL(followed_user_id, 0));

-- ============================================================
-- FTS5
-- ============================================================
CREATE VIRTUAL TABLE IF NOT EXISTS subjects_fts USING fts5(
    name, slug,
    content='subjects', content_rowid='id'
);

CREATE VIRTUAL TABLE IF NOT EXISTS reviews_fts USING fts5(
    title, content, excerpt,
    content='reviews', content_rowid='id'
);
"""

FTS_TRIGGERS_SQL = """\
-- Subjects FTS sync triggers
CREATE TRIGGER IF NOT EXISTS subjects_ai AFTER INSERT ON subjects BEGIN
    INSERT INTO subjects_fts(rowid, name, slug)
    VALUES (new.id, new.name, new.slug);
END;

CREATE TRIGGER IF NOT EXISTS subjects_ad AFTER DELETE ON subjects BEGIN
    INSERT INTO subjects_fts(subjects_fts, rowid, name, slug)
    VALUES ('delete', old.id, old.name, old.slug);
END;

CREATE TRIGGER IF NOT EXISTS subjects_au AFTER UPDATE ON subjects BEGIN
    INSERT INTO subjects_fts(subjects_fts, rowid, name, slug)
    VALUES ('delete', old.id, old.name, old.slug);
    INSERT INTO subjects_fts(rowid, name, slug)
    VALUES (new.id, new.name, new.slug);
END;

-- Reviews FTS sync triggers
CREATE TRIGGER IF NOT EXISTS reviews_ai AFTER INSERT ON reviews BEGIN
    INSERT INTO reviews_fts(rowid, title, content, excerpt)
    VALUES (new.id, new.title, new.content, new.excerpt);
END;

CREATE TRIGGER IF NOT EXISTS reviews_ad AFTER DELETE ON reviews BEGIN
    INSERT INTO reviews_fts(reviews_fts, rowid, title, content, excerpt)
    VALUES ('delete', old.id, old.title, old.content, old.excerpt);
END;

CREATE TRIGGER IF NOT EXISTS reviews_au AFTER UPDATE ON reviews BEGIN
    INSERT INTO reviews_fts(reviews_fts, rowid, title, content, excerpt)
    VALUES ('delete', old.id, old.title, old.content, old.excerpt);
    INSERT INTO reviews_fts(rowid, title, content, excerpt)
    VALUES (new.id, new.title, new.content, new.excerpt);
END;
"""


MIGRATIONS = [
    # v0.2: review excerpts
    "ALTER TABLE reviews ADD COLUMN excerpt TEXT",
    # v0.3: keyset index for the latest/feed walks
    "CREATE INDEX IF NOT EXISTS idx_reviews_latest ON reviews(status, is_deleted, created_at DESC, id DESC)",
    # v0.4: review moderation is restricted to moderators
    "ALTER TABLE users ADD COLUMN is_moderator INTEGER NOT NULL DEFAULT 0",
]


def init_db(db_path: Path | None = None):
    path = db_path or settings.db_path
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    conn.executescript(FTS_TRIGGERS_SQL)
    # Run migrations idempotently (ALTER TABLE fails if the column exists)
    for migration in MIGRATIONS:
        try:
            conn.execute(migration)
            conn.commit()
        except sqlite3.OperationalError:
            pass  # already applied
    conn.close()
