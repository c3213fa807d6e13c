import hashlib
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from coderush.config import settings
from coderush.progress import TIME_FIELDS

logger = logging.getLogger(__name__)

DB_PATH = Path(settings.database_path)


def get_db_path() -> Path:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    return DB_PATH


def code_digest(code: str, language: str) -> str:
    return hashlib.sha256(f"{language}\0{code}".encode()).hexdigest()


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _run_migrations(conn):
    """Run schema migrations."""
    cols = [row[1] for row in conn.execute("PRAGMA table_info(profiles)").fetchall()]
    for column in TIME_FIELDS.values():
        if column not in cols:
            conn.execute(f"ALTER TABLE profiles ADD COLUMN {column} INTEGER")
    if "updated_at" not in cols:
        conn.execute("ALTER TABLE profiles ADD COLUMN updated_at TIMESTAMP")

    # The view depends on the profile columns, so rebuild it after altering them
    conn.execute("DROP VIEW IF EXISTS public_leaderboard")
    conn.execute(
        """
        CREATE VIEW public_leaderboard AS
        SELECT
            id,
            username,
            email,
            time_easy_ms,
            time_medium_ms,
            time_hard_ms,
            CASE
                WHEN time_easy_ms IS NULL AND time_medium_ms IS NULL AND time_hard_ms IS NULL
                THEN NULL
                ELSE COALESCE(time_easy_ms, 0) + COALESCE(time_medium_ms, 0) + COALESCE(time_hard_ms, 0)
            END AS total_time_ms
        FROM profiles
        """
    )


def init_db():
    """Create tables if they don't exist."""
    with get_connection() as conn:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT UNIQUE NOT NULL,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS profiles (
                id INTEGER PRIMARY KEY,
                username TEXT,
                email TEXT,
                time_easy_ms INTEGER,
                time_medium_ms INTEGER,
                time_hard_ms INTEGER,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (id) REFERENCES users(id)
            );

            CREATE TABLE IF NOT EXISTS attempts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                level TEXT NOT NULL,
                started_at_ms INTEGER NOT NULL,
                verified_digest TEXT,
                UNIQUE (user_id, level),
                FOREIGN KEY (user_id) REFERENCES users(id)
            );

            CREATE TABLE IF NOT EXISTS api_usage (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER,
                model TEXT NOT NULL,
                prompt_tokens INTEGER NOT NULL,
                completion_tokens INTEGER NOT NULL,
                total_tokens INTEGER NOT NULL,
                operation TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        """)
        _run_migrations(conn)


@contextmanager
def get_connection():
    conn = sqlite3.connect(get_db_path())
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


# Profile helpers
def upsert_profile(user_id: int, username: str, email: str):
    with get_connection() as conn:
        conn.execute(
            """
            INSERT INTO profiles (id, username, email) VALUES (?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                username = excluded.username,
                email = excluded.email,
                updated_at = CURRENT_TIMESTAMP
            """,
            (user_id, username, email),
        )


def get_profile(user_id: int) -> dict | None:
    with get_connection() as conn:
        row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
    return dict(row) if row else None


def save_problem_time(user_id: int, level: str, duration_ms: int) -> bool:
    """Store the duration for ``level``, keeping the other tiers' times."""
    try:
        existing = get_profile(user_id) or {}
        times = {column: existing.get(column) for column in TIME_FIELDS.values()}
        times[TIME_FIELDS[level]] = int(duration_ms)

        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO profiles (id, time_easy_ms, time_medium_ms, time_hard_ms)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    time_easy_ms = excluded.time_easy_ms,
                    time_medium_ms = excluded.time_medium_ms,
                    time_hard_ms = excluded.time_hard_ms,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (user_id, times["time_easy_ms"], times["time_medium_ms"], times["time_hard_ms"]),
            )
        return True
    except (sqlite3.Error, KeyError) as e:
        logger.error(f"Failed saving problem time for user {user_id}: {e}")
        return False


def fetch_leaderboard_rows() -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            """SELECT id, username, email, time_easy_ms, time_medium_ms,
                      time_hard_ms, total_time_ms
               FROM public_leaderboard"""
        ).fetchall()
    return [dict(row) for row in rows]


# Attempt helpers
def start_attempt(user_id: int, level: str) -> int:
    started = _now_ms()
    with get_connection() as conn:
        conn.execute(
            """
            INSERT INTO attempts (user_id, level, started_at_ms, verified_digest)
            VALUES (?, ?, ?, NULL)
            ON CONFLICT(user_id, level) DO UPDATE SET
                started_at_ms = excluded.started_at_ms,
                verified_digest = NULL
            """,
            (user_id, level, started),
        )
    return started


def get_attempt(user_id: int, level: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM attempts WHERE user_id = ? AND level = ?", (user_id, level)
        ).fetchone()
    return dict(row) if row else None


def set_verified_code(user_id: int, level: str, code: str | None, language: str = "python"):
    digest = code_digest(code, language) if code is not None else None
    with get_connection() as conn:
        conn.execute(
            "UPDATE attempts SET verified_digest = ? WHERE user_id = ? AND level = ?",
            (digest, user_id, level),
        )


def finish_attempt(user_id: int, level: str) -> int | None:
    """Close the attempt and return its duration in milliseconds."""
    attempt = get_attempt(user_id, level)
    if not attempt:
        return None
    with get_connection() as conn:
        conn.execute(
            "DELETE FROM attempts WHERE user_id = ? AND level = ?", (user_id, level)
        )
    return max(_now_ms() - attempt["started_at_ms"], 0)


def save_api_usage(
    user_id: int | None,
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
    total_tokens: int,
    operation: str,
) -> None:
    """Save API usage record to database."""
    with get_connection() as conn:
        conn.execute(
            """INSERT INTO api_usage
               (user_id, model, prompt_tokens, completion_tokens, total_tokens, operation)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (user_id, model, prompt_tokens, completion_tokens, total_tokens, operation),
        )
