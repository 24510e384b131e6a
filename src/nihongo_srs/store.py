from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .config import settings
from .logging import logger
from .srs import (
    CategoryKey,
    Level,
    SchedulingState,
    VocabularyDraft,
    VocabularyItem,
)


class StorageUnavailableError(RuntimeError):
    """Raised when the SQLite database cannot be read or written."""


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_iso(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class SRSSQLiteStore:
    """SQLite-backed vocabulary and SRS progress store.

    - vocabulary_words: 同期・インポートされた語彙（level+category+front で一意）
    - srs_progress: (level, categories, word_id) 単位のスケジューリング状態
    - categories 列はソート済みカテゴリの JSON 配列
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path, timeout=10.0, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        with conn:  # autocommit on pragma
            conn.execute("PRAGMA journal_mode=WAL;")
        return conn

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.error("storage_unavailable", db_path=self.db_path, error=repr(exc))
            raise StorageUnavailableError(f"cannot open database: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            logger.error("storage_unavailable", db_path=self.db_path, error=repr(exc))
            raise StorageUnavailableError(str(exc)) from exc
        finally:
            conn.close()

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        with self._conn() as conn:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS vocabulary_words (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        level TEXT NOT NULL,
                        category TEXT NOT NULL,
                        front TEXT NOT NULL,
                        back TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );
                    """
                )
                conn.execute(
                    "CREATE UNIQUE INDEX IF NOT EXISTS idx_vocab_level_cat_front "
                    "ON vocabulary_words(level, category, front);"
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS srs_progress (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        level TEXT NOT NULL,
                        categories TEXT NOT NULL,
                        word_id INTEGER NOT NULL,
                        repetitions INTEGER NOT NULL DEFAULT 0,
                        ease_factor INTEGER NOT NULL DEFAULT 2500,
                        interval_days INTEGER NOT NULL DEFAULT 0,
                        next_review TEXT,
                        last_reviewed TEXT
                    );
                    """
                )
                conn.execute(
                    "CREATE UNIQUE INDEX IF NOT EXISTS idx_progress_key "
                    "ON srs_progress(level, categories, word_id);"
                )

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> VocabularyItem:
        return VocabularyItem(
            id=int(row["id"]),
            level=Level(row["level"]),
            category=row["category"],
            front=row["front"],
            back=row["back"],
            created_at=_from_iso(row["created_at"]),
        )

    @staticmethod
    def _row_to_state(row: sqlite3.Row) -> SchedulingState:
        return SchedulingState(
            record_id=int(row["id"]),
            item_id=int(row["word_id"]),
            level=Level(row["level"]),
            category_key=CategoryKey.loads(row["categories"]),
            repetitions=int(row["repetitions"]),
            ease_factor=int(row["ease_factor"]),
            interval=int(row["interval_days"]),
            next_review=_from_iso(row["next_review"]),
            last_reviewed=_from_iso(row["last_reviewed"]),
        )

    # --- content provider ---
    def list_vocabulary(
        self, level: Level, categories: Iterable[str] | None = None
    ) -> list[VocabularyItem]:
        """Return the words of ``level``; an empty category selection means all."""

        wanted = sorted(set(categories or ()))
        query = "SELECT * FROM vocabulary_words WHERE level = ?"
        params: list[object] = [Level(level).value]
        if wanted:
            query += f" AND category IN ({', '.join('?' for _ in wanted)})"
            params.extend(wanted)
        query += " ORDER BY id ASC;"
        with self._conn() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_item(row) for row in rows]

    def add_vocabulary(self, drafts: Iterable[VocabularyDraft]) -> int:
        """Insert drafts whose (level, category, front) is not stored yet.

        追加できた件数を返す。既存の語は上書きしない。
        """

        now = datetime.now(UTC).isoformat()
        added = 0
        with self._conn() as conn:
            with conn:
                conn.execute("BEGIN IMMEDIATE;")
                for draft in drafts:
                    cur = conn.execute(
                        """
                        INSERT OR IGNORE INTO vocabulary_words(level, category, front, back, created_at)
                        VALUES (?, ?, ?, ?, ?);
                        """,
                        (Level(draft.level).value, draft.category, draft.front, draft.back, now),
                    )
                    added += cur.rowcount
        return added

    # --- progress store ---
    def query_progress(
        self,
        level: Level,
        category_key: CategoryKey,
        item_ids: Iterable[int] | None = None,
    ) -> list[SchedulingState]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM srs_progress WHERE level = ? AND categories = ? ORDER BY id ASC;",
                (Level(level).value, category_key.dumps()),
            ).fetchall()
        states = [self._row_to_state(row) for row in rows]
        if item_ids is None:
            return states
        wanted = set(item_ids)
        return [state for state in states if state.item_id in wanted]

    def get_progress(
        self, level: Level, category_key: CategoryKey, item_id: int
    ) -> Optional[SchedulingState]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM srs_progress WHERE level = ? AND categories = ? AND word_id = ?;",
                (Level(level).value, category_key.dumps(), item_id),
            ).fetchone()
        return self._row_to_state(row) if row is not None else None

    def list_level_progress(self, level: Level) -> list[SchedulingState]:
        """Return every progress record of ``level`` across all category keys."""

        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM srs_progress WHERE level = ? ORDER BY id ASC;",
                (Level(level).value,),
            ).fetchall()
        return [self._row_to_state(row) for row in rows]

    def put_progress(self, state: SchedulingState) -> SchedulingState:
        """Insert a new record or update the existing one; returns it with ``record_id``."""

        values = (
            state.repetitions,
            state.ease_factor,
            state.interval,
            _to_iso(state.next_review),
            _to_iso(state.last_reviewed),
        )
        key = (Level(state.level).value, state.category_key.dumps(), state.item_id)
        with self._conn() as conn:
            with conn:
                conn.execute("BEGIN IMMEDIATE;")
                if state.record_id is not None:
                    cur = conn.execute(
                        """
                        UPDATE srs_progress
                        SET repetitions = ?, ease_factor = ?, interval_days = ?,
                            next_review = ?, last_reviewed = ?
                        WHERE id = ?;
                        """,
                        (*values, state.record_id),
                    )
                    if cur.rowcount > 0:
                        return state
                    # 行が消えている（全データ削除後など）場合はキーで作り直す
                    logger.warning(
                        "progress_record_missing",
                        record_id=state.record_id,
                        item_id=state.item_id,
                    )
                conn.execute(
                    """
                    INSERT INTO srs_progress(
                        level, categories, word_id,
                        repetitions, ease_factor, interval_days, next_review, last_reviewed
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(level, categories, word_id) DO UPDATE SET
                        repetitions = excluded.repetitions,
                        ease_factor = excluded.ease_factor,
                        interval_days = excluded.interval_days,
                        next_review = excluded.next_review,
                        last_reviewed = excluded.last_reviewed;
                    """,
                    (*key, *values),
                )
                row = conn.execute(
                    "SELECT id FROM srs_progress WHERE level = ? AND categories = ? AND word_id = ?;",
                    key,
                ).fetchone()
        return replace(state, record_id=int(row["id"]))

    # --- maintenance ---
    def reset(self) -> None:
        """Delete all vocabulary and progress (全データ削除)."""

        with self._conn() as conn:
            with conn:
                conn.execute("BEGIN IMMEDIATE;")
                conn.execute("DELETE FROM srs_progress;")
                conn.execute("DELETE FROM vocabulary_words;")


# module-level singleton store (wired to settings)
store = SRSSQLiteStore(db_path=settings.srs_db_path)


def get_store() -> SRSSQLiteStore:
    """FastAPI dependency returning the shared store."""
    return store
