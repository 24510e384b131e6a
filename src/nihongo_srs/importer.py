"""Vocabulary CSV import.

スプレッドシートから書き出した CSV（ヘッダ: Lesson, Japanese, English）を
語彙ドラフトへ変換する。保存と重複排除は ``store.add_vocabulary`` が行う。
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

from .logging import logger
from .srs import DEFAULT_CATEGORY, Level, VocabularyDraft

if TYPE_CHECKING:
    from .store import SRSSQLiteStore


class VocabularyImportError(ValueError):
    """Raised when a CSV payload cannot be turned into vocabulary."""


def decode_csv_bytes(raw: bytes) -> str:
    """Decode an uploaded CSV as UTF-8 (BOM allowed); invalid bytes are rejected."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise VocabularyImportError(f"CSV is not valid UTF-8: {exc}") from exc


def _cell(row: pd.Series, column: str) -> str:
    value = row.get(column, "")
    return str(value).strip() if value is not None else ""


def parse_vocabulary_csv(text: str, level: Level) -> list[VocabularyDraft]:
    """Parse CSV ``text`` into drafts for ``level``.

    - Japanese / English 列の両方が無い場合はエラー
    - どちらかが空の行はスキップ
    - Lesson が空なら KANJI 扱い
    """

    if not text or not text.strip():
        raise VocabularyImportError("No data found in the CSV payload")
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise VocabularyImportError(f"CSV parsing error: {exc}") from exc

    df.columns = [str(column).strip() for column in df.columns]
    if "Japanese" not in df.columns and "English" not in df.columns:
        raise VocabularyImportError('CSV must have "Japanese" and "English" columns')

    drafts: list[VocabularyDraft] = []
    for _, row in df.iterrows():
        front = _cell(row, "Japanese")
        back = _cell(row, "English")
        if not front or not back:
            continue
        drafts.append(
            VocabularyDraft(
                level=Level(level),
                category=_cell(row, "Lesson") or DEFAULT_CATEGORY,
                front=front,
                back=back,
            )
        )
    return drafts


def import_vocabulary_file(path: Path, level: Level, store: "SRSSQLiteStore") -> tuple[int, int]:
    """Parse a CSV file and store it; returns (parsed, added)."""

    drafts = parse_vocabulary_csv(decode_csv_bytes(Path(path).read_bytes()), level)
    added = store.add_vocabulary(drafts)
    logger.info(
        "vocabulary_imported",
        level=Level(level).value,
        source=str(path),
        parsed=len(drafts),
        added=added,
    )
    return len(drafts), added
