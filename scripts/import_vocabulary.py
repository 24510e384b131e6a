#!/usr/bin/env python
"""CSV（Lesson, Japanese, English）から語彙を SQLite ストアへ取り込むユーティリティ。"""

from __future__ import annotations

import argparse
import os
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "csv_path",
        type=Path,
        help="取り込む CSV ファイルのパス（1 行目はヘッダ）。",
    )
    parser.add_argument(
        "--level",
        required=True,
        choices=["N5", "N4", "N3", "N2", "N1"],
        help="取り込み先の JLPT レベル。",
    )
    parser.add_argument(
        "--db-path",
        default=os.environ.get("SRS_DB_PATH", ".data/srs.sqlite3"),
        help="SQLite DB のパス（既定: SRS_DB_PATH または .data/srs.sqlite3）。",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    # 設定クラスは import 時点で環境変数を読むため、先に上書きしてから読み込む。
    os.environ["SRS_DB_PATH"] = str(args.db_path)

    from nihongo_srs.importer import import_vocabulary_file
    from nihongo_srs.srs import Level
    from nihongo_srs.store import SRSSQLiteStore

    store = SRSSQLiteStore(db_path=str(args.db_path))
    parsed, added = import_vocabulary_file(args.csv_path, Level(args.level), store)
    print(f"Parsed {parsed} rows, added {added} new words to {args.level} ({args.db_path}).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
