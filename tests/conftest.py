from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Tuple, Union

import pytest

from core.db import connect

OptionSeed = Tuple[str, Union[str, bytes], str]


def create_options_db(path: Path, rows: Iterable[OptionSeed], *, table: str = "wp_options") -> Path:
    conn = connect(path)
    try:
        conn.execute(
            f"""
            CREATE TABLE {table} (
                option_id INTEGER PRIMARY KEY AUTOINCREMENT,
                option_name TEXT NOT NULL UNIQUE,
                option_value BLOB NOT NULL,
                autoload TEXT NOT NULL DEFAULT 'yes'
            )
            """
        )
        conn.executemany(
            f"INSERT INTO {table}(option_name, option_value, autoload) VALUES (?, ?, ?)",
            list(rows),
        )
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def make_store(tmp_path: Path) -> Callable[..., Path]:
    counter = {"n": 0}

    def _make(rows: Iterable[OptionSeed] = (), *, table: str = "wp_options") -> Path:
        counter["n"] += 1
        return create_options_db(tmp_path / f"options-{counter['n']}.db", rows, table=table)

    return _make
