from pathlib import Path
from typing import Iterable, Tuple

import pytest
from sqlalchemy import create_engine, text

SAMPLE_ROWS = [
    (5, "2023-12-31 23:59:59"),
    (1, "2024-01-01 05:00:00"),
    (2, "2024-01-01 23:59:59"),
    (3, "2024-01-02 00:00:00"),
    (14, "2024-01-03 12:00:00"),
    (6, "2024-01-04 00:00:00"),
]


def _create_db(path: Path, rows: Iterable[Tuple[int, str]], table: str = "predictions") -> str:
    url = f"sqlite:///{path}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(text(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, tmstmp TEXT NOT NULL)"))
        payload = [{"id": row_id, "tmstmp": ts} for row_id, ts in rows]
        if payload:
            conn.execute(text(f"INSERT INTO {table} (id, tmstmp) VALUES (:id, :tmstmp)"), payload)
    engine.dispose()
    return url


@pytest.fixture
def make_db(tmp_path):
    def _factory(name: str, rows=SAMPLE_ROWS, table: str = "predictions") -> str:
        return _create_db(tmp_path / f"{name}.db", rows, table)

    return _factory
