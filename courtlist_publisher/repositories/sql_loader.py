from __future__ import annotations

from functools import lru_cache
from pathlib import Path


SQL_DIR = Path(__file__).with_name("sql")


@lru_cache(maxsize=None)
def load_sql(name: str) -> str:
    if not name.endswith(".sql"):
        raise ValueError(f"sql file name must end with .sql: {name}")
    return (SQL_DIR / name).read_text(encoding="utf-8").strip()
