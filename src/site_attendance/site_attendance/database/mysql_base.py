from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import mysql.connector

from ..core.exceptions import StorageError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor); commit on success, rollback and re-raise otherwise.

    Driver errors are re-raised as StorageError so services never import the driver.
    """
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        raise StorageError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values: Sequence[Any]) -> str:
    """Placeholder list for `col IN (...)`; callers must not pass an empty sequence."""
    return ", ".join(["%s"] * len(values))


def as_bool(value: Any) -> bool:
    return bool(int(value)) if value is not None else False


def ping(conn_factory: DatabaseConnection) -> None:
    with db_cursor(conn_factory, dictionary=False) as (_, cur):
        cur.execute("SELECT 1")
        cur.fetchone()
