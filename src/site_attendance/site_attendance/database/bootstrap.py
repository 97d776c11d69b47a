"""Schema / seed bootstrap for a fresh MySQL database (AUTO_INIT_DB, AUTO_SEED_DB, scripts)."""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Iterator, List, Mapping, Union

from werkzeug.security import generate_password_hash

from .connection import MYSQL_CHARSET, MYSQL_COLLATION, DBConfig, DatabaseConnection

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# (username, password, role) reset on every seed run
DEMO_USERS = (
    ("admin", "admin123", "admin"),
    ("genba", "user1234", "user"),
)

_DATABASE_DIRECTIVE = re.compile(r"(?im)^\s*(CREATE\s+DATABASE|USE)\b[^;]*;\s*$")
_SQL_TOKEN = re.compile(
    r"""
    '(?:[^'\\]|\\.)*'       # single-quoted literal
    |"(?:[^"\\]|\\.)*"      # double-quoted literal
    |--[^\n]*               # line comment
    |;                      # statement end
    |[^'";-]+               # plain text
    |.                      # lone '-' etc.
    """,
    re.VERBOSE | re.DOTALL,
)


def split_statements(sql: str) -> Iterator[str]:
    """Yield the statements of a script; ';' inside literals and comments does not split."""
    current: List[str] = []
    for match in _SQL_TOKEN.finditer(sql):
        token = match.group(0)
        if token.startswith("--"):
            continue
        if token == ";":
            statement = "".join(current).strip()
            current = []
            if statement:
                yield statement
            continue
        current.append(token)
    statement = "".join(current).strip()
    if statement:
        yield statement


def _factory(db_config: Mapping) -> DatabaseConnection:
    return DatabaseConnection(DBConfig.from_mapping(db_config))


def _execute_script(db_config: Mapping, path: PathLike) -> int:
    # the configured database wins over the one named in the script
    sql = _DATABASE_DIRECTIVE.sub("", Path(path).read_text(encoding="utf-8"))
    conn = _factory(db_config).connect()
    executed = 0
    try:
        cur = conn.cursor()
        for statement in split_statements(sql):
            cur.execute(statement)
            executed += 1
        conn.commit()
    finally:
        conn.close()
    return executed


def ensure_database_exists(db_config: Mapping) -> None:
    factory = _factory(db_config)
    conn = factory.connect(with_database=False)
    try:
        conn.cursor().execute(
            f"CREATE DATABASE IF NOT EXISTS `{factory.config.database}` "
            f"CHARACTER SET {MYSQL_CHARSET} COLLATE {MYSQL_COLLATION}"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: Mapping, *, schema_path: PathLike) -> None:
    ensure_database_exists(db_config)
    executed = _execute_script(db_config, schema_path)
    logger.info("schema: %d statements from %s", executed, schema_path)


def apply_seed_sql(db_config: Mapping, *, seed_path: PathLike) -> None:
    executed = _execute_script(db_config, seed_path)
    logger.info("seed: %d statements from %s", executed, seed_path)


def ensure_demo_users(db_config: Mapping) -> None:
    conn = _factory(db_config).connect()
    try:
        cur = conn.cursor()
        for username, password, role in DEMO_USERS:
            cur.execute(
                """
                INSERT INTO users (user_id, username, password_hash, role, is_active)
                VALUES (%s, %s, %s, %s, 1)
                ON DUPLICATE KEY UPDATE password_hash = VALUES(password_hash), role = VALUES(role), is_active = 1
                """,
                (str(uuid.uuid4()), username, generate_password_hash(password), role),
            )
        conn.commit()
    finally:
        conn.close()
    logger.info("demo users ready: %s", ", ".join(u for u, _, _ in DEMO_USERS))


def list_tables(db_config: Mapping) -> List[str]:
    conn = _factory(db_config).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
