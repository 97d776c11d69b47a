from __future__ import annotations

from src.site_attendance.site_attendance.database.bootstrap import split_statements
from src.site_attendance.site_attendance.database.connection import DBConfig


def test_split_statements_ignores_semicolons_in_literals_and_comments():
    sql = """
    -- sites; contractors
    CREATE TABLE a (id INT);
    INSERT INTO a VALUES ('x;y'), ("it's; fine");

    INSERT INTO b VALUES ('don\\'t;split') -- trailing; comment
    ;
    SELECT 1 - 2
    """
    assert list(split_statements(sql)) == [
        "CREATE TABLE a (id INT)",
        "INSERT INTO a VALUES ('x;y'), (\"it's; fine\")",
        "INSERT INTO b VALUES ('don\\'t;split')",
        "SELECT 1 - 2",
    ]


def test_split_statements_skips_empty_statements():
    assert list(split_statements(";;  ;\n-- only a comment\n")) == []


def test_db_config_defaults_and_describe():
    cfg = DBConfig.from_mapping({"user": "app", "database": "genba"})
    assert cfg.host == "localhost"
    assert cfg.port == 3306
    assert cfg.describe() == "app@localhost:3306/genba"
