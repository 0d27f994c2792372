"""Smoke tests for the command-line interface."""

import sqlite3

import pytest

from bulk_upsert.cli import main

CSV = "id,name\n1,ann\n2,bob\n3,cy\n4,dee\n5,eve\n"


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "users.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


@pytest.fixture
def db_file(tmp_path):
    path = tmp_path / "shop.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    conn.commit()
    conn.close()
    return path


def _names(db_file):
    conn = sqlite3.connect(db_file)
    try:
        return conn.execute("SELECT id, name FROM users ORDER BY id").fetchall()
    finally:
        conn.close()


def test_load_upserts_csv(csv_file, db_file, capsys):
    main(["--db", str(db_file), "--chunk-size", "2",
          "load", "--csv", str(csv_file), "--table", "users"])

    out = capsys.readouterr().out
    assert "Done." in out
    assert "users" in out
    assert len(_names(db_file)) == 5

    csv_file.write_text("id,name\n2,bobby\n", encoding="utf-8")
    main(["--db", str(db_file), "load", "--csv", str(csv_file), "--table", "users"])
    assert (2, "bobby") in _names(db_file)
    assert len(_names(db_file)) == 5


def test_load_column_subset(csv_file, db_file):
    main(["--db", str(db_file), "load", "--csv", str(csv_file),
          "--table", "users", "--columns", "name", "--mode", "insert"])
    assert [name for _, name in _names(db_file)] == ["ann", "bob", "cy", "dee", "eve"]


def test_load_missing_file(db_file, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", str(db_file), "load", "--csv", str(tmp_path / "nope.csv"), "--table", "users"])
    assert exc_info.value.code == 1
    assert "not found" in capsys.readouterr().err


def test_load_unknown_table(csv_file, db_file, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", str(db_file), "load", "--csv", str(csv_file), "--table", "missing"])
    assert exc_info.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_load_refuses_mysql(csv_file, db_file):
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", str(db_file), "--engine", "mysql",
              "load", "--csv", str(csv_file), "--table", "users"])
    assert exc_info.value.code == 1


def test_plan_mysql_verbose(csv_file, capsys):
    main(["--engine", "mysql", "--chunk-size", "2",
          "plan", "--csv", str(csv_file), "--table", "users", "-v"])

    out = capsys.readouterr().out
    assert "3 statement(s) for mysql" in out
    assert "ON DUPLICATE KEY UPDATE" in out


def test_plan_unknown_engine(csv_file, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--engine", "postgres", "plan", "--csv", str(csv_file), "--table", "users"])
    assert exc_info.value.code == 1
    assert "Unsupported database engine" in capsys.readouterr().err


def test_plan_bad_chunk_size(csv_file):
    with pytest.raises(SystemExit) as exc_info:
        main(["--chunk-size", "0", "plan", "--csv", str(csv_file), "--table", "users"])
    assert exc_info.value.code == 1


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1
    assert "usage" in capsys.readouterr().out.lower()
