"""End-to-end tests of the bq entry point against SQLite."""

import pytest

import batchQuery


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("BQ_CONFIG", str(home / "config"))
    return home


def _script(tmp_path, text):
    path = tmp_path / "script.sql"
    path.write_text(text)
    return str(path)


def test_version(capsys):
    assert batchQuery.main(["-v"]) == 0
    assert capsys.readouterr().out.startswith("bq version ")


def test_script_to_output_file(tmp_path):
    script = _script(tmp_path,
        "create table t (a int, ts timestamp, b blob);\n"
        "insert into t values (1, '2020-01-02 03:04:05', x'beef');\n"
        "insert into t values (2, null, null)\n"
        "go\n"
        "select a, b from t order by a;\n"
        "select count(*) as n from t\n")
    output = tmp_path / "out.txt"
    output.write_text("stale content that must be truncated\n")

    assert batchQuery.main(["--url", "sqlite://", "-i", script, "-o", str(output)]) == 0

    lines = [line.rstrip() for line in output.read_text().splitlines()]
    assert "stale" not in output.read_text()
    assert lines[:2] == ["(1 row affected)", "(1 row affected)"]
    assert lines[2].split() == ["a", "b"]
    assert lines[4].split() == ["1", "0xbeef"]
    assert lines[5].split() == ["2", "NULL"]
    # Unterminated last batch still runs
    assert lines[6] == "n"
    assert lines[8] == "2"


def test_echo_input(tmp_path, capsys):
    script = _script(tmp_path, "select 1 as x\n;\n")
    assert batchQuery.main(["--url", "sqlite://", "-i", script, "-e"]) == 0
    out = capsys.readouterr().out
    assert "1> select 1 as x\n2> ;\n" in out


def test_engine_error_does_not_stop_script(tmp_path, capsys):
    script = _script(tmp_path, "select * from missing;\nselect 7 as x;\n")
    assert batchQuery.main(["--url", "sqlite://", "-i", script]) == 0
    out = capsys.readouterr().out
    assert "no such table: missing" in out
    assert out.rstrip().endswith("7")


def test_connection_failure_exit_code(capsys):
    with pytest.raises(SystemExit) as excinfo:
        batchQuery.main(["--url", "nosuchdialect://host/db", "-i", "unused.sql"])
    assert excinfo.value.code == 2
    assert "Database connection error" in capsys.readouterr().err


def test_missing_input_file_exit_code(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        batchQuery.main(["--url", "sqlite://", "-i", str(tmp_path / "nope.sql")])
    assert excinfo.value.code == 4


def test_bad_settings_file_exit_code(tmp_path):
    cfg = tmp_path / "bad.cfg"
    cfg.write_text("[Settings]\npageSize = -1\n")
    with pytest.raises(SystemExit) as excinfo:
        batchQuery.main(["--settings", str(cfg), "--url", "sqlite://"])
    assert excinfo.value.code == 3


def test_unwritable_output_exit_code(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        batchQuery.main(["--url", "sqlite://", "-i", _script(tmp_path, "select 1;"),
                         "-o", str(tmp_path / "no" / "such" / "dir.txt")])
    assert excinfo.value.code == 6
