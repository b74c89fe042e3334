"""Tests for the command-line entry point."""

from unittest.mock import MagicMock

import pytest
import requests

import main


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    for key in ("DATABASE_URL", "LATENCY_LAB_DEFAULT_TARGET", "LATENCY_LAB_HTTP_URL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'bench.db'}")
    monkeypatch.chdir(tmp_path)


def run(tmp_path, *argv):
    return main.main([*argv, "--log-file", str(tmp_path / "log.jsonl"), "--no-color"])


def test_ping(tmp_path, capsys):
    assert run(tmp_path, "ping", "--trials", "3") == 0

    out = capsys.readouterr().out
    assert "Database Ping Benchmark" in out
    assert "All benchmark results have been logged to" in out
    assert (tmp_path / "log.jsonl").exists()


def test_queries_alias(tmp_path):
    assert run(tmp_path, "ping", "--queries", "2", "--quiet") == 0


def test_zero_trials_is_configuration_error(tmp_path, capsys):
    assert run(tmp_path, "ping", "--trials", "0") == 2
    assert "Configuration error" in capsys.readouterr().err
    assert not (tmp_path / "log.jsonl").exists()


def test_unknown_target(tmp_path, capsys):
    assert run(tmp_path, "ping", "--target", "nowhere") == 2
    assert "nowhere" in capsys.readouterr().err


def test_invalid_table(tmp_path):
    assert run(tmp_path, "nocache", "--table", "x; drop") == 2


def test_unreachable_target(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("LATENCY_LAB_TARGET_BROKEN", f"sqlite:///{tmp_path / 'no' / 'such' / 'x.db'}")
    assert run(tmp_path, "ping", "--target", "broken", "--trials", "2") == 1
    assert "Benchmark failed" in capsys.readouterr().err


def test_nocache_compare_on_sqlite_falls_back(tmp_path, capsys):
    assert run(tmp_path, "nocache", "--compare", "--trials", "2") == 0
    assert "requires MySQL" in capsys.readouterr().out


def test_persistent_compare(tmp_path, capsys):
    assert run(tmp_path, "persistent", "--compare", "--trials", "2") == 0
    assert "Connection Persistence Comparison" in capsys.readouterr().out


def test_records(tmp_path, capsys):
    code = run(tmp_path, "records", "--records", "5", "--operations", "insert,query", "--trials", "1")
    assert code == 0
    out = capsys.readouterr().out
    assert "Individual Inserts" in out
    assert "Complex Queries" in out


def test_records_unknown_operation(tmp_path):
    assert run(tmp_path, "records", "--operations", "explode") == 2


def test_http_with_url(tmp_path, monkeypatch, capsys):
    response = MagicMock(status_code=200, content=b"ok")
    session = MagicMock()
    session.get.return_value = response
    monkeypatch.setattr(requests, "Session", MagicMock(return_value=session))

    assert run(tmp_path, "http", "--url", "http://localhost/health", "--trials", "2") == 0
    assert "HTTP Ping Benchmark" in capsys.readouterr().out


def test_http_without_target(tmp_path, capsys):
    assert run(tmp_path, "http") == 2


def test_http_rejects_database_url(tmp_path):
    assert run(tmp_path, "http", "--url", "sqlite:///x.db") == 2


def test_charts(tmp_path):
    code = run(tmp_path, "ping", "--trials", "3", "--charts", "--output-dir", str(tmp_path / "out"))
    assert code == 0
    assert list((tmp_path / "out" / "charts").glob("*.png"))


def test_interrupt(tmp_path, monkeypatch):
    def interrupted(args, tracer):
        raise KeyboardInterrupt

    monkeypatch.setitem(main.COMMANDS, "ping", interrupted)
    assert run(tmp_path, "ping") == 130


def test_unknown_command():
    with pytest.raises(SystemExit) as excinfo:
        main.main(["explode"])
    assert excinfo.value.code == 2


def test_records_on_read_only_database(tmp_path, monkeypatch, capsys):
    path = tmp_path / "readonly.db"
    path.touch()
    monkeypatch.setenv("LATENCY_LAB_TARGET_READONLY", f"sqlite:///file:{path}?mode=ro&uri=true")

    code = run(tmp_path, "records", "--target", "readonly", "--operations", "query", "--trials", "1")
    assert code == 1
    assert "Benchmark failed" in capsys.readouterr().err
