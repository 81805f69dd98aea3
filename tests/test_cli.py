"""End-to-end tests for the localesync command line."""

import io

import pytest

from localesync import cli

from conftest import read_locale, write_file, write_locale

COMMON = ["--locales", "en,de", "--no-progress"]


@pytest.fixture
def app(project, monkeypatch):
    monkeypatch.chdir(project)
    write_file(project / "src" / "app.ts", "t('a.b'); t('a.c')")
    locales_dir = project / "src" / "lib" / "i18n" / "locales"
    write_locale(locales_dir, "en", {"a": {"b": "hi"}, "stale": "x"})
    write_locale(locales_dir, "de", {})
    return project


def test_sync_writes_table_and_prompt(app, capsys):
    assert cli.main(COMMON + ["sync", "--prompt", "prompt.txt"]) == 0
    out = capsys.readouterr().out
    assert "--- Summary ---" in out
    assert (app / "i18n_missing.csv").read_text(encoding="utf-8") == "key,en,de\na.b,hi,\na.c,,\n"
    assert "```csv" in (app / "prompt.txt").read_text(encoding="utf-8")
    assert read_locale(app / "src" / "lib" / "i18n" / "locales", "en") == {"a": {"b": "hi"}}


def test_check_exit_codes(app):
    assert cli.main(COMMON + ["check"]) == 1
    locales_dir = app / "src" / "lib" / "i18n" / "locales"
    write_locale(locales_dir, "en", {"a": {"b": "hi", "c": "there"}})
    write_locale(locales_dir, "de", {"a": {"b": "hallo", "c": "da"}})
    assert cli.main(COMMON + ["check"]) == 0


def test_merge_from_stdin(app, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("```csv\nkey,en,de\na.c,there,da\n```\n"))
    assert cli.main(COMMON + ["merge", "-"]) == 0
    locales_dir = app / "src" / "lib" / "i18n" / "locales"
    assert read_locale(locales_dir, "de") == {"a": {"c": "da"}}
    assert read_locale(locales_dir, "en") == {"a": {"b": "hi", "c": "there"}, "stale": "x"}


def test_merge_table_file_after_sync(app):
    cli.main(COMMON + ["sync", "--output", "todo.csv"])
    table = app / "todo.csv"
    table.write_text("key,en,de\na.b,hi,hallo\na.c,there,da\n", encoding="utf-8")
    assert cli.main(COMMON + ["merge", "todo.csv"]) == 0
    assert cli.main(COMMON + ["missing"]) == 0
    assert cli.main(COMMON + ["check"]) == 0


def test_missing_without_schema_is_an_error(app, capsys):
    assert cli.main(COMMON + ["missing"]) == 2
    assert "ERROR: Schema file not found" in capsys.readouterr().out


def test_bad_table_is_an_error(app, capsys):
    (app / "bad.csv").write_text("id,value\n1,2\n", encoding="utf-8")
    assert cli.main(COMMON + ["merge", "bad.csv"]) == 2
    assert "ERROR:" in capsys.readouterr().out


def test_prefix_conflict_exits_with_error(app, capsys):
    write_file(app / "src" / "app.ts", "t('a'); t('a.b')")
    assert cli.main(COMMON + ["sync"]) == 2
    assert "round-trip" in capsys.readouterr().out
