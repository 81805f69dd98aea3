"""Tests for loading, saving and pruning locale documents."""

import os

import pytest

from localesync.errors import NoLocalesLoadedError, StoreLockedError, StoreReadError, StoreWriteError
from localesync.locale_store import LOCK_FILENAME, LocaleStore

from conftest import read_locale, write_file, write_locale


def test_load_and_save_preserve_unicode(tmp_path):
    store = LocaleStore(str(tmp_path), status_callback=lambda message: None)
    store.save("de", {"common": {"greeting": "Grüß dich"}})
    text = (tmp_path / "de.json").read_text(encoding="utf-8")
    assert "Grüß dich" in text
    assert text.endswith("}\n")
    assert "\t\"common\"" in text
    assert store.load("de") == {"common": {"greeting": "Grüß dich"}}
    assert sorted(os.listdir(tmp_path)) == ["de.json"]


def test_load_accepts_utf8_bom(tmp_path):
    (tmp_path / "en.json").write_bytes(b'\xef\xbb\xbf{"a": "b"}')
    assert LocaleStore(str(tmp_path)).load("en") == {"a": "b"}


@pytest.mark.parametrize("content, reason", [
    (None, "file not found"),
    ("{not json", "invalid JSON"),
    ("[1, 2]", "root must be an object"),
])
def test_load_errors(tmp_path, content, reason):
    if content is not None:
        write_file(tmp_path / "fr.json", content)
    with pytest.raises(StoreReadError) as excinfo:
        LocaleStore(str(tmp_path)).load("fr")
    assert excinfo.value.locale == "fr"
    assert reason in excinfo.value.reason


def test_load_all_excludes_broken_locales(tmp_path):
    write_locale(tmp_path, "en", {"a": "1"})
    write_file(tmp_path / "de.json", "{broken")
    messages = []
    documents, warnings = LocaleStore(str(tmp_path), status_callback=messages.append).load_all(["en", "de", "fr"])
    assert list(documents) == ["en"]
    assert [w["locale"] for w in warnings] == ["de", "fr"]
    assert len(messages) == 2


def test_load_all_raises_when_nothing_loads(tmp_path):
    with pytest.raises(NoLocalesLoadedError):
        LocaleStore(str(tmp_path), status_callback=lambda message: None).load_all(["en", "de"])


def test_prune_persists_only_when_something_was_removed(tmp_path):
    write_locale(tmp_path, "en", {"a": {"b": "keep"}})
    write_locale(tmp_path, "de", {"a": {"b": "behalten", "z": "stale"}})
    store = LocaleStore(str(tmp_path))
    en_mtime = (tmp_path / "en.json").stat().st_mtime_ns
    assert store.prune("en", {"a.b"}) == 0
    assert (tmp_path / "en.json").stat().st_mtime_ns == en_mtime
    assert store.prune("de", {"a.b"}) == 1
    assert read_locale(tmp_path, "de") == {"a": {"b": "behalten"}}


def test_prune_collapses_emptied_parent(tmp_path):
    write_locale(tmp_path, "de", {"a": {"z": "stale"}, "x": "1"})
    store = LocaleStore(str(tmp_path))
    assert store.prune("de", {"x"}) == 1
    assert read_locale(tmp_path, "de") == {"x": "1"}


def test_save_failure_leaves_original(tmp_path):
    write_locale(tmp_path, "en", {"a": "1"})
    store = LocaleStore(str(tmp_path))
    store.locales_dir = str(tmp_path / "missing" / "file.txt")
    (tmp_path / "missing").write_text("not a directory", encoding="utf-8")
    with pytest.raises(StoreWriteError):
        store.save("en", {"a": "2"})
    assert read_locale(tmp_path, "en") == {"a": "1"}


def test_exclusive_creates_and_removes_lock(tmp_path):
    store = LocaleStore(str(tmp_path))
    lock_path = tmp_path / LOCK_FILENAME
    with store.exclusive():
        assert lock_path.exists()
        with pytest.raises(StoreLockedError):
            with LocaleStore(str(tmp_path)).exclusive():
                pass
    assert not lock_path.exists()


def test_exclusive_releases_lock_on_error(tmp_path):
    store = LocaleStore(str(tmp_path))
    with pytest.raises(RuntimeError):
        with store.exclusive():
            raise RuntimeError("boom")
    assert not (tmp_path / LOCK_FILENAME).exists()


def test_exclusive_tolerates_lock_removed_by_hand(tmp_path):
    store = LocaleStore(str(tmp_path))
    with store.exclusive():
        (tmp_path / LOCK_FILENAME).unlink()
    # The store can be locked again afterwards
    with store.exclusive():
        assert (tmp_path / LOCK_FILENAME).exists()
