import json

import pytest

from localesync.config import SyncConfig


def write_file(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_locale(locales_dir, locale, document):
    write_file(locales_dir / f"{locale}.json", json.dumps(document, indent="\t", ensure_ascii=False) + "\n")


def read_locale(locales_dir, locale):
    return json.loads((locales_dir / f"{locale}.json").read_text(encoding="utf-8"))


@pytest.fixture
def project(tmp_path):
    """A small app tree: src/ with components, locales under src/lib/i18n/locales."""
    src = tmp_path / "src"
    locales_dir = src / "lib" / "i18n" / "locales"
    locales_dir.mkdir(parents=True)
    return tmp_path


@pytest.fixture
def make_config(project):
    def _make(**overrides):
        values = dict(
            source_dir=str(project / "src"),
            locales_dir=str(project / "src" / "lib" / "i18n" / "locales"),
            schema_path=str(project / "src" / "lib" / "i18n" / "types.ts"),
            locales=["en", "de"],
            workers=1,
            show_progress=False,
            exchange_path=str(project / "missing.csv"),
        )
        values.update(overrides)
        return SyncConfig(**values)
    return _make


@pytest.fixture
def messages():
    """Collects status_callback output."""
    return []
