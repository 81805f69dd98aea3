import json
import os

from .errors import ConfigError

# --- Configuration ---
# Defaults, overridden by a localesync.json file and then by CLI flags.
CONFIG_FILENAME = "localesync.json"
SOURCE_DIR = "src"  # Root of the application code to scan.
LOCALES_DIR = "src/lib/i18n/locales"  # One <locale>.json per language.
SCHEMA_PATH = "src/lib/i18n/types.ts"  # Generated key declaration file.
LOCALES = ["en", "de", "es", "fr"]
SOURCE_LOCALE = "en"  # Column translators read from.
EXTENSIONS = ["js", "jsx", "ts", "tsx"]
IGNORE_PATTERNS = [
    "**/node_modules/**",
    "**/dist/**",
    "**/.next/**",
    "**/*.d.ts",
]
FUNCTION_NAME = "t"
INTERFACE_NAME = "LocaleStructure"
INDENT = "\t"
WORKERS = 1  # >1 scans files in a process pool.
SHOW_PROGRESS = True
EXCHANGE_PATH = "i18n_missing.csv"
REWRITE_ALL_ON_MERGE = False
# ---------------------

_PATH_FIELDS = ("source_dir", "locales_dir", "schema_path", "exchange_path")
_FIELD_TYPES = {
    "source_dir": str,
    "locales_dir": str,
    "schema_path": str,
    "locales": list,
    "source_locale": str,
    "extensions": list,
    "ignore_patterns": list,
    "function_name": str,
    "interface_name": str,
    "indent": (str, int),
    "workers": int,
    "show_progress": bool,
    "exchange_path": str,
    "rewrite_all_on_merge": bool,
}


class SyncConfig:
    """Explicit settings threaded into every component of a pass."""

    def __init__(self, source_dir=SOURCE_DIR, locales_dir=LOCALES_DIR, schema_path=SCHEMA_PATH,
                 locales=None, source_locale=SOURCE_LOCALE, extensions=None, ignore_patterns=None,
                 function_name=FUNCTION_NAME, interface_name=INTERFACE_NAME, indent=INDENT,
                 workers=WORKERS, show_progress=SHOW_PROGRESS, exchange_path=EXCHANGE_PATH,
                 rewrite_all_on_merge=REWRITE_ALL_ON_MERGE):
        self.source_dir = os.path.abspath(source_dir)
        self.locales_dir = os.path.abspath(locales_dir)
        self.schema_path = os.path.abspath(schema_path)
        self.locales = list(LOCALES if locales is None else locales)
        self.source_locale = source_locale
        self.extensions = [ext.lstrip('.') for ext in (EXTENSIONS if extensions is None else extensions)]
        self.ignore_patterns = list(IGNORE_PATTERNS if ignore_patterns is None else ignore_patterns)
        self.function_name = function_name
        self.interface_name = interface_name
        self.indent = " " * indent if isinstance(indent, int) else indent
        self.workers = max(1, workers)
        self.show_progress = show_progress
        self.exchange_path = os.path.abspath(exchange_path)
        self.rewrite_all_on_merge = rewrite_all_on_merge
        self._validate()

    def _validate(self):
        if not self.locales:
            raise ConfigError("At least one locale must be configured.")
        if len(set(self.locales)) != len(self.locales):
            raise ConfigError(f"Duplicate locales in configuration: {self.locales}")
        if not self.extensions:
            raise ConfigError("At least one source file extension must be configured.")
        if not self.function_name.isidentifier():
            raise ConfigError(f"Translation function name is not an identifier: {self.function_name!r}")

    def scan_ignore_patterns(self):
        """Ignore globs for the scan, including the locale/schema directory itself."""
        patterns = list(self.ignore_patterns)
        for own_dir in {self.locales_dir, os.path.dirname(self.schema_path)}:
            rel = os.path.relpath(own_dir, self.source_dir)
            if rel != '.' and not rel.startswith('..'):
                patterns.append(rel.replace(os.sep, '/') + "/**")
        return patterns

    def __repr__(self):
        return (f"SyncConfig(source_dir={self.source_dir!r}, locales_dir={self.locales_dir!r}, "
                f"locales={self.locales!r})")


def load_config(path=None, **overrides):
    """Builds a SyncConfig from an optional JSON file plus keyword overrides.

    Relative paths in the file resolve against the file's directory. Overrides
    whose value is None are ignored so CLI flags can be passed straight through.
    """
    values = {}
    base_dir = os.getcwd()
    if path is None and os.path.isfile(CONFIG_FILENAME):
        path = CONFIG_FILENAME
    if path is not None:
        try:
            with open(path, 'r', encoding='utf-8-sig') as f:
                file_values = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}")
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read config file {path}: {e}")
        if not isinstance(file_values, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object.")
        base_dir = os.path.dirname(os.path.abspath(path))
        for key, value in file_values.items():
            if key not in _FIELD_TYPES:
                raise ConfigError(f"Unknown config key '{key}' in {path}")
            if not isinstance(value, _FIELD_TYPES[key]):
                raise ConfigError(f"Config key '{key}' in {path} has the wrong type ({type(value).__name__})")
            if key in _PATH_FIELDS:
                value = os.path.join(base_dir, value)
            values[key] = value

    for key, value in overrides.items():
        if value is None:
            continue
        if key not in _FIELD_TYPES:
            raise ConfigError(f"Unknown config override '{key}'")
        values[key] = value
    return SyncConfig(**values)
