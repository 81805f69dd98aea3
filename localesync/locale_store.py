import json
import os
import threading
from contextlib import contextmanager

from .errors import (NoLocalesLoadedError, StoreLockedError, StoreReadError, StoreWriteError,
                     format_warning, warning_record)
from .path_tree import prune_tree

LOCK_FILENAME = ".localesync.lock"


class LocaleStore:
    """
    One JSON document per locale under a base directory (<locale>.json).

    This is the only component that writes locale documents. Writes go through a
    temporary file in the same directory followed by os.replace, so a crash never
    leaves a half-written document behind.
    """

    def __init__(self, locales_dir, indent="\t", status_callback=print):
        self.locales_dir = locales_dir
        self.indent = indent
        self.status_callback = status_callback
        self._lock = threading.RLock()

    def path_for(self, locale):
        return os.path.join(self.locales_dir, f"{locale}.json")

    def load(self, locale) -> dict:
        path = self.path_for(locale)
        try:
            with open(path, 'r', encoding='utf-8-sig') as f:
                document = json.load(f)
        except FileNotFoundError:
            raise StoreReadError(locale, path, "file not found")
        except json.JSONDecodeError as e:
            raise StoreReadError(locale, path, f"invalid JSON ({e.msg} at line {e.lineno}, column {e.colno})")
        except UnicodeDecodeError as e:
            raise StoreReadError(locale, path, f"not valid UTF-8 ({e.reason})")
        except OSError as e:
            raise StoreReadError(locale, path, e.strerror or str(e))
        if not isinstance(document, dict):
            raise StoreReadError(locale, path, f"root must be an object, got {type(document).__name__}")
        return document

    def load_all(self, locales):
        """
        Loads every locale that can be loaded. Returns (documents, warnings) with
        documents in the order of locales. Raises NoLocalesLoadedError when none load.
        """
        documents = {}
        warnings = []
        for locale in locales:
            try:
                documents[locale] = self.load(locale)
            except StoreReadError as e:
                record = warning_record("load", e.reason, path=e.path, locale=locale)
                self.status_callback(format_warning(record))
                warnings.append(record)
        if locales and not documents:
            raise NoLocalesLoadedError(locales, self.locales_dir)
        return documents, warnings

    def dumps(self, document) -> str:
        return json.dumps(document, indent=self.indent, ensure_ascii=False) + "\n"

    def save(self, locale, document):
        path = self.path_for(locale)
        content = self.dumps(document)
        tmp_path = f"{path}.{os.getpid()}.tmp"
        try:
            os.makedirs(self.locales_dir, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8', newline='\n') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass  # report the write failure, not the cleanup one
            raise StoreWriteError(locale, path, e.strerror or str(e))

    def prune(self, locale, valid_keys, document=None) -> int:
        """
        Removes every leaf not in valid_keys from the locale document and persists
        it when something was removed. Returns the number of removed leaves.
        """
        if document is None:
            document = self.load(locale)
        removed_count = prune_tree(document, valid_keys)
        if removed_count > 0:
            self.save(locale, document)
        return removed_count

    @contextmanager
    def exclusive(self):
        """
        Exclusive access to the store for a load -> merge -> save cycle.
        Uses a lock file so a second process fails fast instead of interleaving writes.
        """
        lock_path = os.path.join(self.locales_dir, LOCK_FILENAME)
        with self._lock:
            os.makedirs(self.locales_dir, exist_ok=True)
            try:
                fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                raise StoreLockedError(lock_path)
            try:
                os.write(fd, str(os.getpid()).encode('ascii'))
            finally:
                os.close(fd)
            try:
                yield self
            finally:
                try:
                    os.remove(lock_path)
                except FileNotFoundError:
                    pass  # removed by hand while the merge ran
