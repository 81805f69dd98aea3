"""
Reconciliation pass: scan the corpus, regenerate the key schema, drop orphaned
entries from every locale and work out which keys still need translations.
Edits coming back from translators are merged with merge_edits().
"""
from collections import namedtuple

from .errors import LocaleSyncError, StoreWriteError, format_warning, warning_record
from .key_extractor import scan_for_keys
from .locale_store import LocaleStore
from .path_tree import find_orphans, get_value, is_valid_key_path, set_value
from .schema import derive_schema, read_schema_keys, serialize_schema, verify_round_trip, write_schema

Edit = namedtuple("Edit", ["key", "locale", "value"])


def present_value(document, key):
    """The string at key, or None when absent or not a string."""
    value = get_value(document, key)
    return value if isinstance(value, str) else None


def compute_missing(keys, documents) -> dict:
    """
    Keys that are absent (None) or empty ("") in at least one document, mapped
    to their value in every document. Keys filled everywhere are left out.
    """
    missing = {}
    for key in sorted(keys):
        values = {locale: present_value(document, key) for locale, document in documents.items()}
        if not all(values.values()):
            missing[key] = values
    return missing


class PassReport:
    def __init__(self):
        self.files_scanned = 0
        self.keys_found = 0
        self.schema_changed = False
        self.loaded_locales = []
        self.failed_locales = []
        self.pruned = {}
        self.missing = {}
        self.warnings = []
        self.aborted = None

    def summary_lines(self):
        if self.aborted:
            return [f"Nothing to reconcile: {self.aborted}."]
        lines = [f"Keys found: {self.keys_found} (in {self.files_scanned} files)",
                 f"Schema: {'updated' if self.schema_changed else 'unchanged'}"]
        for locale, count in self.pruned.items():
            lines.append(f"  {locale}: pruned {count} unused keys")
        if self.failed_locales:
            lines.append(f"Locales skipped (could not be loaded): {', '.join(self.failed_locales)}")
        lines.append(f"Keys still missing a translation: {len(self.missing)}")
        if self.warnings:
            lines.append(f"Warnings: {len(self.warnings)}")
        return lines


class MergeReport:
    def __init__(self):
        self.applied = {}
        self.unchanged = 0
        self.skipped_empty = 0
        self.written = []
        self.failed = []
        self.warnings = []

    def summary_lines(self):
        lines = [f"  {locale}: {count} translations saved" for locale, count in self.applied.items()]
        lines.append(f"Locales written: {', '.join(self.written) or 'none'}")
        if self.failed:
            lines.append(f"Locales NOT written: {', '.join(self.failed)}")
        if self.unchanged:
            lines.append(f"Edits identical to the stored value: {self.unchanged}")
        if self.skipped_empty:
            lines.append(f"Empty edits ignored: {self.skipped_empty}")
        if self.warnings:
            lines.append(f"Warnings: {len(self.warnings)}")
        return lines


class CheckReport:
    def __init__(self):
        self.keys_found = 0
        self.missing = {}
        self.orphans = {}
        self.warnings = []

    @property
    def ok(self):
        return not self.missing and not any(self.orphans.values())

    def summary_lines(self):
        lines = [f"Keys found: {self.keys_found}"]
        for locale, paths in self.orphans.items():
            if paths:
                lines.append(f"  {locale}: {len(paths)} unused keys ({', '.join(paths[:5])}{'...' if len(paths) > 5 else ''})")
        lines.append(f"Keys missing a translation: {len(self.missing)}")
        return lines


class Reconciler:
    def __init__(self, config, status_callback=print):
        self.config = config
        self.status_callback = status_callback
        self.store = LocaleStore(config.locales_dir, config.indent, status_callback)

    def _warn(self, report, stage, reason, path=None, locale=None):
        record = warning_record(stage, reason, path=path, locale=locale)
        self.status_callback(format_warning(record))
        report.warnings.append(record)

    def schematize(self, keys):
        """Writes the schema for keys; returns (parsed key set, changed)."""
        text = serialize_schema(derive_schema(keys), self.config.interface_name, self.config.indent)
        parsed_keys = verify_round_trip(keys, text)
        changed = write_schema(self.config.schema_path, text)
        if changed:
            self.status_callback(f"INFO: Generated schema file: {self.config.schema_path}")
        else:
            self.status_callback(f"INFO: Schema file already up to date: {self.config.schema_path}")
        return parsed_keys, changed

    def prune_locales(self, valid_keys, documents, report):
        for locale, document in documents.items():
            try:
                removed_count = self.store.prune(locale, valid_keys, document=document)
            except StoreWriteError as e:
                self._warn(report, "prune", f"unused keys removed in memory but not saved: {e.reason}",
                           path=e.path, locale=locale)
                removed_count = 0
            report.pruned[locale] = removed_count
            if removed_count:
                self.status_callback(f"   - Removed {removed_count} unused keys from {locale}.json")
        if not any(report.pruned.values()):
            self.status_callback("   - No unused keys found. All files are clean.")

    def run(self) -> PassReport:
        """Extract -> Schematize -> Prune -> Diff. Returns the report for the editing step."""
        report = PassReport()

        self.status_callback("\n--- Step 1: Extracting translation keys ---")
        scan = scan_for_keys(self.config, self.status_callback)
        report.files_scanned = scan.files_scanned
        report.warnings.extend(scan.warnings)
        if not scan.keys:
            report.aborted = "no source files matched" if not scan.files_scanned else "no translation keys found"
            self.status_callback(f"INFO: {report.aborted}. Nothing to reconcile.")
            return report
        report.keys_found = len(scan.keys)

        self.status_callback("\n--- Step 2: Generating key schema ---")
        schema_keys, report.schema_changed = self.schematize(scan.keys)

        self.status_callback("\n--- Step 3: Removing unused keys from locale files ---")
        documents, load_warnings = self.store.load_all(self.config.locales)
        report.warnings.extend(load_warnings)
        report.loaded_locales = list(documents)
        report.failed_locales = [l for l in self.config.locales if l not in documents]
        self.prune_locales(schema_keys, documents, report)

        self.status_callback("\n--- Step 4: Comparing locale files against the schema ---")
        report.missing = compute_missing(schema_keys, documents)
        if report.missing:
            self.status_callback(f"INFO: {len(report.missing)} keys need translations.")
        else:
            self.status_callback("INFO: All locale files are up-to-date!")
        return report

    def missing_from_schema(self) -> PassReport:
        """Diff against the schema file written by the last pass, without scanning or pruning."""
        report = PassReport()
        try:
            schema_keys = read_schema_keys(self.config.schema_path)
        except FileNotFoundError:
            raise LocaleSyncError(f"Schema file not found: {self.config.schema_path}. Run 'sync' first.")
        report.keys_found = len(schema_keys)
        documents, load_warnings = self.store.load_all(self.config.locales)
        report.warnings.extend(load_warnings)
        report.loaded_locales = list(documents)
        report.failed_locales = [l for l in self.config.locales if l not in documents]
        report.missing = compute_missing(schema_keys, documents)
        return report

    def check(self) -> CheckReport:
        """Same comparison as run(), reporting orphans instead of removing them. Writes nothing."""
        report = CheckReport()
        scan = scan_for_keys(self.config, self.status_callback)
        report.warnings.extend(scan.warnings)
        report.keys_found = len(scan.keys)
        valid_keys = set(scan.keys)
        documents, load_warnings = self.store.load_all(self.config.locales)
        report.warnings.extend(load_warnings)
        for locale, document in documents.items():
            report.orphans[locale] = find_orphans(document, valid_keys)
        report.missing = compute_missing(valid_keys, documents)
        return report

    def merge_edits(self, edits) -> MergeReport:
        """
        Applies translator edits to the locale documents and saves them.

        Empty values are ignored. Only locales that actually changed are written,
        unless rewrite_all_on_merge is set. A failed write does not undo locales
        already written.
        """
        report = MergeReport()
        with self.store.exclusive():
            documents, load_warnings = self.store.load_all(self.config.locales)
            report.warnings.extend(load_warnings)
            pending = {}
            for edit in edits:
                if not edit.value:
                    report.skipped_empty += 1
                    continue
                if not is_valid_key_path(edit.key):
                    self._warn(report, "merge", f"ignoring edit for malformed key '{edit.key}'", locale=edit.locale)
                    continue
                if edit.locale not in documents:
                    reason = "locale is not configured" if edit.locale not in self.config.locales else "locale could not be loaded"
                    self._warn(report, "merge", f"ignoring edit for '{edit.key}': {reason}", locale=edit.locale)
                    continue
                if get_value(documents[edit.locale], edit.key) == edit.value:
                    report.unchanged += 1
                    continue
                set_value(documents[edit.locale], edit.key, edit.value)
                pending[edit.locale] = pending.get(edit.locale, 0) + 1

            to_write = list(documents) if self.config.rewrite_all_on_merge else [l for l in documents if l in pending]
            for locale in to_write:
                try:
                    self.store.save(locale, documents[locale])
                except StoreWriteError as e:
                    self._warn(report, "merge", e.reason, path=e.path, locale=locale)
                    report.failed.append(locale)
                    continue
                report.written.append(locale)
                if locale in pending:
                    report.applied[locale] = pending[locale]
        if report.written:
            self.status_callback("INFO: Locale files synchronized.")
        return report
