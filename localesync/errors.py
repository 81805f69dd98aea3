class LocaleSyncError(Exception):
    """Base class for every error raised by localesync."""


class ConfigError(LocaleSyncError):
    pass


class CorpusReadError(LocaleSyncError):
    """A single source file could not be read. Skipped, never fatal."""
    def __init__(self, path, reason):
        self.path, self.reason = path, reason
        super().__init__(f"Could not read source file {path}: {reason}")


class StoreReadError(LocaleSyncError):
    """A locale document is missing or malformed."""
    def __init__(self, locale, path, reason):
        self.locale, self.path, self.reason = locale, path, reason
        super().__init__(f"Could not load locale '{locale}' from {path}: {reason}")


class NoLocalesLoadedError(StoreReadError):
    def __init__(self, locales, path):
        super().__init__(", ".join(locales) or "-", path, "no locale document could be loaded")


class StoreWriteError(LocaleSyncError):
    def __init__(self, locale, path, reason):
        self.locale, self.path, self.reason = locale, path, reason
        super().__init__(f"Could not write locale '{locale}' to {path}: {reason}")


class StoreLockedError(LocaleSyncError):
    def __init__(self, lock_path):
        self.lock_path = lock_path
        super().__init__(f"Locale store is locked by another process ({lock_path}). "
                         "Remove the lock file if no other merge is running.")


class SchemaParseError(LocaleSyncError):
    def __init__(self, line_no, line, reason):
        self.line_no, self.line, self.reason = line_no, line, reason
        super().__init__(f"Schema line {line_no}: {reason} ({line.strip()!r})")


class SchemaRoundTripError(LocaleSyncError):
    """The serialized schema does not reproduce the extracted key set.

    This is a correctness bug (usually a key that is also the prefix of another
    key) and must never be resolved silently.
    """
    def __init__(self, missing, unexpected):
        self.missing = sorted(missing)
        self.unexpected = sorted(unexpected)
        details = []
        if self.missing:
            details.append(f"lost keys: {', '.join(self.missing)}")
        if self.unexpected:
            details.append(f"unexpected keys: {', '.join(self.unexpected)}")
        super().__init__("Schema round-trip mismatch; " + "; ".join(details))


class ExchangeFormatError(LocaleSyncError):
    pass


def warning_record(stage, reason, path=None, locale=None):
    """A non-fatal problem collected into a report, with enough context to act on."""
    return {"stage": stage, "locale": locale, "path": path, "reason": reason}


def format_warning(record):
    where = " ".join(str(part) for part in (record.get("locale"), record.get("path")) if part)
    return f"WARNING: [{record['stage']}] {where + ': ' if where else ''}{record['reason']}"
