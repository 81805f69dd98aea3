import multiprocessing
import os
import re

from tqdm import tqdm

from .errors import CorpusReadError, format_warning, warning_record
from .path_tree import is_valid_key_path

KEY_CHARS = r'[a-zA-Z0-9_.-]+'
# Trailing arguments are skipped non-greedily across lines up to the first ")"
# that can close the call, so nested calls such as fmt(sum(x)) do not hide the key.
CALL_ARGS = r'(?:\s*,\s*(?:[^)]|\([^)]*\))*?)?'

PATTERN_CACHE = {}  # function name -> compiled call regex (per process)


def call_regex(function_name="t"):
    if function_name not in PATTERN_CACHE:
        PATTERN_CACHE[function_name] = re.compile(
            r'\b' + re.escape(function_name) + r'\(\s*([\'"`])(' + KEY_CHARS + r')\1' + CALL_ARGS + r'\s*\)',
            re.DOTALL)
    return PATTERN_CACHE[function_name]


def extract_keys_from_text(text: str, function_name="t") -> list:
    """Raw key strings of every t('<key>', ...) call in text, in order of appearance."""
    return [match.group(2) for match in call_regex(function_name).finditer(text)]


# --- File selection ---

def glob_to_regex(pattern: str) -> str:
    """
    Translates a glob into a regex fragment over '/'-separated relative paths.
    Supports '**' (any number of directories), '*', '?' and '{a,b}' alternation.
    """
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if pattern.startswith('**/', i):
            out.append('(?:.*/)?')
            i += 3
        elif pattern.startswith('**', i):
            out.append('.*')
            i += 2
        elif c == '*':
            out.append('[^/]*')
            i += 1
        elif c == '?':
            out.append('[^/]')
            i += 1
        elif c == '{' and pattern.find('}', i) != -1:
            end = pattern.find('}', i)
            options = pattern[i + 1:end].split(',')
            out.append('(?:' + '|'.join(glob_to_regex(option) for option in options) + ')')
            i = end + 1
        else:
            out.append(re.escape(c))
            i += 1
    return ''.join(out)


def compile_globs(patterns):
    return [re.compile('^' + glob_to_regex(p.replace(os.sep, '/').lstrip('/')) + '$') for p in patterns]


def include_patterns(extensions):
    if len(extensions) == 1:
        return [f"**/*.{extensions[0]}"]
    return ["**/*.{" + ",".join(extensions) + "}"]


def find_source_files(root_dir, extensions, ignore_patterns) -> list:
    """Sorted relative POSIX paths of files under root_dir selected by the globs."""
    includes = compile_globs(include_patterns(extensions))
    ignores = compile_globs(ignore_patterns)
    selected = []
    for current_dir, dir_names, file_names in os.walk(root_dir):
        rel_dir = os.path.relpath(current_dir, root_dir).replace(os.sep, '/')
        rel_dir = "" if rel_dir == '.' else rel_dir + '/'
        # A directory is skipped when anything inside it would be ignored.
        dir_names[:] = sorted(d for d in dir_names
                              if not any(rx.match(f"{rel_dir}{d}/") for rx in ignores))
        for filename in sorted(file_names):
            rel_path = rel_dir + filename
            if any(rx.match(rel_path) for rx in includes) and not any(rx.match(rel_path) for rx in ignores):
                selected.append(rel_path)
    return selected


def read_source_file(path) -> str:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise CorpusReadError(path, f"not valid UTF-8 ({e.reason} at byte {e.start})")
    except OSError as e:
        raise CorpusReadError(path, e.strerror or str(e))


def scan_file_task(args):
    """Pool worker: returns (rel_path, raw_keys, error_reason). Errors travel as strings."""
    root_dir, rel_path, function_name = args
    try:
        text = read_source_file(os.path.join(root_dir, rel_path))
    except CorpusReadError as e:
        return rel_path, [], e.reason
    return rel_path, extract_keys_from_text(text, function_name), None


class ScanResult:
    def __init__(self, keys, files_scanned, warnings):
        self.keys = keys
        self.files_scanned = files_scanned
        self.warnings = warnings

    def __repr__(self):
        return f"ScanResult(keys={len(self.keys)}, files_scanned={self.files_scanned}, warnings={len(self.warnings)})"


def scan_for_keys(config, status_callback=print) -> ScanResult:
    """
    Scans config.source_dir for translation calls.

    Returns the sorted, de-duplicated key paths. Unreadable files and malformed
    keys are recorded as warnings; neither stops the scan. The output does not
    depend on the order files are read in, so a process pool may be used.
    """
    status_callback(f"INFO: Scanning for {config.function_name}() calls in: {config.source_dir}")
    warnings = []
    if not os.path.isdir(config.source_dir):
        record = warning_record("scan", "source directory not found", path=config.source_dir)
        status_callback(format_warning(record))
        return ScanResult([], 0, [record])

    files = find_source_files(config.source_dir, config.extensions, config.scan_ignore_patterns())
    status_callback(f"INFO: ...found {len(files)} files to scan.")
    if not files:
        return ScanResult([], 0, warnings)

    tasks = [(config.source_dir, rel_path, config.function_name) for rel_path in files]
    progress_kwargs = {"total": len(tasks), "desc": "Scanning files", "disable": not config.show_progress}
    if config.workers > 1 and len(tasks) > 1:
        num_processes = min(config.workers, len(tasks))
        with multiprocessing.Pool(processes=num_processes) as pool:
            results = list(tqdm(pool.imap(scan_file_task, tasks, chunksize=16), **progress_kwargs))
    else:
        results = [scan_file_task(task) for task in tqdm(tasks, **progress_kwargs)]

    all_keys = set()
    files_scanned = 0
    for rel_path, raw_keys, error_reason in results:
        if error_reason is not None:
            record = warning_record("scan", f"could not read file: {error_reason}", path=rel_path)
            status_callback(format_warning(record))
            warnings.append(record)
            continue
        files_scanned += 1
        for key in raw_keys:
            if is_valid_key_path(key):
                all_keys.add(key)
            else:
                record = warning_record("scan", f"ignoring malformed key '{key}'", path=rel_path)
                status_callback(format_warning(record))
                warnings.append(record)

    status_callback(f"INFO: Found {len(all_keys)} distinct keys in {files_scanned} files.")
    return ScanResult(sorted(all_keys), files_scanned, warnings)
