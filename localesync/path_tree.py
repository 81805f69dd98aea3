"""
Dot-path helpers for nested locale documents.

A path such as "common.greeting" addresses tree["common"]["greeting"]. Segments
made of digits are plain dictionary keys; locale documents have no array concept.
"""
import re

SEPARATOR = '.'
KEY_PATH_REGEX = re.compile(r'^[A-Za-z0-9_-]+(?:\.[A-Za-z0-9_-]+)*$')


def split_path(key_path: str) -> list:
    return key_path.split(SEPARATOR)


def join_path(segments) -> str:
    return SEPARATOR.join(segments)


def is_valid_key_path(key_path) -> bool:
    return isinstance(key_path, str) and bool(KEY_PATH_REGEX.match(key_path))


def set_value(tree, key_path, value):
    """
    Sets tree[a][b][c] = value for "a.b.c", creating intermediate objects.
    A non-object intermediate node is replaced with a fresh object.
    """
    segments = split_path(key_path)
    current = tree
    for segment in segments[:-1]:
        if not isinstance(current.get(segment), dict):
            current[segment] = {}
        current = current[segment]
    current[segments[-1]] = value


def get_value(tree, key_path):
    """Returns the value at key_path, or None when any segment is missing."""
    current = tree
    for segment in split_path(key_path):
        if not isinstance(current, dict) or segment not in current:
            return None
        current = current[segment]
    return current


def delete_value(tree, key_path) -> bool:
    segments = split_path(key_path)
    parents = []
    current = tree
    for segment in segments[:-1]:
        child = current.get(segment)
        if not isinstance(child, dict):
            return False
        parents.append((current, segment))
        current = child
    if not isinstance(current, dict) or segments[-1] not in current:
        return False
    del current[segments[-1]]
    # Collapse parents that became empty, innermost first.
    for parent, segment in reversed(parents):
        if parent[segment]:
            break
        del parent[segment]
    return True


def iter_leaf_paths(tree, prefix=""):
    """Yields (key_path, value) for every non-object value, in document order."""
    for key, value in tree.items():
        path = f"{prefix}{SEPARATOR}{key}" if prefix else key
        if isinstance(value, dict):
            yield from iter_leaf_paths(value, path)
        else:
            yield path, value


def prune_tree(tree, valid_keys, prefix="") -> int:
    """
    Removes every leaf whose path is not in valid_keys, then drops objects left
    empty (including ones that were empty to begin with). Returns the number of
    leaves removed.
    """
    removed_count = 0
    for key, value in list(tree.items()):
        path = f"{prefix}{SEPARATOR}{key}" if prefix else key
        if isinstance(value, dict):
            removed_count += prune_tree(value, valid_keys, path)
            if not value:
                del tree[key]
        elif path not in valid_keys:
            del tree[key]
            removed_count += 1
    return removed_count


def find_orphans(tree, valid_keys) -> list:
    """Leaf paths prune_tree would remove, without touching the tree."""
    return [path for path, _ in iter_leaf_paths(tree) if path not in valid_keys]
