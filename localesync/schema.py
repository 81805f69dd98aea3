"""
Key schema: the nested declaration of every key the corpus references.

The schema is written as a TypeScript-style interface so that the application
gets type-checked keys, and is parsed back into key paths when the locale files
are compared against it:

    export interface LocaleStructure {
    	common: {
    		greeting: string;
    		'sign-in': string;
    	};
    }
"""
import os
import re
import tempfile

from .errors import SchemaParseError, SchemaRoundTripError
from .path_tree import iter_leaf_paths, join_path, set_value

STRING_LEAF = "string"
IDENTIFIER_REGEX = re.compile(r'^[a-zA-Z_$][a-zA-Z0-9_$]*$')
_NAME = r'''(?:([A-Za-z0-9_$]+)|'([^']+)'|"([^"]+)")'''
INTERFACE_LINE_REGEX = re.compile(r'^(?:export\s+)?interface\s+([A-Za-z_$][A-Za-z0-9_$]*)\s*\{$')
BLOCK_LINE_REGEX = re.compile(r'^' + _NAME + r'\s*:\s*\{$')
LEAF_LINE_REGEX = re.compile(r'^' + _NAME + r'\s*:\s*string\s*;$')
CLOSE_LINE_REGEX = re.compile(r'^\}\s*;?$')


def is_valid_identifier(name: str) -> bool:
    return bool(IDENTIFIER_REGEX.match(name))


def derive_schema(keys) -> dict:
    """Nested schema with a "string" marker at every leaf, built in sorted key order."""
    schema = {}
    for key in sorted(keys):
        set_value(schema, key, STRING_LEAF)
    return schema


def flatten_schema(schema) -> list:
    return sorted(path for path, _ in iter_leaf_paths(schema))


def format_name(name: str) -> str:
    return name if is_valid_identifier(name) else f"'{name}'"


def _format_block(node, indent, depth):
    pad = indent * depth
    lines = []
    for name, value in node.items():
        if isinstance(value, dict):
            lines.append(f"{pad}{format_name(name)}: {{")
            lines.extend(_format_block(value, indent, depth + 1))
            lines.append(f"{pad}}};")
        else:
            lines.append(f"{pad}{format_name(name)}: {STRING_LEAF};")
    return lines


def serialize_schema(schema, interface_name="LocaleStructure", indent="\t") -> str:
    lines = [f"export interface {interface_name} {{"]
    lines.extend(_format_block(schema, indent, 1))
    lines.append("}")
    return "\n".join(lines) + "\n"


def _matched_name(match):
    return next(group for group in match.groups() if group is not None)


def parse_schema(text: str) -> set:
    """
    Recovers the flattened key set from serialized schema text.

    Line-oriented: an explicit stack holds the names of the enclosing blocks
    (None marks the interface itself), a block line pushes, a closing brace pops
    and a leaf line emits the stack joined with its own name.
    """
    keys = set()
    stack = []
    for line_no, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith('//'):
            continue
        if INTERFACE_LINE_REGEX.match(line):
            if stack:
                raise SchemaParseError(line_no, raw_line, "interface declared inside another block")
            stack.append(None)
            continue
        if not stack:
            raise SchemaParseError(line_no, raw_line, "content outside the interface declaration")
        block = BLOCK_LINE_REGEX.match(line)
        if block:
            stack.append(_matched_name(block))
            continue
        if CLOSE_LINE_REGEX.match(line):
            stack.pop()
            continue
        leaf = LEAF_LINE_REGEX.match(line)
        if leaf:
            keys.add(join_path([name for name in stack if name is not None] + [_matched_name(leaf)]))
            continue
        raise SchemaParseError(line_no, raw_line, "unrecognised declaration")
    if stack:
        raise SchemaParseError(line_no if text else 0, "", f"{len(stack)} unclosed block(s) at end of file")
    return keys


def verify_round_trip(keys, text):
    """Raises SchemaRoundTripError unless parsing text gives back exactly keys."""
    expected = set(keys)
    parsed = parse_schema(text)
    if parsed != expected:
        raise SchemaRoundTripError(expected - parsed, parsed - expected)
    return parsed


def read_schema_keys(path) -> set:
    with open(path, 'r', encoding='utf-8') as f:
        return parse_schema(f.read())


def write_schema(path, text) -> bool:
    """
    Writes the schema file unless it already holds exactly this text.
    Returns True when the file changed.
    """
    try:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            if f.read() == text:
                return False
    except FileNotFoundError:
        pass
    target_dir = os.path.dirname(path) or '.'
    os.makedirs(target_dir, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".schema-", suffix=".tmp", dir=target_dir)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    return True
