"""
Translation trees: nested JSON objects mapping keys to text or to further trees.

Reading is lenient because mod language files are hand written (comments,
trailing commas, raw line breaks inside strings). Writing always produces the
canonical form: two-space indent, LF line endings, trailing newline.
"""
import hashlib
import json
from pathlib import Path
from typing import Any, Mapping

from langpack.models import CompletenessResult

TreeValue = Any
TranslationTree = dict[str, TreeValue]


class TreeParseError(ValueError):
    pass


def _strip_comments(text: str) -> str:
    out = []
    i = 0
    in_string = False
    length = len(text)
    while i < length:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _strip_trailing_commas(text: str) -> str:
    out = []
    in_string = False
    escaped = False
    length = len(text)
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            out.append(ch)
            continue
        if ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < length and text[j].isspace():
                j += 1
            if j < length and text[j] in "}]":
                continue
        out.append(ch)
    return "".join(out)


def _normalize_newlines(value: TreeValue) -> TreeValue:
    if isinstance(value, str):
        return value.replace("\r\n", "\n").replace("\r", "\n") if "\r" in value else value
    if isinstance(value, dict):
        return {key: _normalize_newlines(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize_newlines(item) for item in value]
    return value


def parse_json(text: str) -> Any:
    """Parse possibly sloppy JSON text. Raises TreeParseError."""
    if text.startswith("\ufeff"):
        text = text[1:]
    cleaned = _strip_trailing_commas(_strip_comments(text))
    try:
        # strict=False accepts raw control characters (line breaks) inside strings
        data = json.loads(cleaned, strict=False)
    except json.JSONDecodeError as e:
        raise TreeParseError(str(e)) from e
    return _normalize_newlines(data)


def load_json(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise TreeParseError(f"{path.name}: not valid UTF-8 ({e})") from e
    return parse_json(text)


def load_tree(path: Path) -> TranslationTree:
    data = load_json(path)
    if not isinstance(data, dict):
        raise TreeParseError(f"{path.name}: expected a JSON object, got {type(data).__name__}")
    return data


def dump_canonical(data: Any) -> str:
    text = json.dumps(data, indent=2, ensure_ascii=False)
    return text.replace("\r\n", "\n") + "\n"


def write_canonical(path: Path, data: Any):
    path.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps LF on every platform
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(dump_canonical(data))


def merge_tree(target: TranslationTree, source: Mapping[str, TreeValue]) -> TranslationTree:
    """Deep merge source into target in place: objects recurse, lists union, nulls are ignored."""
    for key, value in source.items():
        if value is None:
            continue
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merge_tree(current, value)
        elif isinstance(value, list) and isinstance(current, list):
            for item in value:
                if item not in current:
                    current.append(item)
        elif isinstance(value, Mapping):
            target[key] = merge_tree({}, value)
        elif isinstance(value, list):
            target[key] = list(value)
        else:
            target[key] = value
    return target


def _as_text(value: TreeValue) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def count_translated(reference: Mapping[str, TreeValue], translated: Mapping[str, TreeValue]) -> CompletenessResult:
    """
    Count leaves of the reference tree and how many of them have a non-blank
    counterpart in the translated tree. Keys only present in the translation
    are ignored.
    """
    total = 0
    done = 0
    for key, ref_value in reference.items():
        value = translated.get(key)
        if isinstance(ref_value, Mapping):
            nested = count_translated(ref_value, value if isinstance(value, Mapping) else {})
            total += nested.total
            done += nested.translated
        else:
            total += 1
            if key in translated and _as_text(value).strip():
                done += 1
    return CompletenessResult(total=total, translated=done)


def fingerprint(tree: Mapping[str, TreeValue]) -> str:
    """SHA-256 of the compact, key-sorted JSON form. Independent of key order."""
    text = json.dumps(tree, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def find_files(root: Path, filename: str) -> list[Path]:
    """All files below root named filename (case-insensitive), in path order."""
    wanted = filename.lower()
    return sorted(p for p in root.rglob("*") if p.is_file() and p.name.lower() == wanted)


def anchored_path(path: str, anchor: str) -> str:
    """Part of a '/'-separated path starting at the first anchor segment, or the whole path."""
    path = path.replace("\\", "/")
    index = path.lower().find(anchor.lower())
    return path[index:] if index >= 0 else path
