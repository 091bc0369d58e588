"""
Structural diff between an original and a redacted document.

Deltas use the jsondiffpatch conventions so they can be shown next to the
payload in any JSON viewer:

    [new]               value added
    [old, 0, 0]         value removed
    [old, new]          value replaced
    {key: delta}        changes inside an object
    {"_t": "a", "3": delta, "_1": [old, 0, 0]}
                        changes inside an array; plain keys are indices in
                        the new array, "_"-prefixed keys in the old one

Arrays are aligned the way jsondiffpatch does it: the equal head and tail
are trimmed, objects and arrays at the same position are diffed in place,
and only what is left goes through a longest-common-subsequence pass. An
element spliced out by a REMOVE rule therefore shows up as one removal
rather than a cascade of shifted changes, and masking a field in every
element stays linear. The delta is for display only.
"""

import json
from typing import Any, Optional

from .pointer import build_pointer

ARRAY_MARKER = "_t"


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def json_equal(a: Any, b: Any) -> bool:
    """Deep equality that keeps booleans distinct from numbers."""
    kind = _kind(a)
    if kind != _kind(b):
        return False
    if kind == "object":
        return a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    if kind == "array":
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    return a == b


def diff(original: Any, redacted: Any) -> Optional[Any]:
    """Return a delta describing how redacted differs from original, or None."""
    if json_equal(original, redacted):
        return None
    kind = _kind(original)
    if kind == _kind(redacted):
        if kind == "object":
            return _diff_objects(original, redacted)
        if kind == "array":
            return _diff_arrays(original, redacted)
    return [original, redacted]


def _diff_objects(original: dict, redacted: dict) -> Optional[dict]:
    delta: dict[str, Any] = {}
    for key, value in original.items():
        if key not in redacted:
            delta[key] = [value, 0, 0]
            continue
        child = diff(value, redacted[key])
        if child is not None:
            delta[key] = child
    for key, value in redacted.items():
        if key not in original:
            delta[key] = [value]
    return delta or None


def _same_container(a: Any, b: Any) -> bool:
    kind = _kind(a)
    return kind in ("object", "array") and kind == _kind(b)


def _aligned(a: Any, b: Any) -> bool:
    return _same_container(a, b) or json_equal(a, b)


def _lcs_pairs(a: list, b: list) -> list[tuple[int, int]]:
    n, m = len(a), len(b)
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        for j in range(m - 1, -1, -1):
            if json_equal(a[i], b[j]):
                table[i][j] = table[i + 1][j + 1] + 1
            else:
                table[i][j] = max(table[i + 1][j], table[i][j + 1])
    pairs = []
    i = j = 0
    while i < n and j < m:
        if json_equal(a[i], b[j]):
            pairs.append((i, j))
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            i += 1
        else:
            j += 1
    return pairs


def _diff_in_place(delta: dict, old: Any, new: Any, new_index: int) -> None:
    child = diff(old, new)
    if child is not None:
        delta[str(new_index)] = child


def _diff_arrays(original: list, redacted: list) -> Optional[dict]:
    delta: dict[str, Any] = {ARRAY_MARKER: "a"}

    start = 0
    end_a, end_b = len(original), len(redacted)
    while start < end_a and start < end_b and json_equal(original[start], redacted[start]):
        start += 1
    while end_a > start and end_b > start and json_equal(original[end_a - 1], redacted[end_b - 1]):
        end_a -= 1
        end_b -= 1

    # Containers at the same position are diffed in place.
    while start < end_a and start < end_b and _aligned(original[start], redacted[start]):
        _diff_in_place(delta, original[start], redacted[start], start)
        start += 1
    while end_a > start and end_b > start and _aligned(original[end_a - 1], redacted[end_b - 1]):
        end_a -= 1
        end_b -= 1
        _diff_in_place(delta, original[end_a], redacted[end_b], end_b)

    prev_i = prev_j = start
    pairs = _lcs_pairs(original[start:end_a], redacted[start:end_b])
    anchors = [(start + i, start + j) for i, j in pairs] + [(end_a, end_b)]
    for i, j in anchors:
        paired_old: set[int] = set()
        paired_new: set[int] = set()
        for old_index, new_index in zip(range(prev_i, i), range(prev_j, j)):
            if _same_container(original[old_index], redacted[new_index]):
                _diff_in_place(delta, original[old_index], redacted[new_index], new_index)
                paired_old.add(old_index)
                paired_new.add(new_index)
        for old_index in range(prev_i, i):
            if old_index not in paired_old:
                delta[f"_{old_index}"] = [original[old_index], 0, 0]
        for new_index in range(prev_j, j):
            if new_index not in paired_new:
                delta[str(new_index)] = [redacted[new_index]]
        prev_i, prev_j = i + 1, j + 1
    return delta if len(delta) > 1 else None


def _show(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def render_diff(delta: Optional[Any]) -> list[str]:
    """
    Flatten a delta into one line per change for operator review.

    Example:
        render_diff(diff({"a": {"b": "x"}}, {"a": {}}))
        # ['- /a/b']
    """
    lines: list[str] = []
    if delta is not None:
        _render(delta, [], lines)
    return lines


def _render(delta: Any, segments: list, lines: list[str]) -> None:
    if isinstance(delta, list):
        pointer = build_pointer(segments) or "/"
        if len(delta) == 1:
            lines.append(f"+ {pointer}: {_show(delta[0])}")
        elif len(delta) == 3 and delta[1] == 0 and delta[2] == 0:
            lines.append(f"- {pointer}")
        else:
            lines.append(f"~ {pointer}: {_show(delta[0])} -> {_show(delta[1])}")
        return

    if delta.get(ARRAY_MARKER) == "a":
        removals = sorted(int(k[1:]) for k in delta if k.startswith("_") and k != ARRAY_MARKER)
        for index in removals:
            _render(delta[f"_{index}"], segments + [index], lines)
        changes = sorted(int(k) for k in delta if not k.startswith("_"))
        for index in changes:
            _render(delta[str(index)], segments + [index], lines)
        return

    for key, child in delta.items():
        _render(child, segments + [key], lines)
