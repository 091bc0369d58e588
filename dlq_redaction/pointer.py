"""
JSON pointer accessor (RFC 6901 style) over plain Python JSON values.

A pointer is "" for the document root, otherwise a sequence of
"/"-prefixed segments. Inside a segment "~1" stands for "/" and "~0" for "~".

get_value() never raises: it returns MISSING when any step does not exist.
set_value() and delete_value() are silent no-ops when the parent container
cannot be reached, so callers must not assume they succeeded.
"""

from typing import Any, Optional, Union

Segment = Union[str, int]


class _Missing:
    """Marker for an absent location (JSON null is None and is present)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def escape_segment(segment: Segment) -> str:
    return str(segment).replace("~", "~0").replace("/", "~1")


def unescape_segment(segment: str) -> str:
    # Order matters: "~01" must decode to "~1", not "/".
    return segment.replace("~1", "/").replace("~0", "~")


def build_pointer(segments: list[Segment]) -> str:
    """Join raw (unescaped) segments into a pointer string."""
    return "".join("/" + escape_segment(segment) for segment in segments)


def parse_pointer(pointer: str) -> Optional[list[str]]:
    """
    Split a pointer into unescaped segments.

    Returns None for a non-empty pointer without the leading "/".
    """
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        return None
    return [unescape_segment(part) for part in pointer[1:].split("/")]


def _array_index(segment: str, length: int) -> Optional[int]:
    # Only canonical non-negative integers address array elements.
    if not segment.isdigit() or (len(segment) > 1 and segment[0] == "0"):
        return None
    index = int(segment)
    return index if index < length else None


def _step(container: Any, segment: str) -> Any:
    if isinstance(container, dict):
        return container.get(segment, MISSING)
    if isinstance(container, list):
        index = _array_index(segment, len(container))
        return MISSING if index is None else container[index]
    return MISSING


def _walk(root: Any, segments: list[str]) -> Any:
    current = root
    for segment in segments:
        current = _step(current, segment)
        if current is MISSING:
            return MISSING
    return current


def get_value(root: Any, pointer: str) -> Any:
    """Return the value at pointer, or MISSING."""
    segments = parse_pointer(pointer)
    if segments is None:
        return MISSING
    return _walk(root, segments)


def set_value(root: Any, pointer: str, value: Any) -> bool:
    """
    Replace the value at pointer in place.

    Existing object keys are overwritten and new keys are created; array
    elements can only be replaced, never appended. Returns True if the
    document was changed.
    """
    segments = parse_pointer(pointer)
    if not segments:
        return False
    parent = _walk(root, segments[:-1])
    last = segments[-1]
    if isinstance(parent, dict):
        parent[last] = value
        return True
    if isinstance(parent, list):
        index = _array_index(last, len(parent))
        if index is not None:
            parent[index] = value
            return True
    return False


def delete_value(root: Any, pointer: str) -> bool:
    """
    Remove the location at pointer in place.

    Object keys are removed; array elements are spliced out so later
    elements shift down. Returns True if something was removed.
    """
    segments = parse_pointer(pointer)
    if not segments:
        return False
    parent = _walk(root, segments[:-1])
    last = segments[-1]
    if isinstance(parent, dict):
        if last in parent:
            del parent[last]
            return True
        return False
    if isinstance(parent, list):
        index = _array_index(last, len(parent))
        if index is not None:
            del parent[index]
            return True
    return False
