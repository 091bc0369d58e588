"""
Field transformers applied at each resolved pointer.

mask_value() and preview_hash() are pure functions of the matched value;
remove_at() is the structural transform and works on the document.

preview_hash() is a fast, non-secret FNV-1a fingerprint meant only for
previews. Anything written to durable storage or replayed onto a live
queue must go through replay.ReplayRedactor, which uses a keyed HMAC.
"""

import json
from typing import Any, Optional

from .errors import TransformerError
from .models import HashOptions, MaskOptions
from .pointer import delete_value

PREVIEW_HASH_TAG = "h:"
PREVIEW_LABEL = "preview"

_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


def display_string(value: Any) -> str:
    """Render a JSON value the way it is shown to an operator."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    try:
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise TransformerError(f"Cannot render {type(value).__name__} as text: {e}") from e


def mask_value(value: Any, options: Optional[MaskOptions] = None) -> Any:
    """
    Mask a scalar value, keeping optional leading/trailing characters.

    Args:
        value: The matched value. None passes through unchanged.
        options: keep_first/keep_last characters to keep, the pad character
                 used for the hidden middle, or a fixed replacement.

    Returns:
        The masked string. Without a fixed replacement the result has the
        same length as the rendered value; when the kept spans cover the
        whole value it is returned unchanged.

    Raises:
        TransformerError: value is an object or array.

    Example:
        mask_value("alice@example.com", MaskOptions(keep_last=3))
        # "**************com"
    """
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise TransformerError(f"MASK cannot be applied to a JSON {'object' if isinstance(value, dict) else 'array'}")

    options = options or MaskOptions()
    if options.fixed_replacement:
        return options.fixed_replacement

    text = display_string(value)
    keep_first = max(0, options.keep_first)
    keep_last = max(0, options.keep_last)
    if keep_first + keep_last >= len(text):
        return text

    hidden = len(text) - keep_first - keep_last
    pad = options.pad or "*"
    padding = (pad * hidden)[:hidden]
    return text[:keep_first] + padding + (text[len(text) - keep_last:] if keep_last else "")


def fnv1a_64(data: bytes) -> int:
    h = _FNV64_OFFSET
    for byte in data:
        h ^= byte
        h = (h * _FNV64_PRIME) & _MASK64
    return h


def preview_hash(value: Any, options: Optional[HashOptions] = None) -> str:
    """
    Non-cryptographic preview fingerprint, e.g. "h:9f3c07d2a1b4e560".

    The label only namespaces the fingerprint; it is never a secret.
    """
    options = options or HashOptions()
    label = options.secret_label or PREVIEW_LABEL
    digest = f"{fnv1a_64((display_string(value) + '|' + label).encode('utf-8')):016x}"
    if options.short_form:
        digest = digest[:8]
    return PREVIEW_HASH_TAG + digest


def remove_at(document: Any, pointer: str) -> None:
    """Remove the location at pointer from the document."""
    if not delete_value(document, pointer):
        raise TransformerError("location could not be removed", pointer=pointer)
