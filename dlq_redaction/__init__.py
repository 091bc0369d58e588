"""
DLQ Redaction - path-based redaction rules for dead-letter queue payloads

This package previews redaction rules against sample messages before they
are saved and used to replay parked messages.

Architecture:
    - pointer: get/set/delete on JSON documents by pointer
    - matcher: JSONPath expressions resolved to pointers
    - transformers: MASK, HASH (preview) and REMOVE
    - engine: RuleApplyEngine, applies an ordered rule list with an audit trail
    - diff: structural delta between original and redacted documents
    - editor: RuleSetEditor, the editing session around the engine
    - store / source: rule persistence and dead-letter message sampling
    - replay: keyed-hash redaction for anything persisted or replayed

Example:
    from dlq_redaction import Rule, RedactionAction, MaskOptions, apply

    result = apply(
        {"customer": {"email": "alice@example.com"}},
        [Rule(path="$.customer.email", action=RedactionAction.MASK,
              mask_options=MaskOptions(keep_last=3))],
    )
    # result.redacted_document: {"customer": {"email": "**************com"}}
"""

from .diff import diff, render_diff
from .editor import RuleSetEditor
from .engine import RuleApplyEngine, apply
from .errors import (
    InvalidRule,
    MalformedDocument,
    PathSyntaxError,
    RedactionError,
    TransformerError,
)
from .matcher import resolve
from .models import (
    ApplyResult,
    AuditEntry,
    HashOptions,
    MaskOptions,
    RedactionAction,
    Rule,
)

__all__ = [
    "ApplyResult",
    "AuditEntry",
    "HashOptions",
    "InvalidRule",
    "MalformedDocument",
    "MaskOptions",
    "PathSyntaxError",
    "RedactionAction",
    "RedactionError",
    "Rule",
    "RuleApplyEngine",
    "RuleSetEditor",
    "TransformerError",
    "apply",
    "diff",
    "render_diff",
    "resolve",
]
