"""
Exception hierarchy for the redaction rule engine.

Only InvalidRule escapes RuleApplyEngine.apply(); every other engine-side
failure is contained and reported through the rule's AuditEntry.
"""

from typing import Optional


class RedactionError(Exception):
    """Base class for all redaction errors."""


class InvalidRule(RedactionError, ValueError):
    """A rule violates a precondition (e.g. neither path nor action set)."""


class PathSyntaxError(RedactionError):
    """A path expression could not be parsed."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid path expression {expression!r}: {reason}")


class TransformerError(RedactionError):
    """A field transformer could not process a matched value."""

    def __init__(self, message: str, pointer: Optional[str] = None):
        self.pointer = pointer
        super().__init__(message)


class MalformedDocument(RedactionError, ValueError):
    """The sample payload is not valid JSON."""


class PreviewRequired(RedactionError):
    """Rules must be previewed before they can be saved."""


class MissingSecret(RedactionError, LookupError):
    """A HASH rule references a secret label that cannot be resolved."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"No secret configured for label {label!r}")


class RedactionIncomplete(RedactionError):
    """At least one rule failed while redacting for replay."""


class PreviewHashLeak(RedactionError):
    """A preview hash was found in a document bound for storage or replay."""

    def __init__(self, pointer: str):
        self.pointer = pointer
        super().__init__(f"Preview hash found at {pointer or '/'}")
