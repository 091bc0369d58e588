"""
Data model for redaction rules and their audit trail.

Rules travel as JSON between the rule store, the MCP tools and the engine,
so every type here has a to_dict()/from_dict() pair using the camelCase
wire names. Rule.from_dict() also accepts the older short keys
(mask/hash, fixed/secretRef/short) so previously saved rule sets still load.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .errors import InvalidRule


def new_rule_id() -> str:
    """Return a short opaque rule identifier."""
    return uuid.uuid4().hex[:8]


def parse_flag(value: Any, name: str, default: bool) -> bool:
    """Read a JSON boolean; None means default, anything else is rejected."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise InvalidRule(f"{name} must be true or false, got {value!r}")


class RedactionAction(str, Enum):
    MASK = "MASK"
    REMOVE = "REMOVE"
    HASH = "HASH"

    @classmethod
    def parse(cls, value: Any) -> Optional["RedactionAction"]:
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidRule(f"Unknown redaction action: {value!r}") from None


@dataclass
class MaskOptions:
    """How a MASK rule rewrites a value."""
    keep_first: int = 0
    keep_last: int = 0
    pad: str = "*"
    fixed_replacement: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "MaskOptions":
        data = data or {}
        fixed = data.get("fixedReplacement", data.get("fixed"))
        pad = data.get("pad")
        return cls(
            keep_first=int(data.get("keepFirst") or 0),
            keep_last=int(data.get("keepLast") or 0),
            pad="*" if pad is None else str(pad),
            fixed_replacement=fixed if fixed else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "keepFirst": self.keep_first,
            "keepLast": self.keep_last,
            "pad": self.pad,
        }
        if self.fixed_replacement:
            out["fixedReplacement"] = self.fixed_replacement
        return out


@dataclass
class HashOptions:
    """How a HASH rule fingerprints a value."""
    secret_label: Optional[str] = None
    short_form: bool = False

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "HashOptions":
        data = data or {}
        label = data.get("secretLabel", data.get("secretRef"))
        return cls(
            secret_label=label if label else None,
            short_form=parse_flag(data.get("shortForm", data.get("short")), "shortForm", False),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"shortForm": self.short_form}
        if self.secret_label:
            out["secretLabel"] = self.secret_label
        return out


@dataclass
class Rule:
    """
    A single path-based redaction rule.

    mask_options is only read for MASK rules and hash_options only for HASH
    rules; both are ignored otherwise. A rule is valid when both path and
    action are set.
    """
    path: str
    action: Optional[RedactionAction]
    id: str = field(default_factory=new_rule_id)
    mask_options: Optional[MaskOptions] = None
    hash_options: Optional[HashOptions] = None
    enabled: bool = True
    note: Optional[str] = None

    def __post_init__(self):
        self.action = RedactionAction.parse(self.action)

    @property
    def is_valid(self) -> bool:
        return bool(self.path and self.path.strip()) and self.action is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rule":
        if not isinstance(data, dict):
            raise InvalidRule(f"Rule must be a JSON object, got {type(data).__name__}")
        mask = data.get("maskOptions", data.get("mask"))
        hash_ = data.get("hashOptions", data.get("hash"))
        return cls(
            id=str(data.get("id") or new_rule_id()),
            path=data.get("path") or "",
            action=RedactionAction.parse(data.get("action")),
            mask_options=MaskOptions.from_dict(mask) if mask is not None else None,
            hash_options=HashOptions.from_dict(hash_) if hash_ is not None else None,
            enabled=parse_flag(data.get("enabled"), "enabled", True),
            note=data.get("note") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "path": self.path,
            "action": self.action.value if self.action else None,
            "enabled": self.enabled,
        }
        if self.mask_options is not None:
            out["maskOptions"] = self.mask_options.to_dict()
        if self.hash_options is not None:
            out["hashOptions"] = self.hash_options.to_dict()
        if self.note:
            out["note"] = self.note
        return out


@dataclass
class AuditEntry:
    """Outcome of one enabled rule during one apply pass."""
    path: str
    action: Optional[RedactionAction]
    match_count: int = 0
    note: Optional[str] = None
    error: Optional[str] = None
    failed_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "path": self.path,
            "action": self.action.value if self.action else None,
            "matchCount": self.match_count,
        }
        if self.note:
            out["note"] = self.note
        if self.error:
            out["error"] = self.error
        if self.failed_count:
            out["failedCount"] = self.failed_count
        return out


@dataclass
class ApplyResult:
    redacted_document: Any
    audit: list[AuditEntry] = field(default_factory=list)

    @property
    def total_matches(self) -> int:
        return sum(entry.match_count for entry in self.audit)

    @property
    def has_errors(self) -> bool:
        return any(entry.error or entry.failed_count for entry in self.audit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "redactedDocument": self.redacted_document,
            "audit": [entry.to_dict() for entry in self.audit],
        }


def rules_from_dicts(items: Optional[list[dict[str, Any]]]) -> list[Rule]:
    """Build a rule list from its wire form."""
    return [Rule.from_dict(item) for item in (items or [])]


def rules_to_dicts(rules: list[Rule]) -> list[dict[str, Any]]:
    return [rule.to_dict() for rule in rules]
