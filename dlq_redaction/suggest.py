"""
Rule suggestions and residual-PII scanning for sample payloads.

Detection is layered, like the log redaction profiles this grew out of:
1. scrubadub's built-in detectors (emails, phone numbers, credentials, ...)
2. A few structured patterns scrubadub does not cover well
3. Sensitive-looking key names, regardless of value

Findings never carry the matched text, only where it was found and what
kind it looked like, so they are safe to log and display.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import scrubadub

from .models import HashOptions, MaskOptions, RedactionAction, Rule
from .pointer import build_pointer

logger = logging.getLogger(__name__)

IGNORED_FILTH_TYPES = {"url"}

VALUE_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("credit_card", re.compile(r"^(?:\d[ -]?){12,18}\d$")),
    ("social_security_number", re.compile(r"^(?!000|666|9\d{2})\d{3}-(?!00)\d{2}-(?!0000)\d{4}$")),
    ("aws_access_key", re.compile(r"^(?:AKIA|ABIA|ACCA|ASIA)[A-Z0-9]{16}$")),
    ("jwt", re.compile(r"^(?:Bearer\s+)?eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$")),
]

KEY_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("credential", re.compile(r"(?i)pass(?:word|wd)?$|secret|token|api[_-]?key|private[_-]?key")),
    ("credit_card", re.compile(r"(?i)card[_-]?(?:number|no)$|^pan$|^cvv$|^cvc$")),
    ("social_security_number", re.compile(r"(?i)^ssn$|social[_-]?security")),
    ("email", re.compile(r"(?i)e-?mail")),
    ("phone", re.compile(r"(?i)phone|mobile|msisdn")),
]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class Finding:
    pointer: str
    path: str
    kind: str

    def to_dict(self) -> dict[str, str]:
        return {"pointer": self.pointer, "path": self.path, "kind": self.kind}


_scrubber: Optional[scrubadub.Scrubber] = None


def get_scrubber() -> scrubadub.Scrubber:
    global _scrubber
    if _scrubber is None:
        _scrubber = scrubadub.Scrubber()
    return _scrubber


def path_expression(segments: list, generalize: bool = True) -> str:
    """Build a JSONPath for raw segments; array indices become [*] if generalize."""
    parts = ["$"]
    for segment in segments:
        if isinstance(segment, int):
            parts.append("[*]" if generalize else f"[{segment}]")
        elif _IDENTIFIER.match(segment):
            parts.append(f".{segment}")
        else:
            escaped = segment.replace("\\", "\\\\").replace("'", "\\'")
            parts.append(f"['{escaped}']")
    return "".join(parts)


def _leaves(value: Any, segments: list) -> Iterator[tuple[list, Any]]:
    if isinstance(value, dict):
        for key, child in value.items():
            yield from _leaves(child, segments + [key])
    elif isinstance(value, list):
        for index, child in enumerate(value):
            yield from _leaves(child, segments + [index])
    else:
        yield segments, value


def _detect_value(text: str) -> Optional[str]:
    stripped = text.strip()
    for kind, pattern in VALUE_PATTERNS:
        if pattern.match(stripped):
            return kind
    try:
        for filth in get_scrubber().iter_filth(text):
            if filth.type not in IGNORED_FILTH_TYPES:
                return filth.type
    except Exception as e:
        logger.warning(f"Scrubadub error (continuing with patterns): {e}")
    return None


def _detect_key(key: Any) -> Optional[str]:
    if not isinstance(key, str):
        return None
    for kind, pattern in KEY_PATTERNS:
        if pattern.search(key):
            return kind
    return None


def _classify(segments: list, value: Any, use_keys: bool) -> Optional[str]:
    kind = None
    if isinstance(value, str) and value:
        kind = _detect_value(value)
    if kind is None and use_keys and segments and value is not None:
        kind = _detect_key(segments[-1])
    return kind


def rule_for(kind: str, path: str) -> Rule:
    """Default rule proposed for a detected kind."""
    note = f"suggested: {kind}"
    if kind == "email":
        return Rule(path=path, action=RedactionAction.MASK, mask_options=MaskOptions(keep_last=3), note=note)
    if kind == "phone":
        return Rule(path=path, action=RedactionAction.MASK, mask_options=MaskOptions(keep_last=2), note=note)
    if kind == "credit_card":
        return Rule(
            path=path,
            action=RedactionAction.HASH,
            hash_options=HashOptions(secret_label="REDACTION_KEY", short_form=True),
            note=note,
        )
    if kind == "social_security_number":
        return Rule(path=path, action=RedactionAction.REMOVE, note=note)
    return Rule(
        path=path,
        action=RedactionAction.MASK,
        mask_options=MaskOptions(fixed_replacement="[REDACTED]"),
        note=note,
    )


def suggest_rules(document: Any) -> list[Rule]:
    """
    Propose one rule per sensitive-looking field.

    Array indices are generalised to [*], so a list of customers yields a
    single rule per field rather than one per element.
    """
    rules: list[Rule] = []
    seen: set[str] = set()
    for segments, value in _leaves(document, []):
        kind = _classify(segments, value, use_keys=True)
        if kind is None:
            continue
        path = path_expression(segments)
        if path in seen:
            continue
        seen.add(path)
        rules.append(rule_for(kind, path))
    logger.info(f"Suggested {len(rules)} redaction rule(s)")
    return rules


def find_residual_pii(redacted: Any) -> list[Finding]:
    """
    Report values in a redacted document that still look like PII.

    Only values are inspected here; a field whose key looks sensitive but
    whose value was masked is not reported.
    """
    findings = []
    for segments, value in _leaves(redacted, []):
        kind = _classify(segments, value, use_keys=False)
        if kind is not None:
            findings.append(Finding(
                pointer=build_pointer(segments),
                path=path_expression(segments, generalize=False),
                kind=kind,
            ))
    return findings
