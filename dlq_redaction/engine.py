"""
RuleApplyEngine - applies an ordered rule list to a JSON document.

The engine:
1. Deep-copies the input document (the caller's copy is never touched)
2. Resolves each enabled rule against the already-redacted working copy
3. Masks, hashes or removes every resolved location
4. Records one AuditEntry per enabled rule, in rule order

A bad path or an untransformable value is reported on that rule's audit
entry and never aborts the pass. The engine keeps no state between calls
and is safe to share between threads.
"""

import copy
import logging
from typing import Any, Callable, Optional

from .errors import InvalidRule, PathSyntaxError, TransformerError
from .matcher import resolve
from .models import ApplyResult, AuditEntry, HashOptions, RedactionAction, Rule
from .pointer import MISSING, get_value, parse_pointer, set_value
from .transformers import mask_value, preview_hash, remove_at

logger = logging.getLogger(__name__)

Hasher = Callable[[Any, Optional[HashOptions]], str]


def _removal_key(pointer: str) -> list[tuple[int, Any]]:
    # Array indices compare numerically; ancestors sort before descendants.
    segments = parse_pointer(pointer) or []
    return [(0, int(s)) if s.isdecimal() else (1, s) for s in segments]


def removal_order(pointers: list[str]) -> list[str]:
    """Order pointers so that removing them one by one never shifts a pending one."""
    return sorted(pointers, key=_removal_key, reverse=True)


class RuleApplyEngine:
    """
    Engine for applying redaction rules to sample payloads.

    Example:
        engine = RuleApplyEngine()
        result = engine.apply(
            {"customer": {"email": "alice@example.com"}},
            [Rule(path="$.customer.email", action=RedactionAction.MASK,
                  mask_options=MaskOptions(keep_last=3))],
        )
        # result.redacted_document: {"customer": {"email": "**************com"}}
        # result.audit[0].match_count: 1

    The HASH transform is injectable so the replay path can swap the preview
    fingerprint for a keyed hash; the default is always preview_hash.
    """

    def __init__(self, hasher: Optional[Hasher] = None):
        self._hasher = hasher or preview_hash

    def apply(self, document: Any, rules: list[Rule]) -> ApplyResult:
        """
        Apply rules to a deep copy of document.

        Args:
            document: Any JSON-compatible value. It is not modified.
            rules: Rules in application order. Later rules see the changes
                   made by earlier ones.

        Returns:
            ApplyResult with the redacted copy and one audit entry per
            enabled rule.

        Raises:
            InvalidRule: An enabled rule has neither a path nor an action.
        """
        active = [rule for rule in rules if rule.enabled is not False]
        for rule in active:
            if not rule.path and rule.action is None:
                raise InvalidRule(f"Rule {rule.id!r} has neither a path nor an action")

        working = copy.deepcopy(document)
        audit = [self._apply_rule(working, rule) for rule in active]
        return ApplyResult(redacted_document=working, audit=audit)

    def _apply_rule(self, working: Any, rule: Rule) -> AuditEntry:
        entry = AuditEntry(path=rule.path, action=rule.action, note=rule.note)

        if rule.action is None:
            entry.error = "Rule has no action"
            return entry

        try:
            pointers = resolve(working, rule.path)
        except PathSyntaxError as e:
            logger.warning(f"Rule {rule.id}: {e}")
            entry.error = str(e)
            return entry
        except Exception as e:
            logger.warning(f"Rule {rule.id}: path resolution failed: {e}")
            entry.error = f"Path resolution failed: {e}"
            return entry

        if rule.action is RedactionAction.REMOVE:
            pointers = removal_order(pointers)

        first_failure: Optional[str] = None
        for pointer in pointers:
            # An earlier pointer of this same rule may have removed it.
            current = get_value(working, pointer)
            if current is MISSING:
                continue
            try:
                self._transform(working, pointer, current, rule)
            except Exception as e:
                entry.failed_count += 1
                if first_failure is None:
                    first_failure = str(e) or type(e).__name__
                continue
            entry.match_count += 1

        if entry.failed_count:
            total = entry.failed_count + entry.match_count
            message = f"{entry.failed_count} of {total} match(es) failed: {first_failure}"
            if entry.match_count == 0:
                entry.error = message
            logger.warning(f"Rule {rule.id}: {message}")

        logger.debug(
            f"Rule {rule.id} ({rule.action.value} {rule.path}): "
            f"{entry.match_count} matched, {entry.failed_count} failed"
        )
        return entry

    def _transform(self, working: Any, pointer: str, current: Any, rule: Rule) -> None:
        if rule.action is RedactionAction.REMOVE:
            remove_at(working, pointer)
            return
        if rule.action is RedactionAction.MASK:
            replacement = mask_value(current, rule.mask_options)
        else:
            replacement = self._hasher(current, rule.hash_options)
        if not set_value(working, pointer, replacement):
            raise TransformerError("location could not be written", pointer=pointer)


_default_engine: Optional[RuleApplyEngine] = None


def get_default_engine() -> RuleApplyEngine:
    """Return a shared preview engine."""
    global _default_engine
    if _default_engine is None:
        _default_engine = RuleApplyEngine()
    return _default_engine


def apply(document: Any, rules: list[Rule]) -> ApplyResult:
    """Apply rules to document with the preview engine."""
    return get_default_engine().apply(document, rules)
