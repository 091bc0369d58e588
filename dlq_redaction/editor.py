"""
RuleSetEditor - the working session behind the redaction studio.

Holds the rule list being edited and the sample payload, runs previews on
demand, and hands the rules to a RuleStore when the operator saves. The
engine itself stays stateless; everything mutable lives here.
"""

import json
import logging
from dataclasses import replace
from typing import Any, Optional

from .diff import diff, render_diff
from .engine import RuleApplyEngine, get_default_engine
from .errors import InvalidRule, MalformedDocument, PreviewRequired
from .models import ApplyResult, HashOptions, MaskOptions, RedactionAction, Rule
from .source import MessageSource
from .store import RuleStore
from .validation import DebouncedValidator, PathValidation

logger = logging.getLogger(__name__)

INVALID_SAMPLE_MESSAGE = "Invalid sample JSON."


def default_rules() -> list[Rule]:
    return [
        Rule(
            path="$.customer.email",
            action=RedactionAction.MASK,
            mask_options=MaskOptions(keep_last=3, pad="*"),
            note="mask email",
        ),
        Rule(
            path="$.payment.card.number",
            action=RedactionAction.HASH,
            hash_options=HashOptions(secret_label="REDACTION_KEY", short_form=True),
        ),
        Rule(
            path="$.payment.card.cvv",
            action=RedactionAction.MASK,
            mask_options=MaskOptions(fixed_replacement="[REDACTED]"),
        ),
    ]


def default_sample() -> str:
    return json.dumps(
        {
            "customer": {"name": "Alice Martin", "email": "alice.martin@example.com", "phone": "+33612345678"},
            "payment": {"card": {"number": "4111111111111111", "cvv": "123"}, "amount": 129.9},
            "meta": {"ts": 1724693034000, "source": "dlq/orders-DLQ"},
        },
        indent=2,
    )


def parse_sample(text: Optional[str]) -> Any:
    """Parse a sample payload, raising MalformedDocument if it is not JSON."""
    if text is None:
        raise MalformedDocument(INVALID_SAMPLE_MESSAGE)
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedDocument(f"{INVALID_SAMPLE_MESSAGE} {e}") from e


def pretty(text: str) -> str:
    try:
        return json.dumps(json.loads(text), indent=2)
    except ValueError:
        return text


class RuleSetEditor:
    """
    Editing session for one rule set.

    Example:
        editor = RuleSetEditor(store=store, scope="topic", key="orders-DLQ")
        editor.load()
        editor.set_sample('{"customer": {"email": "alice@example.com"}}')
        result = editor.preview()
        editor.save()
    """

    def __init__(
        self,
        rules: Optional[list[Rule]] = None,
        sample_text: Optional[str] = None,
        store: Optional[RuleStore] = None,
        scope: str = "global",
        key: Optional[str] = None,
        source: Optional[MessageSource] = None,
        validator: Optional[DebouncedValidator] = None,
        engine: Optional[RuleApplyEngine] = None,
    ):
        self.rules: list[Rule] = list(rules) if rules is not None else default_rules()
        self.sample_text: str = sample_text if sample_text is not None else default_sample()
        self.store = store
        self.scope = scope
        self.key = key
        self.source = source
        self.validator = validator or DebouncedValidator(None)
        self._engine = engine or get_default_engine()

        self.result: Optional[ApplyResult] = None
        self.delta: Optional[Any] = None
        self.error: Optional[str] = None

    # Rules

    def add_rule(self, rule: Optional[Rule] = None) -> Rule:
        rule = rule or Rule(
            path="$.path.to.field",
            action=RedactionAction.MASK,
            mask_options=MaskOptions(keep_last=4, pad="*"),
        )
        self.rules.append(rule)
        return rule

    def remove_rule(self, rule_id: str) -> bool:
        remaining = [rule for rule in self.rules if rule.id != rule_id]
        removed = len(remaining) != len(self.rules)
        self.rules = remaining
        return removed

    def update_rule(self, rule_id: str, **changes: Any) -> Rule:
        """Replace fields of one rule, e.g. update_rule(id, path="$.a", enabled=False)."""
        for index, rule in enumerate(self.rules):
            if rule.id == rule_id:
                updated = replace(rule, **changes)
                self.rules[index] = updated
                return updated
        raise KeyError(f"No rule with id {rule_id!r}")

    @property
    def rules_invalid(self) -> bool:
        return any(not rule.is_valid for rule in self.rules)

    # Sample

    def set_sample(self, text: str) -> None:
        self.sample_text = text

    @property
    def sample_document(self) -> Any:
        return parse_sample(self.sample_text)

    def pick_message(self, topic: str) -> str:
        """Replace the sample with the latest message parked on topic."""
        if self.source is None:
            raise RuntimeError("No message source configured")
        payload = self.source.fetch_sample(topic)
        if not payload:
            raise LookupError(f"No messages available in DLQ for topic {topic}")
        self.sample_text = pretty(payload)
        return self.sample_text

    # Preview

    @property
    def has_previewed(self) -> bool:
        return self.result is not None

    def preview(self) -> ApplyResult:
        """
        Apply the current rules to the sample.

        Raises:
            MalformedDocument: The sample is not valid JSON; nothing is applied.
        """
        self.error = None
        try:
            document = self.sample_document
        except MalformedDocument:
            self.error = INVALID_SAMPLE_MESSAGE
            raise
        self.result = self._engine.apply(document, self.rules)
        self.delta = diff(document, self.result.redacted_document)
        return self.result

    def changes(self) -> list[str]:
        return render_diff(self.delta)

    def reset_preview(self) -> None:
        self.result = None
        self.delta = None

    # Persistence

    @property
    def can_save(self) -> bool:
        return self.store is not None and not self.rules_invalid and self.has_previewed

    def load(self) -> list[Rule]:
        if self.store is None:
            raise RuntimeError("No rule store configured")
        self.rules = self.store.load(self.scope, self.key)
        self.reset_preview()
        return self.rules

    def save(self) -> None:
        if self.store is None:
            raise RuntimeError("No rule store configured")
        if self.rules_invalid:
            raise InvalidRule("Every rule needs a path and an action before saving")
        if not self.has_previewed:
            raise PreviewRequired("Run a preview before saving rules")
        self.store.save(self.scope, self.key, self.rules)

    # Validation

    async def validate_latest(self) -> Optional[PathValidation]:
        """Validate the most recently added rule's path; failures set error."""
        if not self.rules:
            return None
        try:
            sample = self.sample_document
        except MalformedDocument:
            sample = {}
        result = await self.validator.request(self.rules[-1].path, sample)
        if result is not None and not result.ok:
            self.error = result.message or "JSONPath invalid"
        return result
