"""
Replay boundary - redaction for payloads that leave the preview.

Anything persisted or replayed onto a live queue must be redacted here,
never with the preview engine. The differences:

    - HASH rules use HMAC-SHA256 keyed with a real secret resolved from the
      rule's secret label, instead of the preview FNV fingerprint
    - every secret is resolved before any work starts (missing -> MissingSecret)
    - any failed rule or pointer aborts with RedactionIncomplete
    - the output is scanned for leftover preview hashes (PreviewHashLeak)
"""

import hashlib
import hmac
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from .config import Settings
from .engine import RuleApplyEngine
from .errors import MissingSecret, PreviewHashLeak, RedactionIncomplete
from .models import ApplyResult, HashOptions, RedactionAction, Rule
from .pointer import build_pointer
from .transformers import PREVIEW_LABEL, display_string

logger = logging.getLogger(__name__)

PREVIEW_HASH_PATTERN = re.compile(r"^h:[0-9a-f]{8}(?:[0-9a-f]{8})?$")


def keyed_hash(value: Any, options: Optional[HashOptions], secret: bytes) -> str:
    """HMAC-SHA256 of the rendered value; short form keeps 16 hex chars."""
    digest = hmac.new(secret, display_string(value).encode("utf-8"), hashlib.sha256).hexdigest()
    if options is not None and options.short_form:
        return digest[:16]
    return digest


class SecretResolver(ABC):
    @abstractmethod
    def resolve(self, label: str) -> bytes:
        """Return the secret for label or raise MissingSecret."""
        pass


class EnvSecretResolver(SecretResolver):
    """
    Resolve secret labels from environment variables.

    A label such as "payments-key" is looked up as REDACTION_SECRET_PAYMENTS_KEY,
    then as the label itself.
    """

    def __init__(self, prefix: Optional[str] = None):
        self._prefix = prefix if prefix is not None else Settings.from_env().secret_prefix

    def resolve(self, label: str) -> bytes:
        env_name = self._prefix + re.sub(r"[^A-Za-z0-9]", "_", label).upper()
        value = os.getenv(env_name) or os.getenv(label)
        if not value:
            raise MissingSecret(label)
        return value.encode("utf-8")


def ensure_no_preview_hashes(document: Any) -> None:
    """Raise PreviewHashLeak if any string in document looks like a preview hash."""
    stack: list[tuple[list, Any]] = [([], document)]
    while stack:
        segments, value = stack.pop()
        if isinstance(value, str):
            if PREVIEW_HASH_PATTERN.match(value):
                raise PreviewHashLeak(build_pointer(segments))
        elif isinstance(value, dict):
            stack.extend((segments + [key], child) for key, child in value.items())
        elif isinstance(value, list):
            stack.extend((segments + [index], child) for index, child in enumerate(value))


class ReplayRedactor:
    """
    Redact payloads for storage or replay with keyed hashing.

    Example:
        redactor = ReplayRedactor(EnvSecretResolver())
        result = redactor.redact(payload, rules)
        producer.send(target_topic, json.dumps(result.redacted_document))
    """

    def __init__(self, resolver: SecretResolver):
        self._resolver = resolver

    def _resolve_secrets(self, rules: list[Rule]) -> dict[str, bytes]:
        secrets: dict[str, bytes] = {}
        for rule in rules:
            if rule.enabled is False or rule.action is not RedactionAction.HASH:
                continue
            label = (rule.hash_options.secret_label if rule.hash_options else None) or PREVIEW_LABEL
            if label not in secrets:
                secrets[label] = self._resolver.resolve(label)
        return secrets

    def redact(self, document: Any, rules: list[Rule]) -> ApplyResult:
        secrets = self._resolve_secrets(rules)

        def hasher(value: Any, options: Optional[HashOptions]) -> str:
            label = (options.secret_label if options else None) or PREVIEW_LABEL
            return keyed_hash(value, options, secrets[label])

        result = RuleApplyEngine(hasher=hasher).apply(document, rules)

        failed = [entry for entry in result.audit if entry.error or entry.failed_count]
        if failed:
            summary = "; ".join(f"{entry.path}: {entry.error or f'{entry.failed_count} failed'}" for entry in failed)
            raise RedactionIncomplete(f"{len(failed)} rule(s) failed: {summary}")

        ensure_no_preview_hashes(result.redacted_document)
        logger.info(f"Redacted payload for replay: {result.total_matches} location(s) across {len(result.audit)} rule(s)")
        return result
