"""
Tests for replay-bound redaction.
"""

import hashlib
import hmac

import pytest

from dlq_redaction.errors import MissingSecret, PreviewHashLeak, RedactionIncomplete
from dlq_redaction.models import HashOptions, MaskOptions, RedactionAction, Rule
from dlq_redaction.replay import (
    EnvSecretResolver,
    ReplayRedactor,
    SecretResolver,
    ensure_no_preview_hashes,
    keyed_hash,
)


class StaticResolver(SecretResolver):
    def __init__(self, secrets):
        self.secrets = secrets

    def resolve(self, label):
        if label not in self.secrets:
            raise MissingSecret(label)
        return self.secrets[label]


def hash_rule(path, label="REDACTION_KEY", short_form=False):
    return Rule(path=path, action=RedactionAction.HASH,
                hash_options=HashOptions(secret_label=label, short_form=short_form))


class TestKeyedHash:
    """Test suite for keyed_hash()."""

    def test_matches_hmac_sha256(self):
        expected = hmac.new(b"k", b"4111", hashlib.sha256).hexdigest()

        assert keyed_hash("4111", None, b"k") == expected

    def test_short_form(self):
        assert len(keyed_hash("4111", HashOptions(short_form=True), b"k")) == 16

    def test_different_secrets_differ(self):
        assert keyed_hash("4111", None, b"a") != keyed_hash("4111", None, b"b")


class TestEnvSecretResolver:
    """Test suite for EnvSecretResolver."""

    def test_prefixed_variable(self, monkeypatch):
        monkeypatch.setenv("REDACTION_SECRET_PAYMENTS_KEY", "s3cret")

        assert EnvSecretResolver().resolve("payments-key") == b"s3cret"

    def test_label_as_variable(self, monkeypatch):
        monkeypatch.setenv("REDACTION_KEY", "s3cret")

        assert EnvSecretResolver().resolve("REDACTION_KEY") == b"s3cret"

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("REDACTION_SECRET_NOPE", raising=False)
        monkeypatch.delenv("nope", raising=False)

        with pytest.raises(MissingSecret):
            EnvSecretResolver().resolve("nope")


class TestReplayRedactor:
    """Test suite for ReplayRedactor."""

    def test_hashes_with_secret(self):
        redactor = ReplayRedactor(StaticResolver({"REDACTION_KEY": b"k"}))

        result = redactor.redact({"card": "4111"}, [hash_rule("$.card")])

        assert result.redacted_document == {"card": keyed_hash("4111", None, b"k")}
        assert not result.redacted_document["card"].startswith("h:")

    def test_missing_secret_fails_before_work(self):
        redactor = ReplayRedactor(StaticResolver({}))

        with pytest.raises(MissingSecret):
            redactor.redact({"card": "4111"}, [hash_rule("$.card")])

    def test_disabled_hash_rules_need_no_secret(self):
        rule = hash_rule("$.card")
        rule.enabled = False
        redactor = ReplayRedactor(StaticResolver({}))

        assert redactor.redact({"card": "4111"}, [rule]).redacted_document == {"card": "4111"}

    def test_failed_rule_aborts(self):
        redactor = ReplayRedactor(StaticResolver({}))
        rules = [
            Rule(path="$.[", action=RedactionAction.REMOVE),
            Rule(path="$.a", action=RedactionAction.MASK, mask_options=MaskOptions()),
        ]

        with pytest.raises(RedactionIncomplete):
            redactor.redact({"a": "x"}, rules)

    def test_partial_failure_aborts(self):
        redactor = ReplayRedactor(StaticResolver({}))

        with pytest.raises(RedactionIncomplete):
            redactor.redact({"a": "x", "b": {"c": 1}}, [Rule(path="$.*", action=RedactionAction.MASK)])

    def test_preview_hash_in_payload_is_rejected(self):
        redactor = ReplayRedactor(StaticResolver({}))

        with pytest.raises(PreviewHashLeak) as excinfo:
            redactor.redact({"card": "h:0123abcd"}, [])

        assert excinfo.value.pointer == "/card"


class TestEnsureNoPreviewHashes:
    """Test suite for ensure_no_preview_hashes()."""

    def test_clean_document(self):
        ensure_no_preview_hashes({"a": ["h:xyz", "hash", {"b": 1}]})

    def test_nested_leak(self):
        with pytest.raises(PreviewHashLeak) as excinfo:
            ensure_no_preview_hashes({"items": [{"id": "h:0123456789abcdef"}]})

        assert excinfo.value.pointer == "/items/0/id"
