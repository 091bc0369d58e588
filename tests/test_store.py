"""
Tests for the rule stores.

Tests cover:
- Loading an unsaved rule set (empty list)
- Whole-list replacement on save
- Scope parsing and key defaults
- Isolation from caller mutations
- S3-backed persistence (moto)
"""

import json

import pytest

from dlq_redaction.models import MaskOptions, RedactionAction, Rule
from dlq_redaction.store import InMemoryRuleStore, RuleScope, S3RuleStore


def sample_rules():
    return [
        Rule(id="r1", path="$.customer.email", action=RedactionAction.MASK,
             mask_options=MaskOptions(keep_last=3)),
        Rule(id="r2", path="$.card.number", action=RedactionAction.REMOVE),
    ]


class TestInMemoryRuleStore:
    """Test suite for InMemoryRuleStore."""

    def test_load_unsaved_returns_empty(self):
        assert InMemoryRuleStore().load("topic", "orders-DLQ") == []

    def test_save_and_load(self):
        store = InMemoryRuleStore()
        store.save("topic", "orders-DLQ", sample_rules())

        loaded = store.load("topic", "orders-DLQ")

        assert [rule.to_dict() for rule in loaded] == [rule.to_dict() for rule in sample_rules()]

    def test_save_replaces_whole_list(self):
        store = InMemoryRuleStore()
        store.save("topic", "orders-DLQ", sample_rules())
        store.save("topic", "orders-DLQ", sample_rules()[:1])

        assert [rule.id for rule in store.load("topic", "orders-DLQ")] == ["r1"]

    def test_scopes_and_keys_are_separate(self):
        store = InMemoryRuleStore()
        store.save("topic", "a", sample_rules())

        assert store.load("topic", "b") == []
        assert store.load("pattern", "a") == []

    def test_scope_is_case_insensitive_and_defaults_to_global(self):
        store = InMemoryRuleStore()
        store.save("GLOBAL", None, sample_rules())

        assert len(store.load(None, "")) == 2
        assert ("global", "_") in store.keys()

    def test_unknown_scope_raises(self):
        with pytest.raises(ValueError, match="Unknown rule scope"):
            InMemoryRuleStore().load("cluster", "x")

    def test_caller_mutations_do_not_leak(self):
        store = InMemoryRuleStore()
        rules = sample_rules()
        store.save("global", None, rules)
        rules[0].path = "$.changed"

        loaded = store.load("global", None)
        loaded[1].path = "$.also.changed"

        assert [rule.path for rule in store.load("global", None)] == ["$.customer.email", "$.card.number"]

    def test_save_none_clears(self):
        store = InMemoryRuleStore()
        store.save("global", None, sample_rules())
        store.save("global", None, None)

        assert store.load("global", None) == []


class TestS3RuleStore:
    """Test suite for S3RuleStore."""

    def test_load_missing_object_returns_empty(self, s3_client):
        store = S3RuleStore(s3_client, "redaction-rules-test")

        assert store.load("topic", "orders-DLQ") == []

    def test_save_writes_one_json_object(self, s3_client):
        store = S3RuleStore(s3_client, "redaction-rules-test", prefix="rules/")
        store.save("topic", "orders/DLQ", sample_rules())

        obj = s3_client.get_object(Bucket="redaction-rules-test", Key="rules/topic/orders%2FDLQ.json")
        body = json.loads(obj["Body"].read())

        assert body["scope"] == "topic"
        assert body["key"] == "orders/DLQ"
        assert [rule["id"] for rule in body["rules"]] == ["r1", "r2"]

    def test_round_trip(self, s3_client):
        store = S3RuleStore(s3_client, "redaction-rules-test")
        store.save("pattern", "orders-*", sample_rules())

        loaded = store.load("pattern", "orders-*")

        assert [rule.to_dict() for rule in loaded] == [rule.to_dict() for rule in sample_rules()]

    def test_object_key_layout(self, s3_client):
        store = S3RuleStore(s3_client, "redaction-rules-test")

        assert store.object_key(RuleScope.GLOBAL, "_") == "redaction-rules/global/_.json"

    def test_missing_bucket_propagates(self, s3_client):
        from botocore.exceptions import ClientError

        store = S3RuleStore(s3_client, "no-such-bucket")

        with pytest.raises(ClientError):
            store.save("global", None, sample_rules())
