"""
Tests for rule suggestions and residual-PII scanning.
"""

from dlq_redaction import apply
from dlq_redaction.models import RedactionAction
from dlq_redaction.suggest import find_residual_pii, path_expression, rule_for, suggest_rules


class TestPathExpression:
    """Test suite for path_expression()."""

    def test_identifiers_and_indices(self):
        assert path_expression(["items", 3, "sku"]) == "$.items[*].sku"
        assert path_expression(["items", 3, "sku"], generalize=False) == "$.items[3].sku"

    def test_quoted_keys(self):
        assert path_expression(["a/b", "it's"]) == "$['a/b']['it\\'s']"


class TestSuggestRules:
    """Test suite for suggest_rules()."""

    def test_email_value_is_masked(self):
        rules = suggest_rules({"contact": "alice@example.com"})

        assert len(rules) == 1
        assert rules[0].path == "$.contact"
        assert rules[0].action is RedactionAction.MASK
        assert rules[0].mask_options.keep_last == 3

    def test_card_number_is_hashed(self):
        rules = {rule.path: rule for rule in suggest_rules({"pan_value": "4111 1111 1111 1111"})}

        assert rules["$.pan_value"].action is RedactionAction.HASH

    def test_sensitive_key_names(self):
        rules = {rule.path: rule for rule in suggest_rules({"password": "hunter2", "ssn": "n/a"})}

        assert rules["$.password"].mask_options.fixed_replacement == "[REDACTED]"
        assert rules["$.ssn"].action is RedactionAction.REMOVE

    def test_array_elements_generalise_to_one_rule(self):
        rules = suggest_rules({"customers": [{"email": "a@example.com"}, {"email": "b@example.com"}]})

        assert [rule.path for rule in rules] == ["$.customers[*].email"]

    def test_plain_fields_are_ignored(self):
        assert suggest_rules({"sku": "A-1", "quantity": 2, "active": True}) == []

    def test_suggestions_redact_the_sample(self, order_document):
        paths = {rule.path for rule in suggest_rules(order_document)}

        assert "$.customer.email" in paths
        assert "$.payment.card.number" in paths
        assert "$.payment.card.cvv" in paths
        assert "$.items[*].secret" in paths

    def test_notes_name_the_kind(self):
        assert rule_for("email", "$.a").note == "suggested: email"


class TestFindResidualPii:
    """Test suite for find_residual_pii()."""

    def test_unredacted_email_is_reported(self):
        findings = find_residual_pii({"customer": {"email": "alice@example.com"}})

        assert [(f.pointer, f.kind) for f in findings] == [("/customer/email", "email")]

    def test_masked_email_is_clean(self):
        result = apply(
            {"customer": {"email": "alice@example.com"}},
            suggest_rules({"customer": {"email": "alice@example.com"}}),
        )

        assert find_residual_pii(result.redacted_document) == []
