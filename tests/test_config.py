"""
Tests for environment-driven settings.
"""

from dlq_redaction.config import Settings
from dlq_redaction.editor import RuleSetEditor
from dlq_redaction.replay import EnvSecretResolver
from dlq_redaction.validation import DebouncedValidator, validate_path


class TestSettings:
    """Test suite for Settings.from_env()."""

    def test_defaults(self):
        settings = Settings.from_env()

        assert settings.aws_region == "us-east-1"
        assert settings.rules_bucket is None
        assert settings.rules_prefix == "redaction-rules/"
        assert settings.secret_prefix == "REDACTION_SECRET_"
        assert settings.validation_debounce_seconds == 0.5

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "eu-west-3")
        monkeypatch.setenv("REDACTION_RULES_BUCKET", "rules")
        monkeypatch.setenv("REDACTION_VALIDATION_DEBOUNCE_MS", "250")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.aws_region == "eu-west-3"
        assert settings.rules_bucket == "rules"
        assert settings.validation_debounce_seconds == 0.25
        assert settings.log_level == "DEBUG"

    def test_empty_bucket_means_unset(self, monkeypatch):
        monkeypatch.setenv("REDACTION_RULES_BUCKET", "")

        assert Settings.from_env().rules_bucket is None

    def test_secret_prefix_reaches_resolver(self, monkeypatch):
        monkeypatch.setenv("REDACTION_SECRET_PREFIX", "DLQ_")
        monkeypatch.setenv("DLQ_CARD_KEY", "s3cret")

        assert EnvSecretResolver().resolve("card-key") == b"s3cret"

    def test_debounce_reaches_validator(self, monkeypatch):
        monkeypatch.setenv("REDACTION_VALIDATION_DEBOUNCE_MS", "0")

        assert DebouncedValidator(validate_path).delay == 0

    def test_fractional_debounce(self, monkeypatch):
        monkeypatch.setenv("REDACTION_VALIDATION_DEBOUNCE_MS", "0.5")

        assert Settings.from_env().validation_debounce_seconds == 0.0005

    def test_unused_debounce_setting_is_not_read(self, monkeypatch):
        monkeypatch.setenv("REDACTION_VALIDATION_DEBOUNCE_MS", "soon")

        editor = RuleSetEditor()

        assert not editor.validator.available
