"""
Rule Store - persistence for named rule sets.

Rule sets are keyed by (scope, key) where scope is one of global, topic or
pattern. load() returns the saved list (empty when nothing was saved) and
save() replaces the whole list in one step; partial updates are not
supported.

Implementations:
    - InMemoryRuleStore: process-local, used by tests and as the server default
    - S3RuleStore: one JSON object per rule set in an S3 bucket
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

from botocore.exceptions import ClientError

from .models import Rule, rules_from_dicts, rules_to_dicts

logger = logging.getLogger(__name__)

DEFAULT_KEY = "_"


class RuleScope(str, Enum):
    GLOBAL = "global"
    TOPIC = "topic"
    PATTERN = "pattern"

    @classmethod
    def parse(cls, value: Any) -> "RuleScope":
        if value is None or value == "":
            return cls.GLOBAL
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown rule scope {value!r}; expected one of: global, topic, pattern"
            ) from None


def normalize_key(key: Optional[str]) -> str:
    return key if key else DEFAULT_KEY


class RuleStore(ABC):
    """
    Abstract base class for rule set persistence.

    Subclasses implement _read() and _write() over serialised rule dicts;
    scope parsing and key defaults are handled here.
    """

    def load(self, scope: Any, key: Optional[str] = None) -> list[Rule]:
        """Return the rules saved for (scope, key), or an empty list."""
        return rules_from_dicts(self._read(RuleScope.parse(scope), normalize_key(key)))

    def save(self, scope: Any, key: Optional[str], rules: Optional[list[Rule]]) -> None:
        """Replace the rules saved for (scope, key)."""
        parsed = RuleScope.parse(scope)
        normalized = normalize_key(key)
        self._write(parsed, normalized, rules_to_dicts(rules or []))
        logger.info(f"Saved {len(rules or [])} rule(s) for {parsed.value}:{normalized}")

    @abstractmethod
    def _read(self, scope: RuleScope, key: str) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    def _write(self, scope: RuleScope, key: str, rules: list[dict[str, Any]]) -> None:
        pass


class InMemoryRuleStore(RuleStore):
    """Thread-safe in-process store. Saved lists are copied on the way in and out."""

    def __init__(self):
        self._db: dict[str, str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _index(scope: RuleScope, key: str) -> str:
        return f"{scope.value}:{key}"

    def _read(self, scope: RuleScope, key: str) -> list[dict[str, Any]]:
        with self._lock:
            raw = self._db.get(self._index(scope, key))
        return json.loads(raw) if raw else []

    def _write(self, scope: RuleScope, key: str, rules: list[dict[str, Any]]) -> None:
        raw = json.dumps(rules)
        with self._lock:
            self._db[self._index(scope, key)] = raw

    def keys(self) -> list[tuple[str, str]]:
        """Return the (scope, key) pairs that have a saved rule set."""
        with self._lock:
            return [tuple(index.split(":", 1)) for index in self._db]


class S3RuleStore(RuleStore):
    """
    Rule sets stored as JSON objects in S3.

    Object layout: <prefix><scope>/<url-quoted key>.json containing
    {"scope": ..., "key": ..., "rules": [...]}. A single put_object replaces
    the set atomically.

    Example:
        store = S3RuleStore(boto3.client("s3"), bucket="dlq-redaction")
        store.save("topic", "orders-DLQ", rules)
    """

    def __init__(self, client, bucket: str, prefix: str = "redaction-rules/"):
        self._client = client
        self._bucket = bucket
        self._prefix = prefix

    def object_key(self, scope: RuleScope, key: str) -> str:
        return f"{self._prefix}{scope.value}/{quote(key, safe='')}.json"

    def _read(self, scope: RuleScope, key: str) -> list[dict[str, Any]]:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=self.object_key(scope, key))
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("NoSuchKey", "404"):
                return []
            raise
        body = json.loads(response["Body"].read().decode("utf-8"))
        return body.get("rules", [])

    def _write(self, scope: RuleScope, key: str, rules: list[dict[str, Any]]) -> None:
        body = {"scope": scope.value, "key": key, "rules": rules}
        self._client.put_object(
            Bucket=self._bucket,
            Key=self.object_key(scope, key),
            Body=json.dumps(body).encode("utf-8"),
            ContentType="application/json",
        )
