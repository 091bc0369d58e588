"""
DLQ Redaction Studio - MCP Server for authoring redaction rules

A local MCP (Model Context Protocol) server that lets an operator (or an AI
agent acting for one) preview path-based redaction rules against messages
parked in dead-letter queues before saving them.

Tools:
    - get_redaction_rules: Load the rule set for a scope/key
    - save_redaction_rules: Replace the rule set for a scope/key
    - preview_redaction: Apply rules to a sample payload (audit + diff)
    - validate_json_path: Check a path expression against a sample
    - fetch_dlq_sample: Peek at the latest message in an SQS dead-letter queue
    - suggest_redaction_rules: Propose rules for sensitive-looking fields

Safety Constraints:
    - Previews use a non-secret hash; they are never fit for replay
    - Payload values are never logged, only rule paths and counts
    - Sampling never deletes or hides messages (visibility timeout 0)
"""

import json
import logging
import sys
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError
from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from dlq_redaction.config import Settings
from dlq_redaction.diff import diff, render_diff
from dlq_redaction.editor import parse_sample
from dlq_redaction.engine import apply
from dlq_redaction.errors import InvalidRule, MalformedDocument
from dlq_redaction.models import rules_from_dicts, rules_to_dicts
from dlq_redaction.source import SqsMessageSource
from dlq_redaction.store import InMemoryRuleStore, RuleStore, S3RuleStore
from dlq_redaction.suggest import suggest_rules
from dlq_redaction.validation import validate_path

# Load environment variables from .env file
load_dotenv()

# Initialize MCP server
mcp = FastMCP(
    "dlq-redaction-studio",
    instructions="MCP Server for previewing and saving redaction rules for dead-letter queue messages"
)

CREDENTIALS_MESSAGE = (
    "AWS credentials not found. Please set AWS_ACCESS_KEY_ID, "
    "AWS_SECRET_ACCESS_KEY, and AWS_REGION environment variables."
)

_memory_store: Optional[InMemoryRuleStore] = None


def get_s3_client():
    """Create and return an S3 client using environment credentials."""
    return boto3.client("s3", region_name=Settings.from_env().aws_region)


def get_sqs_client():
    """Create and return an SQS client using environment credentials."""
    return boto3.client("sqs", region_name=Settings.from_env().aws_region)


def get_rule_store() -> RuleStore:
    """S3-backed store when REDACTION_RULES_BUCKET is set, otherwise in-process."""
    global _memory_store
    settings = Settings.from_env()
    if settings.rules_bucket:
        return S3RuleStore(get_s3_client(), settings.rules_bucket, settings.rules_prefix)
    if _memory_store is None:
        _memory_store = InMemoryRuleStore()
    return _memory_store


def _aws_error(e: ClientError) -> str:
    error_code = e.response.get("Error", {}).get("Code", "Unknown")
    error_message = e.response.get("Error", {}).get("Message", str(e))
    return f"AWS Error ({error_code}): {error_message}"


@mcp.tool()
def get_redaction_rules(scope: str = "global", key: str = "") -> dict[str, Any]:
    """
    Load the saved redaction rules for a scope and key.

    Args:
        scope: One of "global", "topic" or "pattern". Defaults to "global".
        key: The topic name or pattern the rules belong to. Leave empty
             for the global rule set.

    Returns:
        A dictionary containing:
        - status: "success" or "error"
        - scope / key: What was loaded
        - rules: The ordered rule list (empty if nothing was saved)
        - count: Number of rules

    Example usage:
        get_redaction_rules("topic", "orders-DLQ")
    """
    try:
        rules = get_rule_store().load(scope, key or None)
        return {
            "status": "success",
            "scope": scope,
            "key": key,
            "rules": rules_to_dicts(rules),
            "count": len(rules)
        }
    except ValueError as e:
        return {"status": "error", "scope": scope, "key": key, "message": str(e)}
    except NoCredentialsError:
        return {"status": "error", "scope": scope, "key": key, "message": CREDENTIALS_MESSAGE}
    except ClientError as e:
        return {"status": "error", "scope": scope, "key": key, "message": _aws_error(e)}
    except Exception as e:
        return {"status": "error", "scope": scope, "key": key, "message": f"Unexpected error: {str(e)}"}


@mcp.tool()
def save_redaction_rules(scope: str, key: str, rules: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Replace the redaction rules for a scope and key.

    The whole list is replaced; there are no partial updates. Every rule
    needs a path and an action.

    Args:
        scope: One of "global", "topic" or "pattern".
        key: The topic name or pattern. Empty for the global rule set.
        rules: Rules as returned by get_redaction_rules, e.g.
               {"path": "$.customer.email", "action": "MASK",
                "maskOptions": {"keepLast": 3}}

    Returns:
        A dictionary with status, scope, key and the number of saved rules.
    """
    try:
        parsed = rules_from_dicts(rules)
        invalid = [rule.id for rule in parsed if not rule.is_valid]
        if invalid:
            return {
                "status": "error",
                "scope": scope,
                "key": key,
                "message": f"Rules missing a path or action: {', '.join(invalid)}"
            }
        get_rule_store().save(scope, key or None, parsed)
        return {"status": "success", "scope": scope, "key": key, "count": len(parsed)}
    except ValueError as e:
        return {"status": "error", "scope": scope, "key": key, "message": str(e)}
    except NoCredentialsError:
        return {"status": "error", "scope": scope, "key": key, "message": CREDENTIALS_MESSAGE}
    except ClientError as e:
        return {"status": "error", "scope": scope, "key": key, "message": _aws_error(e)}
    except Exception as e:
        return {"status": "error", "scope": scope, "key": key, "message": f"Unexpected error: {str(e)}"}


@mcp.tool()
def preview_redaction(sample_json: str, rules: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Preview redaction rules against a sample payload.

    Rules are applied in order to a copy of the sample; later rules see the
    changes made by earlier ones. A bad path only affects its own rule.

    Args:
        sample_json: The sample message body as a JSON string.
        rules: Rules to apply (same shape as get_redaction_rules returns).

    Returns:
        A dictionary containing:
        - status: "success", "invalid_input" (sample is not JSON) or "error"
        - redacted: The redacted document
        - audit: One entry per enabled rule with matchCount and any error
        - diff: Structural delta between the sample and the redacted copy
        - changes: The delta as human-readable lines

    Notes:
        - HASH values in a preview are "h:"-tagged, non-secret fingerprints
          and must never be stored or replayed
    """
    try:
        document = parse_sample(sample_json)
    except MalformedDocument as e:
        return {"status": "invalid_input", "message": str(e)}

    try:
        result = apply(document, rules_from_dicts(rules))
    except InvalidRule as e:
        return {"status": "error", "message": str(e)}
    except Exception as e:
        return {"status": "error", "message": f"Unexpected error: {str(e)}"}

    delta = diff(document, result.redacted_document)
    return {
        "status": "success",
        "redacted": result.redacted_document,
        "audit": [entry.to_dict() for entry in result.audit],
        "diff": delta,
        "changes": render_diff(delta)
    }


@mcp.tool()
def validate_json_path(path: str, sample: Optional[Any] = None) -> dict[str, Any]:
    """
    Check that a path expression parses and see how often it matches.

    Args:
        path: A JSONPath expression, e.g. "$.items[*].secret" or "$..email".
        sample: Optional sample document (object, array or JSON string).

    Returns:
        {"status": "success", "ok": bool, "message": str}
    """
    if isinstance(sample, str):
        try:
            sample = json.loads(sample)
        except ValueError:
            return {"status": "invalid_input", "message": "Invalid sample JSON."}
    result = validate_path(path, sample)
    return {"status": "success", **result.to_dict()}


@mcp.tool()
def fetch_dlq_sample(queue_name: str) -> dict[str, Any]:
    """
    Fetch the latest message parked in an SQS dead-letter queue.

    The message is only peeked at: it is not deleted and stays visible to
    other consumers.

    Args:
        queue_name: Name of the dead-letter queue, e.g. "orders-DLQ".

    Returns:
        A dictionary containing:
        - status: "success" or "error"
        - queue: The queue name
        - message: The message (topic, offset, timestamp, valueUtf8, ...),
                   or None if the queue is empty
    """
    try:
        messages = SqsMessageSource(get_sqs_client()).fetch_messages(queue_name, limit=1)
        return {
            "status": "success",
            "queue": queue_name,
            "message": messages[0].to_dict() if messages else None
        }
    except NoCredentialsError:
        return {"status": "error", "queue": queue_name, "message": CREDENTIALS_MESSAGE}
    except ClientError as e:
        return {"status": "error", "queue": queue_name, "message": _aws_error(e)}
    except Exception as e:
        return {"status": "error", "queue": queue_name, "message": f"Unexpected error: {str(e)}"}


@mcp.tool()
def suggest_redaction_rules(sample_json: str) -> dict[str, Any]:
    """
    Suggest redaction rules for fields that look sensitive.

    Uses scrubadub's PII detectors, a few structured patterns (card numbers,
    SSNs, AWS keys, JWTs) and sensitive key names. Suggestions are a
    starting point and should be previewed before saving.

    Args:
        sample_json: The sample message body as a JSON string.

    Returns:
        {"status": "success", "rules": [...], "count": int}
    """
    try:
        document = parse_sample(sample_json)
    except MalformedDocument as e:
        return {"status": "invalid_input", "message": str(e)}

    rules = suggest_rules(document)
    return {"status": "success", "rules": rules_to_dicts(rules), "count": len(rules)}


if __name__ == "__main__":
    logging.basicConfig(level=Settings.from_env().log_level, stream=sys.stderr)
    # Run the MCP server using stdio transport
    mcp.run()
