"""
Pytest configuration and shared fixtures for DLQ Redaction Studio tests.

Uses moto to mock AWS services (S3 for the rule store, SQS for dead-letter
queues) for safe, isolated testing without real AWS credentials.
"""

import json
import os
import sys

import pytest

# Add parent directory to path for server imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture(autouse=True)
def set_aws_credentials(monkeypatch):
    """
    Set mock AWS credentials for moto and clear redaction settings.
    This runs automatically before each test.
    """
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    for name in ("REDACTION_RULES_BUCKET", "REDACTION_SECRET_PREFIX", "REDACTION_VALIDATION_DEBOUNCE_MS"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def s3_client():
    """Provide a mocked S3 client with a rules bucket."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="redaction-rules-test")
        yield client


@pytest.fixture
def sqs_client():
    """Provide a mocked SQS client."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        client = boto3.client("sqs", region_name="us-east-1")
        yield client


@pytest.fixture
def orders_dlq(sqs_client):
    """Create a dead-letter queue holding one order payload."""
    queue_url = sqs_client.create_queue(QueueName="orders-DLQ")["QueueUrl"]
    sqs_client.send_message(
        QueueUrl=queue_url,
        MessageBody=json.dumps({
            "customer": {"email": "alice@example.com"},
            "card": {"number": "4111111111111111"},
        }),
        MessageAttributes={
            "error": {"DataType": "String", "StringValue": "DeserializationException"}
        },
    )
    return "orders-DLQ"


@pytest.fixture
def order_document():
    """A typical parked order payload."""
    return {
        "customer": {
            "name": "Alice Martin",
            "email": "alice.martin@example.com",
            "phone": "+33612345678",
        },
        "payment": {"card": {"number": "4111111111111111", "cvv": "123"}, "amount": 129.9},
        "items": [
            {"sku": "A-1", "secret": "x"},
            {"sku": "B-2", "secret": "y"},
            {"sku": "C-3", "other": 1},
        ],
        "meta": {"ts": 1724693034000, "source": "dlq/orders-DLQ"},
    }
