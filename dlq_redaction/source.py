"""
Message Source - read-only access to messages parked in dead-letter queues.

The redaction tooling only needs a sample payload to preview rules against,
so sources expose fetch_messages() and fetch_sample(); nothing is ever
acknowledged, deleted or replayed from here.
"""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

MAX_CONTROL_CHARS = 2
SQS_MAX_MESSAGES = 10


def try_utf8(data: Optional[bytes]) -> Optional[str]:
    """
    Decode bytes as UTF-8 text, or None if they look binary.

    Text with more than two control characters (below TAB, or between CR
    and space) is treated as binary.
    """
    if data is None:
        return None
    text = data.decode("utf-8", errors="replace")
    controls = sum(1 for ch in text if ord(ch) < 0x09 or 0x0D < ord(ch) < 0x20)
    return text if controls <= MAX_CONTROL_CHARS else None


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@dataclass
class DeadLetterMessage:
    """One parked message addressed by topic, partition and offset."""
    topic: str
    partition: int
    offset: int
    timestamp: int
    key_utf8: Optional[str] = None
    value_utf8: Optional[str] = None
    value_base64: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_bytes(
        cls,
        topic: str,
        partition: int,
        offset: int,
        timestamp: int,
        key: Optional[bytes],
        value: Optional[bytes],
        headers: Optional[dict[str, bytes]] = None,
    ) -> "DeadLetterMessage":
        return cls(
            topic=topic,
            partition=partition,
            offset=offset,
            timestamp=timestamp,
            key_utf8=try_utf8(key),
            value_utf8=try_utf8(value),
            value_base64=_b64(value) if value is not None else None,
            headers={name: _b64(raw) for name, raw in (headers or {}).items()},
        )

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "partition": self.partition,
            "offset": self.offset,
            "timestamp": self.timestamp,
            "keyUtf8": self.key_utf8,
            "valueUtf8": self.value_utf8,
            "valueBase64": self.value_base64,
            "headers": dict(self.headers),
        }


class MessageSource(ABC):
    """Abstract read-only view over dead-letter topics."""

    @abstractmethod
    def fetch_messages(self, topic: str, limit: int = 1) -> list[DeadLetterMessage]:
        """Return up to limit messages, most recent first."""
        pass

    def fetch_sample(self, topic: str) -> Optional[str]:
        """Return the UTF-8 payload of the most recent message, or None."""
        messages = self.fetch_messages(topic, limit=1)
        if not messages:
            logger.info(f"No messages available in dead-letter topic {topic}")
            return None
        return messages[0].value_utf8


class InMemoryMessageSource(MessageSource):
    def __init__(self, messages: Optional[dict[str, list[DeadLetterMessage]]] = None):
        self._messages = {topic: list(items) for topic, items in (messages or {}).items()}

    def publish(self, message: DeadLetterMessage) -> None:
        self._messages.setdefault(message.topic, []).insert(0, message)

    def fetch_messages(self, topic: str, limit: int = 1) -> list[DeadLetterMessage]:
        return self._messages.get(topic, [])[:max(0, limit)]


class SqsMessageSource(MessageSource):
    """
    Peek at an SQS dead-letter queue named by the topic.

    Messages are received with a zero visibility timeout so they stay
    available to other consumers. SQS has no partitions (always 0); the
    offset is the FIFO SequenceNumber, or -1 on standard queues.
    """

    def __init__(self, client):
        self._client = client
        self._queue_urls: dict[str, str] = {}

    def _queue_url(self, topic: str) -> str:
        if topic not in self._queue_urls:
            self._queue_urls[topic] = self._client.get_queue_url(QueueName=topic)["QueueUrl"]
        return self._queue_urls[topic]

    def fetch_messages(self, topic: str, limit: int = 1) -> list[DeadLetterMessage]:
        response = self._client.receive_message(
            QueueUrl=self._queue_url(topic),
            MaxNumberOfMessages=max(1, min(limit, SQS_MAX_MESSAGES)),
            VisibilityTimeout=0,
            WaitTimeSeconds=0,
            AttributeNames=["All"],
            MessageAttributeNames=["All"],
        )
        messages = [self._to_message(topic, raw) for raw in response.get("Messages", [])]
        messages.sort(key=lambda m: m.timestamp, reverse=True)
        return messages[:limit]

    @staticmethod
    def _to_message(topic: str, raw: dict) -> DeadLetterMessage:
        attributes = raw.get("Attributes", {})
        headers = {}
        for name, attr in raw.get("MessageAttributes", {}).items():
            if "BinaryValue" in attr:
                headers[name] = attr["BinaryValue"]
            else:
                headers[name] = str(attr.get("StringValue", "")).encode("utf-8")
        group_id = attributes.get("MessageGroupId")
        return DeadLetterMessage.from_bytes(
            topic=topic,
            partition=0,
            offset=int(attributes.get("SequenceNumber", -1)),
            timestamp=int(attributes.get("SentTimestamp", 0)),
            key=group_id.encode("utf-8") if group_id else None,
            value=raw.get("Body", "").encode("utf-8"),
            headers=headers,
        )
