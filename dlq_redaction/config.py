"""
Runtime settings read from the environment.

server.py calls load_dotenv() first, so values may also come from a .env
file in the working directory.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    aws_region: str = "us-east-1"
    rules_bucket: Optional[str] = None
    rules_prefix: str = "redaction-rules/"
    secret_prefix: str = "REDACTION_SECRET_"
    validation_debounce_seconds: float = 0.5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            rules_bucket=os.getenv("REDACTION_RULES_BUCKET") or None,
            rules_prefix=os.getenv("REDACTION_RULES_PREFIX", "redaction-rules/"),
            secret_prefix=os.getenv("REDACTION_SECRET_PREFIX", "REDACTION_SECRET_"),
            validation_debounce_seconds=float(os.getenv("REDACTION_VALIDATION_DEBOUNCE_MS", "500")) / 1000,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
