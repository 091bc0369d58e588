"""
Path expression validation for rule authoring.

validate_path() checks an expression locally against a sample document.
DebouncedValidator wraps any validator (local or remote, sync or async)
so that rapid edits only fire the last request and stale answers are
dropped. Validation is advisory: it never blocks or changes a preview.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from .config import Settings
from .errors import PathSyntaxError
from .matcher import resolve

logger = logging.getLogger(__name__)


@dataclass
class PathValidation:
    ok: bool
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"ok": self.ok}
        if self.message:
            out["message"] = self.message
        return out


Validator = Callable[[str, Any], Union[Optional[PathValidation], Awaitable[Optional[PathValidation]]]]


def validate_path(expression: str, sample: Any = None) -> PathValidation:
    """Check that expression parses and report how often it matches sample."""
    try:
        pointers = resolve({} if sample is None else sample, expression)
    except PathSyntaxError as e:
        return PathValidation(ok=False, message=e.reason)
    return PathValidation(ok=True, message=f"{len(pointers)} match(es) in sample")


class DebouncedValidator:
    """
    Debounce and de-duplicate validation requests.

    Each request() waits `delay` seconds and then calls the validator. A
    request returns None when a newer request was issued before it fired
    or before its result arrived, when the validator failed, or when no
    validator is configured.

    Example:
        validator = DebouncedValidator(validate_path, delay=0.5)
        result = await validator.request("$.customer.email", sample)
    """

    def __init__(self, validator: Optional[Validator], delay: Optional[float] = None):
        self._validator = validator
        if delay is None and validator is not None:
            delay = Settings.from_env().validation_debounce_seconds
        self._delay = delay or 0.0
        self._generation = 0

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def available(self) -> bool:
        return self._validator is not None

    async def request(self, expression: str, sample: Any) -> Optional[PathValidation]:
        if self._validator is None:
            return None

        self._generation += 1
        generation = self._generation

        await asyncio.sleep(self._delay)
        if generation != self._generation:
            return None

        try:
            if inspect.iscoroutinefunction(self._validator):
                result = await self._validator(expression, sample)
            else:
                # Blocking validators run off the event loop.
                result = await asyncio.to_thread(self._validator, expression, sample)
                if inspect.isawaitable(result):
                    result = await result
        except Exception as e:
            logger.warning(f"Path validation failed for {expression!r}: {e}")
            return None

        if generation != self._generation:
            logger.debug(f"Discarding superseded validation result for {expression!r}")
            return None
        return result
