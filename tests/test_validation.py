"""
Tests for path validation and the debounced validator.
"""

import asyncio
import threading

from dlq_redaction.validation import DebouncedValidator, PathValidation, validate_path


class TestValidatePath:
    """Test suite for validate_path()."""

    def test_valid_path_reports_matches(self):
        result = validate_path("$.items[*].secret", {"items": [{"secret": 1}, {"secret": 2}]})

        assert result.ok
        assert result.message == "2 match(es) in sample"

    def test_valid_path_without_sample(self):
        result = validate_path("$.customer.email")

        assert result.ok
        assert result.message == "0 match(es) in sample"

    def test_invalid_path(self):
        result = validate_path("$.[", {"a": 1})

        assert not result.ok
        assert result.message

    def test_to_dict(self):
        assert PathValidation(ok=False, message="bad").to_dict() == {"ok": False, "message": "bad"}
        assert PathValidation(ok=True).to_dict() == {"ok": True}


class TestDebouncedValidator:
    """Test suite for DebouncedValidator."""

    def test_no_validator(self):
        validator = DebouncedValidator(None, delay=0)

        assert not validator.available
        assert asyncio.run(validator.request("$.a", {})) is None

    def test_single_request(self):
        validator = DebouncedValidator(validate_path, delay=0)

        result = asyncio.run(validator.request("$.a", {"a": 1}))

        assert result.ok
        assert result.message == "1 match(es) in sample"

    def test_only_latest_request_fires(self):
        calls = []

        def record(expression, sample):
            calls.append(expression)
            return PathValidation(ok=True)

        validator = DebouncedValidator(record, delay=0.01)

        async def burst():
            return await asyncio.gather(
                validator.request("$.c", {}),
                validator.request("$.cu", {}),
                validator.request("$.customer", {}),
            )

        results = asyncio.run(burst())

        assert results[:2] == [None, None]
        assert results[2].ok
        assert calls == ["$.customer"]

    def test_stale_result_is_discarded(self):
        async def run():
            in_flight = asyncio.Event()
            release = asyncio.Event()

            async def slow(expression, sample):
                if expression == "$.first":
                    in_flight.set()
                    await release.wait()
                return PathValidation(ok=True, message=expression)

            validator = DebouncedValidator(slow, delay=0)
            first = asyncio.ensure_future(validator.request("$.first", {}))
            await in_flight.wait()
            second = await validator.request("$.second", {})
            release.set()
            return await first, second

        first, second = asyncio.run(run())

        assert first is None
        assert second.message == "$.second"

    def test_blocking_validator_runs_off_the_event_loop(self):
        threads = []

        def blocking(expression, sample):
            threads.append(threading.get_ident())
            return PathValidation(ok=True)

        async def run():
            loop_thread = threading.get_ident()
            result = await DebouncedValidator(blocking, delay=0).request("$.a", {})
            return loop_thread, result

        loop_thread, result = asyncio.run(run())

        assert result.ok
        assert threads and threads[0] != loop_thread

    def test_async_validator(self):
        async def remote(expression, sample):
            return PathValidation(ok=False, message="JSONPath invalid")

        validator = DebouncedValidator(remote, delay=0)

        result = asyncio.run(validator.request("$.[", {}))

        assert result == PathValidation(ok=False, message="JSONPath invalid")

    def test_validator_failure_is_swallowed(self, caplog):
        def broken(expression, sample):
            raise ConnectionError("validation service unreachable")

        validator = DebouncedValidator(broken, delay=0)

        assert asyncio.run(validator.request("$.a", {})) is None
        assert "validation service unreachable" in caplog.text
