import pytest

from shipme.mcp.errors import PermanentError, TransientError, ValidationError
from shipme.mcp.retry import RetryPolicy, is_retryable, status_of, with_retry


class FakeSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class Flaky:
    """Fails with the given errors in order, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


@pytest.mark.asyncio
async def test_retries_transient_failures_with_exponential_backoff():
    sleep = FakeSleep()
    op = Flaky([TransientError("busy", status=503), TransientError("busy", status=503)])

    result = await with_retry(op, RetryPolicy(max_retries=3, initial_delay=0.5), sleep=sleep)

    assert result == "ok"
    assert op.calls == 3
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_non_retryable_status_fails_on_first_attempt():
    sleep = FakeSleep()
    op = Flaky([PermanentError("bad request", status=400)])

    with pytest.raises(PermanentError):
        await with_retry(op, RetryPolicy(max_retries=3, initial_delay=1), sleep=sleep)

    assert op.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_exhaustion_reraises_the_last_failure_unchanged():
    sleep = FakeSleep()
    err = TransientError("rate limited", status=429)

    async def always_fails():
        always_fails.calls += 1
        raise err

    always_fails.calls = 0

    with pytest.raises(TransientError) as exc_info:
        await with_retry(always_fails, RetryPolicy(max_retries=2, initial_delay=1), sleep=sleep)

    assert exc_info.value is err
    assert always_fails.calls == 3
    assert sleep.delays == [1, 2]


@pytest.mark.asyncio
async def test_failure_without_status_is_treated_as_transient():
    sleep = FakeSleep()
    op = Flaky([ConnectionResetError("connection reset")], result={"id": 1})

    result = await with_retry(op, RetryPolicy(max_retries=1, initial_delay=0.1), sleep=sleep)

    assert result == {"id": 1}
    assert op.calls == 2


@pytest.mark.asyncio
async def test_validation_errors_are_never_retried():
    sleep = FakeSleep()
    op = Flaky([ValidationError("missing field")])

    with pytest.raises(ValidationError):
        await with_retry(op, RetryPolicy(max_retries=5, initial_delay=1), sleep=sleep)

    assert op.calls == 1


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt():
    sleep = FakeSleep()
    op = Flaky([TransientError("busy", status=502)])

    with pytest.raises(TransientError):
        await with_retry(op, RetryPolicy(max_retries=0), sleep=sleep)

    assert op.calls == 1


@pytest.mark.asyncio
async def test_custom_retryable_statuses():
    sleep = FakeSleep()
    op = Flaky([PermanentError("conflict", status=409)])
    policy = RetryPolicy(max_retries=1, initial_delay=0, retryable_statuses=frozenset({409}))

    assert await with_retry(op, policy, sleep=sleep) == "ok"
    assert op.calls == 2


def test_status_extraction():
    class Response:
        status_code = 504

    class HTTPFailure(Exception):
        response = Response()

    assert status_of(TransientError("x", status=503)) == 503
    assert status_of(HTTPFailure()) == 504
    assert status_of(RuntimeError("x")) is None


def test_is_retryable_uses_policy_statuses():
    policy = RetryPolicy()
    assert is_retryable(TransientError("x", status=429), policy)
    assert not is_retryable(PermanentError("x", status=404), policy)
    assert not is_retryable(PermanentError("x", status=500), policy)


def test_policy_rejects_negative_values():
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValueError):
        RetryPolicy(initial_delay=-0.5)
