"""Tests for the retry/backoff executor."""

import json

import httplib2
import pytest
from googleapiclient.errors import HttpError

from mailsweep.errors import GatewayError, NotFoundError
from mailsweep.fetcher import RetryExecutor


class FlakyOperation:
    """Fails with the given errors, then returns 'ok'"""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestClassification:
    """Tests for transient vs terminal failures."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    def test_transient_statuses(self, status):
        assert GatewayError("x", status=status).transient is True

    @pytest.mark.parametrize("status", [400, 401, 404])
    def test_terminal_statuses(self, status):
        assert GatewayError("x", status=status).transient is False

    def test_403_rate_limit_reason_is_transient(self):
        assert GatewayError("x", status=403, reason="userRateLimitExceeded").transient
        assert not GatewayError("x", status=403, reason="insufficientPermissions").transient

    def test_no_status_is_terminal(self):
        assert GatewayError("x").transient is False

    def test_from_http_error(self):
        resp = httplib2.Response({"status": 429})
        content = (
            b'{"error": {"code": 429, "message": "Too many requests", '
            b'"errors": [{"reason": "rateLimitExceeded"}]}}'
        )
        error = GatewayError.from_http_error(HttpError(resp, content))

        assert error.status == 429
        assert error.transient is True

    def test_quota_403_with_error_info_details_is_transient(self):
        resp = httplib2.Response({"status": 403})
        content = json.dumps(
            {
                "error": {
                    "code": 403,
                    "message": "Quota exceeded for quota metric 'Queries'",
                    "errors": [{"reason": "userRateLimitExceeded", "domain": "usageLimits"}],
                    "details": [
                        {
                            "@type": "type.googleapis.com/google.rpc.ErrorInfo",
                            "reason": "RATE_LIMIT_EXCEEDED",
                            "domain": "googleapis.com",
                        }
                    ],
                }
            }
        ).encode()

        error = GatewayError.from_http_error(HttpError(resp, content))

        assert error.reason == "userRateLimitExceeded"
        assert error.transient is True

    def test_error_info_rate_limit_reason_is_transient(self):
        assert GatewayError("x", status=403, reason="RATE_LIMIT_EXCEEDED").transient

    def test_permission_403_with_details_stays_terminal(self):
        resp = httplib2.Response({"status": 403})
        content = json.dumps(
            {
                "error": {
                    "code": 403,
                    "message": "Request had insufficient authentication scopes.",
                    "errors": [{"reason": "insufficientPermissions"}],
                    "details": [{"reason": "ACCESS_TOKEN_SCOPE_INSUFFICIENT"}],
                }
            }
        ).encode()

        error = GatewayError.from_http_error(HttpError(resp, content))

        assert error.reason == "insufficientPermissions"
        assert error.transient is False

    def test_network_error_is_transient(self):
        error = GatewayError.from_transport_error(TimeoutError("timed out"))

        assert error.transient is True
        assert "timed out" in str(error)

    def test_retryable_overrides_status(self):
        assert GatewayError("x", status=400, retryable=True).transient
        assert not GatewayError("x", status=503, retryable=False).transient

    def test_from_http_error_not_found(self):
        resp = httplib2.Response({"status": 404})
        error = GatewayError.from_http_error(HttpError(resp, b'{"error": {"message": "Not Found"}}'))

        assert isinstance(error, NotFoundError)
        assert error.transient is False


class TestRetryExecutor:
    """Tests for RetryExecutor.execute."""

    def test_success_without_retry(self, sleep):
        executor = RetryExecutor(sleep=sleep)
        operation = FlakyOperation()

        assert executor.execute(operation) == "ok"
        assert operation.calls == 1
        assert sleep.calls == []

    def test_retries_transient_with_exponential_delay(self, sleep):
        executor = RetryExecutor(max_attempts=3, base_delay=1.0, sleep=sleep)
        operation = FlakyOperation(
            GatewayError("rate", status=429),
            GatewayError("server", status=503),
        )

        assert executor.execute(operation) == "ok"
        assert operation.calls == 3
        assert sleep.calls == [1.0, 2.0]

    def test_terminal_failure_not_retried(self, sleep):
        executor = RetryExecutor(sleep=sleep)
        operation = FlakyOperation(GatewayError("forbidden", status=403))

        with pytest.raises(GatewayError, match="forbidden"):
            executor.execute(operation)

        assert operation.calls == 1
        assert sleep.calls == []

    def test_exhaustion_raises_last_failure(self, sleep):
        executor = RetryExecutor(max_attempts=3, base_delay=0.5, sleep=sleep)
        errors = [GatewayError(f"attempt {i}", status=500) for i in range(4)]
        operation = FlakyOperation(*errors)

        with pytest.raises(GatewayError, match="attempt 3"):
            executor.execute(operation)

        # One initial call plus three retries
        assert operation.calls == 4
        assert sleep.calls == [0.5, 1.0, 2.0]

    def test_delay_is_capped(self, sleep):
        executor = RetryExecutor(max_attempts=10, base_delay=1.0, max_delay=5.0, sleep=sleep)

        assert [executor.delay_for(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_non_gateway_errors_propagate(self, sleep):
        executor = RetryExecutor(sleep=sleep)

        with pytest.raises(KeyError):
            executor.execute(FlakyOperation(KeyError("id")))
        assert sleep.calls == []
