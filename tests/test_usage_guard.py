"""Tests for UsageGuard: daily quota, cooldowns and failure classification."""

import logging

import pytest

from strata.llm.usage_guard import (
    BlockKind,
    FailureKind,
    UsageGuard,
    classify_failure,
)


@pytest.fixture
def guard(clock):
    return UsageGuard(daily_limit=None, clock=clock)


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "message",
        [
            "OpenAI HTTP 401: invalid_request_error: Incorrect API key provided (invalid_api_key)",
            "Invalid API key",
            "API key expired. Please renew the API key.",
            "Missing OPENAI_API_KEY (invalid_api_key)",
        ],
    )
    def test_credential_failures(self, message):
        assert classify_failure(message) == FailureKind.INVALID_CREDENTIAL

    @pytest.mark.parametrize(
        "message",
        [
            "OpenAI HTTP 429: rate_limit_exceeded: slow down",
            "You exceeded your current quota",
            "RESOURCE_EXHAUSTED",
            "HTTP 429",
            "Rate limit reached for gpt-4o-mini",
        ],
    )
    def test_quota_failures(self, message):
        assert classify_failure(message) == FailureKind.QUOTA

    @pytest.mark.parametrize(
        "message",
        ["Connection reset by peer", "OpenAI HTTP 500: server_error", "timeout after 14290ms", "", None],
    )
    def test_everything_else_is_transient(self, message):
        assert classify_failure(message) == FailureKind.TRANSIENT

    def test_credential_wins_over_quota(self):
        assert classify_failure("429 invalid_api_key") == FailureKind.INVALID_CREDENTIAL


class TestDailyLimit:
    def test_unlimited_by_default(self, guard):
        for _ in range(100):
            guard.record_success()
        assert guard.request_block_reason() is None

    def test_limit_reached_blocks_and_marks_exhausted(self, clock):
        guard = UsageGuard(daily_limit=3, clock=clock)
        for _ in range(3):
            assert guard.request_block_reason() is None
            guard.record_success()

        reason = guard.request_block_reason()
        assert reason is not None
        assert reason.kind == BlockKind.DAILY_LIMIT
        assert reason.message == "Daily LLM limit reached."
        assert guard.status().exhausted is True
        assert guard.status().used_requests == 3

    def test_failures_count_toward_limit(self, clock):
        guard = UsageGuard(daily_limit=2, clock=clock)
        guard.record_failure("Connection reset")
        guard.record_success()
        assert guard.request_block_reason().kind == BlockKind.DAILY_LIMIT

    def test_new_day_resets_counters(self, clock):
        guard = UsageGuard(daily_limit=1, clock=clock)
        guard.record_success()
        assert guard.request_block_reason() is not None

        clock.advance_to_next_day()

        assert guard.request_block_reason() is None
        status = guard.status()
        assert status.used_requests == 0
        assert status.exhausted is False

    def test_new_day_clears_cooldown(self, guard, clock):
        guard.record_failure("invalid_api_key")
        assert guard.request_block_reason() is not None
        clock.advance_to_next_day()
        assert guard.request_block_reason() is None
        assert guard.status().last_error is None

    def test_set_daily_limit(self, guard):
        guard.record_success()
        guard.set_daily_limit(1)
        assert guard.request_block_reason().kind == BlockKind.DAILY_LIMIT
        guard.set_daily_limit(None)
        assert guard.request_block_reason() is None


class TestCooldowns:
    def test_transient_failures_below_threshold_do_not_block(self, guard):
        guard.record_failure("Connection reset")
        guard.record_failure("Connection reset")
        assert guard.request_block_reason() is None
        assert guard.consecutive_failures == 2

    def test_three_transient_failures_block_for_thirty_seconds(self, guard, clock):
        for _ in range(3):
            guard.record_failure(RuntimeError("Connection reset"))

        reason = guard.request_block_reason()
        assert reason.kind == BlockKind.COOLDOWN
        assert reason.retry_after_seconds == 30
        assert reason.message == "LLM cooldown active for 30s."

        clock.advance(29)
        assert guard.request_block_reason().retry_after_seconds == 1
        clock.advance(1.5)
        assert guard.request_block_reason() is None

    def test_invalid_credential_blocks_for_ten_minutes(self, guard):
        kind = guard.record_failure("Incorrect API key provided: invalid_api_key")

        assert kind == FailureKind.INVALID_CREDENTIAL
        reason = guard.request_block_reason()
        assert reason.kind == BlockKind.CREDENTIAL
        assert reason.retry_after_seconds >= 600
        assert "check the API key" in reason.message
        assert guard.status().exhausted is True

    def test_rate_limit_blocks_for_two_minutes(self, guard):
        guard.record_failure("OpenAI HTTP 429: rate_limit_exceeded")
        reason = guard.request_block_reason()
        assert reason.kind == BlockKind.COOLDOWN
        assert reason.retry_after_seconds == 120

    def test_repeated_rate_limits_keep_at_least_two_minutes(self, guard):
        for _ in range(3):
            guard.record_failure("HTTP 429 rate_limit")
        assert guard.request_block_reason().retry_after_seconds >= 120

    def test_remaining_seconds_round_up(self, guard, clock):
        guard.record_failure("quota exceeded")
        clock.advance(0.5)
        assert guard.request_block_reason().retry_after_seconds == 120

    def test_shorter_cooldown_never_replaces_longer(self, guard, clock):
        guard.record_failure("invalid_api_key")
        clock.advance(10)
        guard.record_failure("rate_limit")

        reason = guard.request_block_reason()
        assert reason.kind == BlockKind.CREDENTIAL
        assert reason.retry_after_seconds == 590

    def test_longer_cooldown_extends_block(self, guard, clock):
        for _ in range(3):
            guard.record_failure("Connection reset")
        guard.record_failure("invalid_api_key")
        reason = guard.request_block_reason()
        assert reason.kind == BlockKind.CREDENTIAL
        assert reason.retry_after_seconds == 600

    def test_success_clears_failures_and_cooldown(self, guard):
        for _ in range(3):
            guard.record_failure("Connection reset")
        assert guard.request_block_reason() is not None

        guard.record_success()

        assert guard.request_block_reason() is None
        assert guard.consecutive_failures == 0
        status = guard.status()
        assert status.last_error is None
        assert status.exhausted is False

    def test_quota_failure_does_not_count_as_consecutive(self, guard):
        guard.record_failure("Connection reset")
        guard.record_failure("rate_limit")
        assert guard.consecutive_failures == 1

    def test_last_error_recorded(self, guard):
        guard.record_failure(ValueError("boom"))
        assert guard.status().last_error == "boom"
        assert guard.status().used_requests == 1

    def test_failure_log_reports_count_at_record_time(self, guard, caplog):
        with caplog.at_level(logging.WARNING, logger="strata.llm.usage_guard"):
            guard.record_failure("Connection reset")
            guard.record_failure("Connection reset")
        assert "consecutive transient failures: 2" in caplog.records[-1].getMessage()


class TestFromSettings:
    def test_reads_quota_and_cooldowns(self, clock):
        from strata.config import Settings

        settings = Settings(daily_quota=5, rate_limit_cooldown_seconds=10)
        guard = UsageGuard.from_settings(settings, clock=clock)
        assert guard.status().daily_limit == 5

        guard.record_failure("rate_limit")
        assert guard.request_block_reason().retry_after_seconds == 10
