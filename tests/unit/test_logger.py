"""Tests for log sanitization and DefaultObservabilityManager."""

import json
import logging

import pytest

from payrouter.infrastructure.observability.logger import (
    DefaultObservabilityManager,
    sanitize_for_logging,
)


class TestSanitizeForLogging:
    def test_redacts_sensitive_keys(self) -> None:
        data = {"card_number": "4111111111111111", "CVV": "123", "merchant_id": "m-1"}

        assert sanitize_for_logging(data) == {
            "card_number": "[REDACTED]",
            "CVV": "[REDACTED]",
            "merchant_id": "m-1",
        }

    def test_masks_card_numbers_in_strings(self) -> None:
        assert (
            sanitize_for_logging("charge 4111 1111 1111 1111 failed")
            == "charge [REDACTED] failed"
        )
        assert sanitize_for_logging("pan=4111-1111-1111-1111") == "pan=[REDACTED]"

    def test_keeps_bin_prefixes_and_amounts(self) -> None:
        assert sanitize_for_logging({"bin_prefix": "41111122"}) == {"bin_prefix": "41111122"}
        assert sanitize_for_logging("amount 100.00 USD") == "amount 100.00 USD"

    def test_nested_structures(self) -> None:
        data = {"attempts": [{"pan": "5555555555554444"}, ("4111111111111111", 3)]}

        assert sanitize_for_logging(data) == {
            "attempts": [{"pan": "[REDACTED]"}, ["[REDACTED]", 3]]
        }

    def test_primitives_unchanged(self) -> None:
        assert sanitize_for_logging(42) == 42
        assert sanitize_for_logging(None) is None


class TestDefaultObservabilityManager:
    @pytest.mark.asyncio
    async def test_log_is_sanitized_json(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="payrouter")
        manager = DefaultObservabilityManager(log_level="INFO", json_format=True)

        await manager.log(
            level="WARNING",
            message="Declined card 4111111111111111",
            context={"cvv": "999", "provider": "StripeMock"},
        )

        record = json.loads(caplog.records[-1].getMessage())
        assert record["event"] == "Declined card [REDACTED]"
        assert record["cvv"] == "[REDACTED]"
        assert record["provider"] == "StripeMock"
        assert record["level"] == "warning"

    @pytest.mark.asyncio
    async def test_emit_event(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="payrouter")
        manager = DefaultObservabilityManager(log_level="INFO", json_format=True)

        await manager.emit_event(
            event_type="route_decided",
            payload={"selected_provider": "AdyenMock"},
            metadata={"profile": "balanced"},
        )

        record = json.loads(caplog.records[-1].getMessage())
        assert record["event"] == "Event emitted"
        assert record["event_type"] == "route_decided"
        assert record["selected_provider"] == "AdyenMock"
        assert record["metadata"]["profile"] == "balanced"
        assert "timestamp" in record["metadata"]

    @pytest.mark.asyncio
    async def test_debug_filtered_at_info_level(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="payrouter")
        manager = DefaultObservabilityManager(log_level="INFO", json_format=True)

        await manager.log(level="DEBUG", message="Scoring details")

        assert not [r for r in caplog.records if "Scoring details" in r.getMessage()]
