"""Pytest configuration and shared fixtures."""
import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Local overrides (e.g. PAYROUTER_LOG_LEVEL=DEBUG) from a .env at the project root
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path, override=False)

from tests.fixtures.providers import FakeProvider, MockObservabilityManager  # noqa: E402


@pytest.fixture(autouse=True)
def isolate_router_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's PAYROUTER_CONFIG_FILE from leaking into tests."""
    monkeypatch.delenv("PAYROUTER_CONFIG_FILE", raising=False)
    monkeypatch.delenv("PAYROUTER_WATCH_CONFIG_FILE", raising=False)
    if not os.getenv("PAYROUTER_JSON_LOGS"):
        monkeypatch.setenv("PAYROUTER_JSON_LOGS", "false")


@pytest.fixture
def observability() -> MockObservabilityManager:
    return MockObservabilityManager()


@pytest.fixture
def seed_providers() -> list[FakeProvider]:
    """The three reference providers with distinct fees and healthy metrics."""
    return [
        FakeProvider(
            "StripeMock",
            fee="2.90",
            success_rate=0.98,
            latency_ms=150,
        ),
        FakeProvider(
            "AdyenMock",
            fee="2.50",
            success_rate=0.97,
            latency_ms=200,
        ),
        FakeProvider(
            "LocalBankMock",
            fee="1.50",
            success_rate=0.95,
            latency_ms=300,
            networks={"VISA", "MASTERCARD"},
            countries={"US"},
        ),
    ]
