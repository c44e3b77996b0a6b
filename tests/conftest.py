"""Global test fixtures for the wotgraph test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fakes import ALICE, BOB, CAROL, DAVE, ROOT, FakeRelay, FakeTransport

from wotgraph.core.config import clear_config_cache

# ============================================================================
# Configuration isolation
# ============================================================================


@pytest.fixture(autouse=True)
def clean_config(monkeypatch, tmp_path) -> Iterator[None]:
    """Keep tests independent of the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "WOTGRAPH_RELAYS",
        "WOTGRAPH_RELAY_DEADLINE_MS",
        "WOTGRAPH_PROFILE_DEADLINE_MS",
        "WOTGRAPH_NOTES_DEADLINE_MS",
        "WOTGRAPH_NOTES_PAGE_SIZE",
        "WOTGRAPH_MAX_EXPAND_DISTANCE",
        "WOTGRAPH_PROFILE_BATCH_SIZE",
        "WOTGRAPH_PATH_COUNT_MAX_DEPTH",
        "WOTGRAPH_CACHE_PATH",
        "WOTGRAPH_CACHE_MAX_SIZE",
        "WOTGRAPH_CACHE_TTL_SECONDS",
        "WOTGRAPH_LOG_LEVEL",
        "WOTGRAPH_LOG_FORMAT",
        "WOTGRAPH_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


# ============================================================================
# Identities and relays
# ============================================================================


@pytest.fixture
def pks() -> dict[str, str]:
    return {"root": ROOT, "alice": ALICE, "bob": BOB, "carol": CAROL, "dave": DAVE}


@pytest.fixture
def single_relay() -> tuple[FakeRelay, FakeTransport]:
    """One well-behaved relay at wss://one.example."""
    relay = FakeRelay()
    return relay, FakeTransport({"wss://one.example": relay})
