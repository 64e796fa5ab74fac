from __future__ import annotations

from collections.abc import Iterator

import pytest


@pytest.fixture
def anyio_backend() -> str:
    # The engine schedules timers on the running asyncio loop.
    return "asyncio"


@pytest.fixture(autouse=True)
def isolate_retry_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    for name in (
        "FETCH_RETRIES_MAX_RETRIES",
        "FETCH_RETRIES_INITIAL_DELAY_MS",
        "FETCH_RETRIES_FACTOR",
        "FETCH_RETRIES_RATE_LIMIT_MAX_RETRIES",
        "FETCH_RETRIES_RATE_LIMIT_MAX_DELAY_MS",
    ):
        monkeypatch.delenv(name, raising=False)
    # keep a developer's .env out of the settings under test
    monkeypatch.chdir(tmp_path)
    yield
