from __future__ import annotations

import pytest

from helpers import FakeClock, StubProvider


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()
