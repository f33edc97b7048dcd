from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tests.fakes import make_policy


@pytest.fixture
def fixed_now() -> datetime:
    # Monday; the default weekend is Friday + Saturday.
    return datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def policy():
    return make_policy()
