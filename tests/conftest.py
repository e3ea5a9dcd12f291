from __future__ import annotations

import pytest

from arcnav.core.config import RuntimeConfig
from tests.helpers import RecordingNotifier


@pytest.fixture
def config() -> RuntimeConfig:
    return RuntimeConfig(history_limit=200, strict_invariants=False)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
