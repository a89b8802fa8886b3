from __future__ import annotations

from unittest.mock import MagicMock

import pytest


@pytest.fixture
def http() -> MagicMock:
    """A stand-in for requests.Session; set http.get.side_effect per test."""
    return MagicMock()
