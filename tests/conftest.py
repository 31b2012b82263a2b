"""Shared fixtures."""

from __future__ import annotations

import pytest

from _helpers import ZoomDouble


@pytest.fixture
def zoom() -> ZoomDouble:
    return ZoomDouble()
