"""Shared fixtures."""

import pytest

from helpers import make_entries


@pytest.fixture
def entries():
    """Thirty entries, three batches at the minimum batch size."""
    return make_entries(30)
