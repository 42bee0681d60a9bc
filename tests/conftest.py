import pytest

from layer1.pacing import DEFAULTS


@pytest.fixture
def pacing():
    return DEFAULTS.copy()
