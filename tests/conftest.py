"""
Shared fixtures
"""

import pytest

from mock_caster import MockCaster


@pytest.fixture
def caster():
    """Caster answering NTRIP 1 style ("ICY 200 OK")"""
    server = MockCaster()
    yield server
    server.stop()


@pytest.fixture
def silent_caster():
    """Caster that accepts connections but never answers the request"""
    server = MockCaster(reply=None)
    yield server
    server.stop()
