"""
Pytest configuration for multi-driver testing.

This file sets up automatic parametrization for test classes that inherit from
MultiDriverTestBase.
"""

import pytest

from tests.framework.multi_driver_base import MultiDriverTestBase
from tests.framework.services import reset_store


def pytest_generate_tests(metafunc):
    """
    Pytest hook to automatically parametrize the 'api' fixture for MultiDriverTestBase subclasses.

    This ensures every test method in classes that inherit from MultiDriverTestBase
    gets run against all enabled drivers.
    """
    if (hasattr(metafunc, 'cls') and
        metafunc.cls is not None and
        issubclass(metafunc.cls, MultiDriverTestBase) and
        'api' in metafunc.fixturenames):

        drivers = metafunc.cls.get_available_drivers()

        metafunc.parametrize(
            'api',
            drivers,
            indirect=True,
            ids=[f"driver-{d}" for d in drivers]
        )


@pytest.fixture(autouse=True)
def fresh_store():
    """Every test starts from the same two stored things."""
    reset_store()
    yield
