"""
Multi-driver test base for automatic driver discovery and execution.

This module provides a base class that automatically runs tests against all available drivers.
Each test file should inherit from MultiDriverTestBase and define a single create_app() method.
"""

from abc import ABC, abstractmethod
from typing import List

import pytest

from servicemachine import ServiceApplication
from .drivers import AsgiDriver, DirectDriver, DriverInterface
from .dsl import ServiceApiDsl


class MultiDriverTestBase(ABC):
    """
    Base class for multi-driver tests.

    Automatically runs each test method against all available drivers.
    Subclasses must implement create_app() to define the application under test.
    """

    # Override this in subclasses to control which drivers to test
    ENABLED_DRIVERS = [
        'direct',  # Direct driver: calls ServiceApplication.execute
        'asgi',    # ASGI driver: goes through the ASGI adapter
    ]

    # Optional: Override to exclude specific drivers for certain test files
    EXCLUDED_DRIVERS: List[str] = []

    @abstractmethod
    def create_app(self) -> ServiceApplication:
        """
        Create and configure the application for testing.

        This method should return a fully configured ServiceApplication instance
        that will be tested against all enabled drivers.
        """
        pass

    @classmethod
    def get_available_drivers(cls) -> List[str]:
        """Get list of available driver names for this test class."""
        return [driver for driver in cls.ENABLED_DRIVERS if driver not in cls.EXCLUDED_DRIVERS]

    @classmethod
    def create_driver(cls, driver_name: str, app: ServiceApplication) -> DriverInterface:
        """Create a driver instance for the given driver name."""
        driver_map = {
            'direct': DirectDriver,
            'asgi': AsgiDriver,
        }
        if driver_name not in driver_map:
            pytest.skip(f"Driver '{driver_name}' not available. Available: {list(driver_map.keys())}")
        return driver_map[driver_name](app)

    @pytest.fixture(scope="class")
    def api(self, request):
        """
        Parametrized fixture that provides API client for each enabled driver.

        This fixture is automatically parametrized with all enabled drivers.
        """
        driver_name = request.param
        app = self.create_app()
        driver = self.create_driver(driver_name, app)
        yield ServiceApiDsl(driver), driver_name
