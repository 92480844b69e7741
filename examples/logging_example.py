#!/usr/bin/env python3
"""
Example demonstrating logging in servicemachine.

This example shows how to configure logging to see different log levels:
- INFO/DEBUG: Operations exposed at startup
- ERROR: Failing service methods and unserializable results (500)
"""

import logging

from servicemachine import HTTPMethod, Request, ServiceApplication, ServiceConfiguration, ServiceRegistry


def setup_logging():
    """Set up logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


class GreetingService:

    def get_greeting(self, name: str = "world") -> str:
        return f"Hello, {name}!"

    def get_error(self) -> str:
        """Operation that always fails."""
        raise ValueError("Intentional error for logging demonstration")


def create_app():
    """Create a sample application with a single service."""
    registry = ServiceRegistry({"/greetings": GreetingService})
    return ServiceApplication(ServiceConfiguration(registry=registry))


if __name__ == "__main__":
    # Set up logging to see all messages
    setup_logging()

    app = create_app()

    print("=== Logging Example for servicemachine ===\n")

    print("1. Normal request:")
    request = Request(method=HTTPMethod.GET, path="/greetings/greeting", query_params={"name": ["logs"]})
    response = app.execute(request)
    print(f"   Response: {response.status_code} {response.text}\n")

    print("2. Failing operation - shows ERROR logs:")
    request = Request(method=HTTPMethod.GET, path="/greetings/error")
    response = app.execute(request)
    print(f"   Response: {response.status_code} {response.text}\n")

    print("3. Unknown operation:")
    request = Request(method=HTTPMethod.GET, path="/greetings/nonexistent")
    response = app.execute(request)
    print(f"   Response: {response.status_code} {response.text}\n")

    print(f"OpenAPI description written to {app.save_openapi_json()}")
