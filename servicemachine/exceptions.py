"""
Custom exceptions for the service dispatcher.

Configuration errors are raised while the application is being built and
abort startup. Request errors carry the HTTP status they are reported with.
"""
from typing import Optional, Sequence


class ServiceMachineError(Exception):
    """Base exception for all dispatcher errors."""

    pass


class ConfigurationError(ServiceMachineError):
    """Raised when the registered services cannot be exposed as configured."""

    pass


class DuplicateVerbPatternError(ConfigurationError):
    """Raised when more than one verb pattern matches a method name."""

    def __init__(self, method_name: str, verbs: Sequence[str]):
        self.method_name = method_name
        self.verbs = tuple(verbs)
        super().__init__(
            f"Method '{method_name}' matches the patterns of more than one verb: {', '.join(self.verbs)}"
        )


class MultipleBodyParametersError(ConfigurationError):
    """Raised when a method declares more than one parameter bound to the request body."""

    def __init__(self, method_name: str, parameters: Sequence[str]):
        self.method_name = method_name
        self.parameters = tuple(parameters)
        super().__init__(
            f"Method '{method_name}' has more than one body parameter: {', '.join(self.parameters)}"
        )


class AmbiguousOperationError(ConfigurationError):
    """Raised when two operations with the same verb can match the same path."""

    def __init__(self, verb: str, first: str, second: str):
        self.verb = verb
        self.paths = (first, second)
        super().__init__(f"Ambiguous {verb} operations: '{first}' and '{second}' match the same paths")


class SchemaNameCollisionError(ConfigurationError):
    """Raised when two distinct types are given the same schema component name."""

    def __init__(self, name: str, first: type, second: type):
        self.name = name
        self.types = (first, second)
        super().__init__(
            f"Schema name '{name}' is used by both {first.__module__}.{first.__qualname__} "
            f"and {second.__module__}.{second.__qualname__}"
        )


class SerializationError(ServiceMachineError):
    """Raised when a value cannot be encoded, decoded or coerced."""

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(message)


class RequestError(ServiceMachineError):
    """Base class for errors reported back to the caller of a single request."""

    status_code = 500

    def __init__(self, message: str, parameter: Optional[str] = None):
        self.message = message
        self.parameter = parameter
        super().__init__(message)


class OperationNotFoundError(RequestError):
    """Raised when no operation matches the request."""

    status_code = 404


class AmbiguousOperationMatchError(RequestError):
    """Raised when more than one operation matches the request."""

    status_code = 500


class BadRequestError(RequestError):
    """Raised when a path, query or body value cannot be bound to its parameter."""

    status_code = 400

    def __init__(self, message: str, parameter: Optional[str] = None, details=None):
        self.details = details
        super().__init__(message, parameter)


class InvocationError(RequestError):
    """Raised when the invoked service method itself fails."""

    status_code = 500

    def __init__(self, message: str, original_exception: BaseException):
        self.original_exception = original_exception
        super().__init__(message)
