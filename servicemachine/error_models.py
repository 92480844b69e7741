"""
Error response models for the service dispatcher.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import BadRequestError, RequestError


class ErrorResponse(BaseModel):
    """Standard error response model.

    This model represents the structure of error responses returned by the dispatcher.
    It includes an error message, the offending parameter for binding failures and
    optional validation details.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Invalid value for parameter 'id'",
                "parameter": "id",
            }
        }
    )

    error: str = Field(
        ...,
        description="Human-readable error message describing what went wrong"
    )

    parameter: Optional[str] = Field(
        None,
        description="Name of the parameter that could not be bound"
    )

    details: Optional[List[Dict[str, Any]]] = Field(
        None,
        description="Detailed validation errors following the Pydantic error schema"
    )

    def model_dump_json(self, **kwargs):
        """Override to exclude unset optional fields by default."""
        kwargs.setdefault('exclude_none', True)
        return super().model_dump_json(**kwargs)

    @classmethod
    def from_request_error(cls, error: RequestError) -> "ErrorResponse":
        """Create an ErrorResponse from a request error.

        Args:
            error: The request error raised while resolving, binding or invoking

        Returns:
            ErrorResponse instance describing the failure
        """
        details = error.details if isinstance(error, BadRequestError) else None
        return cls(error=error.message, parameter=error.parameter, details=details)
