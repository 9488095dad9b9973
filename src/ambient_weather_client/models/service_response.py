# ambient_weather_client/models/service_response.py
"""
Three-way result container returned by every network-facing operation.

A ServiceResponse is either:
    - Success: carries a value, no error message.
    - Failure: carries an error message, no value.
    - Empty: a success whose value is absent. Used for the vendor's
      "valid request, no data" answer (HTTP 200 with a literal ``[]``), so
      callers can tell "no data for this day" apart from real data and from
      a failed call.

These rules are enforced at construction time. Building a success that
carries an error message, a failure without one, or a failure or empty
result that carries a value raises pydantic.ValidationError (a ValueError
subclass).
"""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, model_validator

__all__: list[str] = ['ServiceResponse']


class ServiceResponse[ValueT](BaseModel):
    """
    Tagged result of a service call.

    Use the factories rather than the constructor:

        >>> ServiceResponse.ok([reading])
        >>> ServiceResponse.fail('HTTP 500: upstream unavailable')
        >>> ServiceResponse.empty()

    Attributes:
        success: True for Ok and Empty results, False for failures.
        is_empty: True when there is no value (Empty and Fail results).
        error_message: Human-readable failure reason; blank on success.
        value: The payload for Ok results, None otherwise. Reading it
            never raises.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    success: bool
    is_empty: bool = False
    error_message: str = ''
    value: ValueT | None = None

    @model_validator(mode='after')
    def validate_result_shape(self) -> Self:
        """Reject success-with-message, failure-without-message and stray values."""
        has_message: bool = bool(self.error_message and self.error_message.strip())

        if self.success and has_message:
            raise ValueError('A successful response cannot carry an error message')
        if not self.success and not has_message:
            raise ValueError('A failed response must carry an error message')
        if not self.success and self.value is not None:
            raise ValueError('A failed response cannot carry a value')
        if self.is_empty and self.value is not None:
            raise ValueError('An empty response cannot carry a value')

        return self

    @property
    def failure(self) -> bool:
        """Whether the operation failed."""
        return not self.success

    @classmethod
    def ok(cls, value: Any) -> Self:
        """Successful result carrying ``value``."""
        return cls(success=True, is_empty=False, value=value)

    @classmethod
    def fail(cls, message: str) -> Self:
        """Failed result carrying a non-blank ``message``."""
        return cls(success=False, is_empty=True, error_message=message)

    @classmethod
    def empty(cls) -> Self:
        """Successful result with no value (valid call, nothing to return)."""
        return cls(success=True, is_empty=True)
