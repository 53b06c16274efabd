from enum import Enum
from pydantic import BaseModel, Field, ConfigDict

class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Requests allowed
    OPEN = "open"         # Requests short-circuited

class FailureWindow(BaseModel):
    """Failure counter for a single request path."""
    count: int = 0
    last_failure: float = Field(
        default=0.0,
        description="Epoch seconds of the most recent failure"
    )

    model_config = ConfigDict(from_attributes=True)

class BreakerConfig(BaseModel):
    """Circuit breaker configuration."""
    failure_threshold: int = Field(
        default=5,
        description="Number of failures before opening circuit"
    )
    failure_window: int = Field(
        default=60,
        description="Seconds after the last failure during which the count still trips"
    )

    model_config = ConfigDict(from_attributes=True)
