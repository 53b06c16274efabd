from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict

class NormalizedError(BaseModel):
    """Uniform failure shape for every unsuccessful request."""
    status: int = Field(..., description="HTTP status, or 0 for local failures")
    code: Optional[str] = Field(default=None, description="Machine-readable failure tag")
    message: str = "Network error"
    request_id: Optional[str] = None
    details: Any = None
    url: str

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def public_dict(self) -> Dict[str, Any]:
        """Fields safe to hand back to an HTTP caller."""
        return self.model_dump(exclude={"details"}, exclude_none=True)

class ApiResult(BaseModel):
    """Result envelope returned by safe_call."""
    ok: bool
    data: Any = None
    code: Optional[str] = None
    message: str
