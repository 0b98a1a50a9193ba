"""Pydantic schemas for the API response envelope.

Every JSON response produced by the pipeline (errors, throttling) uses the
same envelope, serialized with lower camel case field names.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel):
    """Envelope shared by success and error responses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = Field(..., description="Whether the operation succeeded.")
    message: str = Field("", description="Human-readable outcome summary.")
    data: Any | None = Field(
        default=None, description="Payload for successful operations."
    )
    errors: List[str] = Field(
        default_factory=list, description="Error messages, empty on success."
    )
    timestamp: datetime = Field(
        default_factory=_utcnow, description="UTC time the response was built."
    )

    @classmethod
    def error_response(cls, message: str, errors: List[str] | None = None) -> "ApiResponse":
        return cls(success=False, message=message, errors=list(errors or []))

    def to_content(self) -> Dict[str, Any]:
        """Serialize for ``JSONResponse(content=...)``; drops an empty payload."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
