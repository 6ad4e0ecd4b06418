"""
Pydantic schemas for request/response validation.

This module contains:
- The message submission model decoded from POST /api/message
- Response models for API responses
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Pydantic Request Models
# =============================================================================

class MessageSubmission(BaseModel):
    """
    A chat message submitted for collection.

    Only types are checked here. Missing, null or blank names and content are
    accepted by the model and rejected by the handler, so the two failures
    can be reported with different messages.
    """
    group_or_user_name: Optional[str] = Field(
        default=None,
        alias="groupOrUserName",
        description="Name of the group or user the message came from"
    )
    message_content: Optional[str] = Field(
        default=None,
        alias="messageContent",
        description="Message text"
    )
    received_at: datetime = Field(
        ...,
        alias="receivedDateTime",
        description="When the message was received, ISO-8601 (e.g. 2025-07-13T10:30:00)"
    )

    @field_validator("group_or_user_name", "message_content")
    @classmethod
    def validate_utf8_encodable(cls, v: Optional[str], info) -> Optional[str]:
        """Reject strings holding lone surrogates, which cannot be stored as UTF-8."""
        if v is None:
            return v
        try:
            v.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError(f"{info.field_name} contains characters that are not valid Unicode")
        return v

    @field_validator("received_at", mode="before")
    @classmethod
    def validate_iso8601(cls, v):
        """Accept only ISO-8601 strings, not numeric epoch values."""
        if isinstance(v, datetime):
            return v
        if not isinstance(v, str):
            raise ValueError("receivedDateTime must be an ISO-8601 timestamp string")
        try:
            return datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(
                "receivedDateTime must be a valid ISO-8601 timestamp (e.g. 2025-07-13T10:30:00)"
            )

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "groupOrUserName": "WorkGroup",
                    "messageContent": "Meeting at 9am",
                    "receivedDateTime": "2025-07-13T10:30:00"
                }
            ]
        }
    }


# =============================================================================
# Pydantic Response Models
# =============================================================================

class SubmitResponse(BaseModel):
    """Response model for a stored message."""
    success: bool = Field(default=True, description="Operation status")
    message_id: int = Field(
        ...,
        gt=0,
        serialization_alias="messageId",
        description="Id generated for the stored message"
    )
    message: str = Field(..., description="Confirmation text")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Response model for rejected or failed submissions."""
    success: bool = Field(default=False, description="Operation status")
    message: str = Field(..., description="Error description")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
