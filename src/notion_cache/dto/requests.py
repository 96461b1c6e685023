"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class FunctionCallRequest(BaseModel):
    """Request DTO for running an edge function through its cache policy.

    The handler passes ``payload`` to the edge function unchanged; key
    templates such as ``{appointmentId}:appt`` are filled from it.
    """

    payload: dict[str, Any] | None = Field(
        None,
        description="JSON payload for the edge function (null sends a GET)",
    )


class SyncRequest(BaseModel):
    """Request DTO for a manual resync."""

    sync_type: str = Field(
        "all",
        alias="syncType",
        description="Which databases to resync; only 'all' is supported",
        pattern="^all$",
    )
