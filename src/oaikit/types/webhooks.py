"""
Webhook event envelope.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookEvent(BaseModel):
    """Generic webhook delivery payload.

    Specific event kinds can subclass this and narrow ``data``; extra fields
    are kept so new server-side fields are never lost.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(description="Event identifier")
    type: str = Field(description="Event type, e.g. 'response.completed'")
    created_at: int | None = Field(default=None, description="Unix timestamp")
    object: str | None = Field(default=None, description="Always 'event'")
    data: dict[str, Any] = Field(default_factory=dict, description="Event data")
