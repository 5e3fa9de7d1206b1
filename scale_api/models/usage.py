"""
Usage event models
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UsageEventType(str, Enum):
    prompt = "prompt"
    code_completion = "code_completion"
    dependency_visualization = "dependency_visualization"
    knowledge_base = "knowledge_base"
    fine_tuning = "fine_tuning"
    chat = "chat"
    agent = "agent"


# Event types that draw down the monthly prompt quota
QUOTA_COUNTED_TYPES = frozenset({UsageEventType.prompt, UsageEventType.chat, UsageEventType.agent})


class UsageMetadata(BaseModel):
    """Client-reported details of a tracked action"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    model: str | None = None
    tokens_used: int | None = Field(None, alias="tokensUsed", ge=0)
    response_time: float | None = Field(None, alias="responseTime", ge=0)
    success: bool = True
    error_message: str | None = Field(None, alias="errorMessage")
    source: str | None = None
    extension_version: str | None = Field(None, alias="extensionVersion")


class UsageEvent(BaseModel):
    event_id: str
    user_id: str
    type: UsageEventType
    feature: str
    timestamp: datetime
    metadata: UsageMetadata = Field(default_factory=UsageMetadata)
    created_at: datetime | None = None
