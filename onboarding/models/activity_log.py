"""Append-only activity log entries (top-level activity_logs collection)."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from onboarding.models.student import utcnow


class ActivityAction:
    REGISTER = "register"
    ACCOUNT_ACTIVATED = "account_activated"
    LOGIN = "login"


class ActivityLogEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str
    class_code: str = Field(alias="classCode")
    actor_email: str = Field(alias="performedByEmail")
    description: str
    timestamp: datetime = Field(default_factory=utcnow)
    performed_by_uid: Optional[str] = Field(None, alias="performedBy")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
