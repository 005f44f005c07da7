"""Student records stored under classes/{class_id}/students/{document_key}."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"


class ClassRef(BaseModel):
    """A class document: store id plus its human class code."""

    id: str
    class_code: str


class StudentRecord(BaseModel):
    """Student document.

    ``class_id`` and ``document_key`` locate the document and are not part of
    its body. The key is the student's email while pending and the durable
    UID once active. Field aliases are the persisted names.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", use_enum_values=True)

    class_id: str = Field(exclude=True)
    document_key: str = Field(exclude=True)

    class_code: str = Field(alias="classCode")
    student_number: Optional[str] = Field(None, alias="studentNumber")
    name: Optional[str] = None
    email: str
    temp_credential_hash: Optional[str] = Field(None, alias="tempPassword")
    status: StudentStatus = Field(StudentStatus.PENDING, validate_default=True)
    is_active: bool = Field(False, alias="isActive")
    first_login: bool = Field(True, alias="firstLogin")
    role: str = "Player"
    uid: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    activated_at: Optional[datetime] = Field(None, alias="activatedAt")

    @property
    def is_pending(self) -> bool:
        return self.status == StudentStatus.PENDING

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="python")

    @classmethod
    def from_document(
        cls, class_id: str, document_key: str, data: dict[str, Any], class_code: str = ""
    ) -> "StudentRecord":
        body = dict(data)
        # Records written by older clients carry no classCode; fall back to the owning class.
        if not body.get("classCode"):
            body["classCode"] = class_code
        return cls(class_id=class_id, document_key=document_key, **body)


class StudentRegister(BaseModel):
    student_number: str
    full_name: str
    email: EmailStr
    class_code: str

    @field_validator("student_number", "full_name", "class_code")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please fill in all required fields")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower() if isinstance(value, str) else value


class StudentOut(BaseModel):
    class_code: str
    email: str
    name: Optional[str] = None
    student_number: Optional[str] = None
    status: StudentStatus
    role: str
    uid: Optional[str] = None
    is_active: bool
    first_login: bool

    @classmethod
    def from_record(cls, record: StudentRecord) -> "StudentOut":
        return cls(
            class_code=record.class_code,
            email=record.email,
            name=record.name,
            student_number=record.student_number,
            status=record.status,
            role=record.role,
            uid=record.uid,
            is_active=record.is_active,
            first_login=record.first_login,
        )
