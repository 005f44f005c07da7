"""Pydantic models for student records and activity logs."""
from onboarding.models.student import ClassRef, StudentOut, StudentRecord, StudentRegister, StudentStatus
from onboarding.models.activity_log import ActivityAction, ActivityLogEntry

__all__ = [
    "ClassRef",
    "StudentOut",
    "StudentRecord",
    "StudentRegister",
    "StudentStatus",
    "ActivityAction",
    "ActivityLogEntry",
]
