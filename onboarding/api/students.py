"""Student self-registration."""
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from onboarding.api.deps import ServicesDep
from onboarding.models.student import StudentRegister
from onboarding.services.retry import with_store_retry

router = APIRouter()


class RegisterResponse(BaseModel):
    email: str
    class_code: str
    status: str
    delivered: bool
    message: str
    temp_credential: Optional[str] = None


@router.post("/register", status_code=201, response_model=RegisterResponse)
async def register_student(data: StudentRegister, services: ServicesDep):
    result = await with_store_retry(
        lambda: services.registration.register(data),
        services.retry_attempts,
        services.retry_backoff,
    )
    if result.delivered:
        message = "Registration successful! Check your email for your temporary password."
    else:
        message = f"Email service temporarily unavailable. Your temporary password is: {result.temp_credential}"
    return RegisterResponse(
        email=result.record.email,
        class_code=result.record.class_code,
        status=result.record.status,
        delivered=result.delivered,
        message=message,
        temp_credential=result.temp_credential,
    )
