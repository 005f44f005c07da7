"""Student login, first-login activation and JWT refresh."""
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from onboarding.api.deps import CurrentStudent, ServicesDep
from onboarding.errors import CredentialError, ValidationError
from onboarding.models.student import StudentOut, StudentRecord
from onboarding.security import (
    create_access_token,
    create_activation_token,
    create_refresh_token,
    decode_token,
)
from onboarding.services.retry import with_store_retry

router = APIRouter()


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    status: str  # "ok" or "activation_required"
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    activation_token: Optional[str] = None
    token_type: str = "bearer"


class ActivateRequest(BaseModel):
    activation_token: str
    new_password: str
    confirm_password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


def _tokens_for(record: StudentRecord) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(record.document_key, record.role),
        refresh_token=create_refresh_token(record.document_key),
    )


@router.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, services: ServicesDep):
    outcome = await with_store_retry(
        lambda: services.login.login(req.email, req.password),
        services.retry_attempts,
        services.retry_backoff,
    )
    if outcome.activation_required:
        return LoginResponse(
            status="activation_required",
            activation_token=create_activation_token(
                outcome.record.class_id, outcome.record.email, outcome.record.class_code
            ),
        )
    tokens = _tokens_for(outcome.record)
    return LoginResponse(status="ok", access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.post("/activate", response_model=TokenResponse)
async def activate(req: ActivateRequest, services: ServicesDep):
    if not req.new_password or not req.confirm_password:
        raise ValidationError("Please fill in all fields.")
    if req.new_password != req.confirm_password:
        raise ValidationError("Passwords do not match.")
    payload = decode_token(req.activation_token, "activation")

    async def _activate():
        record = await services.engine.get_pending_record(payload["cls"], payload["sub"], payload.get("code", ""))
        return await services.engine.activate(record, req.new_password)

    active = await with_store_retry(_activate, services.retry_attempts, services.retry_backoff)
    return _tokens_for(active)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(req: RefreshRequest, services: ServicesDep):
    try:
        payload = decode_token(req.refresh_token, "refresh")
    except CredentialError:
        raise HTTPException(status_code=401, detail="Expired or invalid refresh token")
    record = await services.login.find_by_uid(payload["sub"])
    if not record or not record.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return _tokens_for(record)


@router.get("/me", response_model=StudentOut)
async def me(student: CurrentStudent):
    return StudentOut.from_record(student)
