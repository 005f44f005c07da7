"""Shared dependencies: injected services and bearer-token auth."""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from onboarding.db import Services
from onboarding.errors import CredentialError
from onboarding.models.student import StudentRecord
from onboarding.security import decode_token

security = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


async def get_current_student(
    services: ServicesDep,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> StudentRecord:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_token(credentials.credentials, "access")
    except CredentialError as e:
        raise HTTPException(status_code=401, detail=e.message)
    record = await services.login.find_by_uid(payload["sub"])
    if not record or not record.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return record


# Type aliases for route injection
CurrentStudent = Annotated[StudentRecord, Depends(get_current_student)]
