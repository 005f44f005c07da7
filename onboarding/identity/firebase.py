"""Firebase Authentication: Admin SDK for account management, REST for password sign-in."""
import asyncio
import logging

import firebase_admin
import httpx
from firebase_admin import App, auth, credentials
from firebase_admin.exceptions import FirebaseError

from onboarding.errors import (
    EmailAlreadyInUse,
    IdentityDisabled,
    IdentityNotFound,
    IdentityUnavailable,
    InvalidLoginCredentials,
    TooManyAttempts,
    ValidationError,
    WeakCredential,
    WrongCredential,
)
from onboarding.identity.base import IdentityProvider

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

# Identity Toolkit error codes -> service errors
_SIGN_IN_ERRORS = {
    "EMAIL_NOT_FOUND": IdentityNotFound,
    "INVALID_PASSWORD": WrongCredential,
    "INVALID_LOGIN_CREDENTIALS": InvalidLoginCredentials,
    "USER_DISABLED": IdentityDisabled,
    "TOO_MANY_ATTEMPTS_TRY_LATER": TooManyAttempts,
    "WEAK_PASSWORD": WeakCredential,
    "EMAIL_EXISTS": EmailAlreadyInUse,
}


def init_firebase_app(credentials_path: str, project_id: str = "", name: str = "onboarding") -> App:
    """Initialize (or reuse) a named Firebase app from a service-account file."""
    try:
        return firebase_admin.get_app(name)
    except ValueError:
        pass
    options = {"projectId": project_id} if project_id else None
    cred = credentials.Certificate(credentials_path) if credentials_path else credentials.ApplicationDefault()
    return firebase_admin.initialize_app(cred, options, name=name)


class FirebaseIdentityProvider(IdentityProvider):
    def __init__(self, firebase_app: App, web_api_key: str, timeout: float = 10.0):
        self._app = firebase_app
        self._web_api_key = web_api_key
        self._timeout = timeout

    async def create_identity(self, email: str, password: str) -> str:
        try:
            user = await asyncio.to_thread(auth.create_user, email=email, password=password, app=self._app)
        except auth.EmailAlreadyExistsError as e:
            raise EmailAlreadyInUse() from e
        except ValueError as e:
            # Admin SDK rejects passwords shorter than 6 characters client-side.
            raise WeakCredential() from e
        except FirebaseError as e:
            logger.error("Firebase create_user failed for %s: %s", email, e)
            raise IdentityUnavailable() from e
        return user.uid

    async def sign_in(self, email: str, password: str) -> str:
        if not self._web_api_key:
            raise IdentityUnavailable("FIREBASE_WEB_API_KEY is not configured.")
        payload = {"email": email, "password": password, "returnSecureToken": True}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(SIGN_IN_URL, params={"key": self._web_api_key}, json=payload)
        except httpx.HTTPError as e:
            logger.error("Identity Toolkit request failed: %s", e)
            raise IdentityUnavailable() from e

        if resp.status_code == 200:
            return resp.json()["localId"]

        message = ""
        try:
            message = resp.json().get("error", {}).get("message", "")
        except ValueError:
            pass
        # e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account has been temporarily disabled..."
        code = message.split(" ", 1)[0] if message else ""
        if code == "INVALID_EMAIL":
            raise ValidationError("Please enter a valid email address.")
        error_cls = _SIGN_IN_ERRORS.get(code)
        if error_cls is None:
            logger.error("Unexpected sign-in error (%s): %s", resp.status_code, message or resp.text)
            raise IdentityUnavailable()
        raise error_cls()

    async def email_exists(self, email: str) -> bool:
        try:
            await asyncio.to_thread(auth.get_user_by_email, email, app=self._app)
        except auth.UserNotFoundError:
            return False
        except FirebaseError as e:
            logger.error("Firebase get_user_by_email failed for %s: %s", email, e)
            raise IdentityUnavailable() from e
        return True
