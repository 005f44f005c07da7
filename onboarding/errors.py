"""Service error taxonomy shared by the engine, the adapters and the API layer."""
from __future__ import annotations


class ServiceError(Exception):
    """Base error. ``message`` is safe to show to the end user."""

    status_code = 500
    default_message = "Unexpected error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 422
    default_message = "Invalid input."


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found."


class ConflictError(ServiceError):
    status_code = 409
    default_message = "Conflict."


class DocumentExists(ConflictError):
    default_message = "Document already exists."


class StaleRecord(ConflictError):
    default_message = "Student record is no longer pending activation."


class AccountNotPending(ConflictError):
    default_message = "Account already activated. Please use your regular password or contact administrator."


class EmailAlreadyInUse(ConflictError):
    default_message = "Email is already in use. Please contact administrator."


class CredentialError(ServiceError):
    status_code = 401
    default_message = "Invalid credentials."


class CredentialMismatch(CredentialError):
    default_message = "Incorrect temporary password."


class WrongCredential(CredentialError):
    default_message = "Incorrect password. Please try again."


class InvalidLoginCredentials(CredentialError):
    """Provider could not tell an unknown email from a wrong password."""

    default_message = "Invalid login credentials."


class IdentityNotFound(NotFoundError):
    default_message = "Account not found. Please check your email."


class IdentityDisabled(CredentialError):
    status_code = 403
    default_message = "This account has been disabled. Please contact administrator."


class WeakCredential(CredentialError):
    status_code = 422
    default_message = "Password is too weak. Please choose a stronger password."


class TooManyAttempts(ServiceError):
    status_code = 429
    default_message = "Too many failed attempts. Please try again later."


class NoCredentialIssued(ServiceError):
    """Pending record without a temporary credential: a setup error, not a user error."""

    status_code = 500
    default_message = "Account setup incomplete. Please contact administrator."


class TransientStoreError(ServiceError):
    status_code = 503
    default_message = "Storage temporarily unavailable. Please try again."


class WriteFailed(TransientStoreError):
    default_message = "Could not save the account. Please try again."


class PartialActivation(ServiceError):
    """New record written but the pending one could not be removed."""

    status_code = 500
    default_message = "Account activation incomplete. Please contact administrator."

    def __init__(self, message: str | None = None, *, class_id: str = "", email: str = "", uid: str = ""):
        super().__init__(message)
        self.class_id = class_id
        self.email = email
        self.uid = uid


class NotificationError(Exception):
    """Onboarding credential could not be delivered."""


class IdentityUnavailable(ServiceError):
    status_code = 503
    default_message = "Authentication service unavailable. Please try again."
