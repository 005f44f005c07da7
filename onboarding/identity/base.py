"""Identity provider contract (create / verify credentials by email)."""
from abc import ABC, abstractmethod


class IdentityProvider(ABC):
    """Implementations raise the identity errors from ``onboarding.errors``:
    WrongCredential, IdentityNotFound, IdentityDisabled, TooManyAttempts,
    WeakCredential, EmailAlreadyInUse, InvalidLoginCredentials and
    IdentityUnavailable for transport failures.
    """

    @abstractmethod
    async def create_identity(self, email: str, password: str) -> str:
        """Create an email/password identity and return its durable UID."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> str:
        """Verify the credential and return the UID."""

    @abstractmethod
    async def email_exists(self, email: str) -> bool: ...
