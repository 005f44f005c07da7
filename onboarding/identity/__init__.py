"""Identity provider backends."""
from onboarding.identity.base import IdentityProvider

__all__ = ["IdentityProvider"]
