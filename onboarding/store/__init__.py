"""Document store backends."""
from onboarding.store.base import DocumentStore, StoreTransaction

__all__ = ["DocumentStore", "StoreTransaction"]
