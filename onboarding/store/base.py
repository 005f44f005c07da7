"""Document store contract used by the onboarding services.

The layout mirrors the existing Firestore data: a ``classes`` collection whose
documents carry a ``classCode`` and own a ``students`` subcollection, plus a
top-level ``activity_logs`` collection. Student bodies are plain dicts keyed
by their persisted (camelCase) field names.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, TypeVar

from onboarding.models.student import ClassRef

T = TypeVar("T")

Document = dict[str, Any]
KeyedDocument = tuple[str, Document]


class StoreTransaction(ABC):
    """Reads must happen before writes; writes become visible on commit."""

    @abstractmethod
    async def get_class(self, class_id: str) -> Document | None: ...

    @abstractmethod
    async def update_class(self, class_id: str, fields: Document) -> None:
        """Merge ``fields`` into the class document, creating it if absent."""

    @abstractmethod
    async def get_student(self, class_id: str, key: str) -> Document | None: ...

    @abstractmethod
    async def query_students(self, class_id: str, field: str, value: Any) -> list[KeyedDocument]: ...

    @abstractmethod
    async def create_student(self, class_id: str, key: str, data: Document) -> None:
        """Write a new document; the commit fails with DocumentExists if the key exists."""

    @abstractmethod
    async def set_student(self, class_id: str, key: str, data: Document) -> None: ...

    @abstractmethod
    async def delete_student(self, class_id: str, key: str) -> None: ...


class DocumentStore(ABC):
    """Store errors surface as TransientStoreError, create-on-existing as DocumentExists."""

    @abstractmethod
    async def list_classes(self) -> list[ClassRef]:
        """All classes, in the store's iteration order (not a guaranteed order)."""

    @abstractmethod
    async def find_class_by_code(self, class_code: str) -> ClassRef | None: ...

    @abstractmethod
    async def get_student(self, class_id: str, key: str) -> Document | None: ...

    @abstractmethod
    async def query_students(self, class_id: str, field: str, value: Any) -> list[KeyedDocument]: ...

    @abstractmethod
    async def set_student(self, class_id: str, key: str, data: Document) -> None: ...

    @abstractmethod
    async def update_student(self, class_id: str, key: str, fields: Document) -> None:
        """Merge ``fields`` into an existing document; NotFoundError if absent."""

    @abstractmethod
    async def delete_student(self, class_id: str, key: str) -> None: ...

    @abstractmethod
    async def add_activity_log(self, data: Document) -> None: ...

    @abstractmethod
    async def run_transaction(self, fn: Callable[[StoreTransaction], Awaitable[T]]) -> T:
        """Run ``fn`` atomically. The store may call it more than once on contention."""

    async def close(self) -> None:
        return None
