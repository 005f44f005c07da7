"""Firestore adapter (firebase_admin async client).

Keeps the existing layout: classes/{classId}/students/{email|uid} and
activity_logs/{autoId}.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from firebase_admin import App, firestore_async
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore import async_transactional
from google.cloud.firestore_v1.base_query import FieldFilter

from onboarding.errors import DocumentExists, NotFoundError, TransientStoreError
from onboarding.models.student import ClassRef
from onboarding.store.base import Document, DocumentStore, KeyedDocument, StoreTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLASSES = "classes"
STUDENTS = "students"
ACTIVITY_LOGS = "activity_logs"


class _FirestoreTransaction(StoreTransaction):
    def __init__(self, store: "FirestoreDocumentStore", transaction):
        self._store = store
        self._transaction = transaction

    async def get_class(self, class_id: str) -> Document | None:
        snap = await self._store._class_ref(class_id).get(transaction=self._transaction)
        return snap.to_dict() if snap.exists else None

    async def update_class(self, class_id: str, fields: Document) -> None:
        self._transaction.set(self._store._class_ref(class_id), fields, merge=True)

    async def get_student(self, class_id: str, key: str) -> Document | None:
        snap = await self._store._student_ref(class_id, key).get(transaction=self._transaction)
        return snap.to_dict() if snap.exists else None

    async def query_students(self, class_id: str, field: str, value: Any) -> list[KeyedDocument]:
        query = self._store._students(class_id).where(filter=FieldFilter(field, "==", value))
        return [(snap.id, snap.to_dict() or {}) async for snap in query.stream(transaction=self._transaction)]

    async def create_student(self, class_id: str, key: str, data: Document) -> None:
        self._transaction.create(self._store._student_ref(class_id, key), data)

    async def set_student(self, class_id: str, key: str, data: Document) -> None:
        self._transaction.set(self._store._student_ref(class_id, key), data)

    async def delete_student(self, class_id: str, key: str) -> None:
        self._transaction.delete(self._store._student_ref(class_id, key))


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, firebase_app: App):
        self._client = firestore_async.client(firebase_app)

    def _class_ref(self, class_id: str):
        return self._client.collection(CLASSES).document(class_id)

    def _students(self, class_id: str):
        return self._class_ref(class_id).collection(STUDENTS)

    def _student_ref(self, class_id: str, key: str):
        return self._students(class_id).document(key)

    async def list_classes(self) -> list[ClassRef]:
        try:
            return [
                ClassRef(id=snap.id, class_code=(snap.to_dict() or {}).get("classCode", ""))
                async for snap in self._client.collection(CLASSES).stream()
            ]
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e

    async def find_class_by_code(self, class_code: str) -> ClassRef | None:
        query = self._client.collection(CLASSES).where(filter=FieldFilter("classCode", "==", class_code)).limit(1)
        try:
            async for snap in query.stream():
                return ClassRef(id=snap.id, class_code=class_code)
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e
        return None

    async def get_student(self, class_id: str, key: str) -> Document | None:
        try:
            snap = await self._student_ref(class_id, key).get()
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e
        return snap.to_dict() if snap.exists else None

    async def query_students(self, class_id: str, field: str, value: Any) -> list[KeyedDocument]:
        query = self._students(class_id).where(filter=FieldFilter(field, "==", value))
        try:
            return [(snap.id, snap.to_dict() or {}) async for snap in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e

    async def set_student(self, class_id: str, key: str, data: Document) -> None:
        try:
            await self._student_ref(class_id, key).set(data)
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e

    async def update_student(self, class_id: str, key: str, fields: Document) -> None:
        try:
            await self._student_ref(class_id, key).update(fields)
        except google_exceptions.NotFound as e:
            raise NotFoundError("Student record not found.") from e
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e

    async def delete_student(self, class_id: str, key: str) -> None:
        try:
            await self._student_ref(class_id, key).delete()
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e

    async def add_activity_log(self, data: Document) -> None:
        try:
            await self._client.collection(ACTIVITY_LOGS).add(data)
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e

    async def run_transaction(self, fn: Callable[[StoreTransaction], Awaitable[T]]) -> T:
        @async_transactional
        async def _run(transaction):
            return await fn(_FirestoreTransaction(self, transaction))

        try:
            return await _run(self._client.transaction())
        except google_exceptions.AlreadyExists as e:
            raise DocumentExists() from e
        except google_exceptions.GoogleAPIError as e:
            raise TransientStoreError() from e
        except ValueError as e:
            # Raised by the transactional wrapper once its contention retries are exhausted.
            logger.warning("Firestore transaction gave up: %s", e)
            raise TransientStoreError() from e
