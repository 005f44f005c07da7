"""MongoDB adapter (motor).

Students live in one collection keyed by ``{"classId": ..., "key": ...}`` so a
class's students can be scanned with a prefix match on ``_id.classId``.
Transactions need a replica set.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from onboarding.errors import DocumentExists, NotFoundError, TransientStoreError
from onboarding.models.student import ClassRef
from onboarding.store.base import Document, DocumentStore, KeyedDocument, StoreTransaction

T = TypeVar("T")


def _student_id(class_id: str, key: str) -> dict[str, str]:
    return {"classId": class_id, "key": key}


def _class_filter(class_id: str) -> dict[str, Any]:
    # list_classes stringifies ObjectId keys.
    return {"_id": ObjectId(class_id) if ObjectId.is_valid(class_id) else class_id}


def _body(doc: dict[str, Any]) -> Document:
    body = dict(doc)
    body.pop("_id", None)
    return body


class _MongoTransaction(StoreTransaction):
    def __init__(self, classes, students, session):
        self._classes = classes
        self._students = students
        self._session = session

    async def get_class(self, class_id: str) -> Document | None:
        doc = await self._classes.find_one(_class_filter(class_id), session=self._session)
        return _body(doc) if doc else None

    async def update_class(self, class_id: str, fields: Document) -> None:
        await self._classes.update_one(_class_filter(class_id), {"$set": fields}, upsert=True, session=self._session)

    async def get_student(self, class_id: str, key: str) -> Document | None:
        doc = await self._students.find_one({"_id": _student_id(class_id, key)}, session=self._session)
        return _body(doc) if doc else None

    async def query_students(self, class_id: str, field: str, value: Any) -> list[KeyedDocument]:
        cursor = self._students.find({"_id.classId": class_id, field: value}, session=self._session)
        return [(doc["_id"]["key"], _body(doc)) async for doc in cursor]

    async def create_student(self, class_id: str, key: str, data: Document) -> None:
        await self._students.insert_one({"_id": _student_id(class_id, key), **data}, session=self._session)

    async def set_student(self, class_id: str, key: str, data: Document) -> None:
        await self._students.replace_one(
            {"_id": _student_id(class_id, key)},
            {"_id": _student_id(class_id, key), **data},
            upsert=True,
            session=self._session,
        )

    async def delete_student(self, class_id: str, key: str) -> None:
        await self._students.delete_one({"_id": _student_id(class_id, key)}, session=self._session)


class MongoDocumentStore(DocumentStore):
    def __init__(self, url: str, db_name: str):
        self._client = AsyncIOMotorClient(url, tz_aware=True)
        self._db = self._client[db_name]
        self._classes = self._db["classes"]
        self._students = self._db["students"]
        self._activity_logs = self._db["activity_logs"]

    async def list_classes(self) -> list[ClassRef]:
        try:
            return [
                ClassRef(id=str(doc["_id"]), class_code=doc.get("classCode", ""))
                async for doc in self._classes.find({}, {"classCode": 1})
            ]
        except PyMongoError as e:
            raise TransientStoreError() from e

    async def find_class_by_code(self, class_code: str) -> ClassRef | None:
        try:
            doc = await self._classes.find_one({"classCode": class_code}, {"classCode": 1})
        except PyMongoError as e:
            raise TransientStoreError() from e
        return ClassRef(id=str(doc["_id"]), class_code=class_code) if doc else None

    async def get_student(self, class_id: str, key: str) -> Document | None:
        try:
            doc = await self._students.find_one({"_id": _student_id(class_id, key)})
        except PyMongoError as e:
            raise TransientStoreError() from e
        return _body(doc) if doc else None

    async def query_students(self, class_id: str, field: str, value: Any) -> list[KeyedDocument]:
        try:
            return [
                (doc["_id"]["key"], _body(doc))
                async for doc in self._students.find({"_id.classId": class_id, field: value})
            ]
        except PyMongoError as e:
            raise TransientStoreError() from e

    async def set_student(self, class_id: str, key: str, data: Document) -> None:
        try:
            await self._students.replace_one(
                {"_id": _student_id(class_id, key)},
                {"_id": _student_id(class_id, key), **data},
                upsert=True,
            )
        except PyMongoError as e:
            raise TransientStoreError() from e

    async def update_student(self, class_id: str, key: str, fields: Document) -> None:
        try:
            result = await self._students.update_one({"_id": _student_id(class_id, key)}, {"$set": fields})
        except PyMongoError as e:
            raise TransientStoreError() from e
        if result.matched_count == 0:
            raise NotFoundError("Student record not found.")

    async def delete_student(self, class_id: str, key: str) -> None:
        try:
            await self._students.delete_one({"_id": _student_id(class_id, key)})
        except PyMongoError as e:
            raise TransientStoreError() from e

    async def add_activity_log(self, data: Document) -> None:
        try:
            await self._activity_logs.insert_one(dict(data))
        except PyMongoError as e:
            raise TransientStoreError() from e

    async def run_transaction(self, fn: Callable[[StoreTransaction], Awaitable[T]]) -> T:
        async def _run(session):
            return await fn(_MongoTransaction(self._classes, self._students, session))

        try:
            async with await self._client.start_session() as session:
                return await session.with_transaction(_run)
        except DuplicateKeyError as e:
            raise DocumentExists() from e
        except PyMongoError as e:
            raise TransientStoreError() from e

    async def close(self) -> None:
        self._client.close()
