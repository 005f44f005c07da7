"""First-login activation: pending (keyed by email) -> active (keyed by UID).

A student is registered with a temporary credential and a pending record at
``classes/{class}/students/{email}``. On first login the credential is
verified, a durable identity is created with the student's new password, and
the record is moved to ``classes/{class}/students/{uid}``. The move runs in
one store transaction by default, so the pending and active records never
coexist. With ``atomic_promotion=False`` the move is write-then-delete and a
failed delete leaves a twin that ``reconcile_partial_activations`` removes.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from onboarding.errors import (
    AccountNotPending,
    ConflictError,
    CredentialError,
    CredentialMismatch,
    EmailAlreadyInUse,
    NoCredentialIssued,
    NotFoundError,
    PartialActivation,
    StaleRecord,
    TransientStoreError,
    ValidationError,
    WeakCredential,
    WriteFailed,
)
from onboarding.identity.base import IdentityProvider
from onboarding.models.activity_log import ActivityAction
from onboarding.models.student import StudentRecord, StudentStatus, utcnow
from onboarding.security import verify_password
from onboarding.services.activity_log import ActivityLogger
from onboarding.store.base import Document, DocumentStore, StoreTransaction

logger = logging.getLogger(__name__)

CREDENTIAL_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ1234567890"
_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    """Same syntax rules as the registration form (email-validator), lowercased."""
    try:
        return _EMAIL_ADAPTER.validate_python((email or "").strip()).lower()
    except PydanticValidationError as e:
        raise ValidationError("Please enter a valid email address.") from e


def generate_onboarding_credential(length: int = 8) -> str:
    """Random one-time secret; only its hash is ever stored."""
    return "".join(secrets.choice(CREDENTIAL_ALPHABET) for _ in range(length))


def _activated_document(old: Document, record: StudentRecord, uid: str, now: datetime) -> Document:
    new = dict(old)
    new.pop("tempPassword", None)
    if not new.get("classCode"):
        new["classCode"] = record.class_code
    new.setdefault("role", record.role)
    new.update(
        {
            "uid": uid,
            "status": StudentStatus.ACTIVE.value,
            "isActive": True,
            "firstLogin": False,
            "activatedAt": now,
        }
    )
    return new


def _same_student(doc: Document, email: str, uid: str) -> bool:
    return doc.get("uid") == uid and (doc.get("email") or "").lower() == email.lower()


class ActivationEngine:
    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        activity: Optional[ActivityLogger] = None,
        *,
        atomic_promotion: bool = True,
        min_password_length: int = 6,
    ):
        self._store = store
        self._identity = identity
        self._activity = activity or ActivityLogger(store)
        self._atomic_promotion = atomic_promotion
        self._min_password_length = min_password_length

    async def locate_activation_candidate(self, email: str) -> Optional[StudentRecord]:
        """Find the email-keyed record in any class.

        Classes are scanned in the store's iteration order and the first hit
        wins. That order is not stable, so no caller may rely on one class
        taking precedence when the same email is pending in several classes.
        """
        email = normalize_email(email)
        for class_ref in await self._store.list_classes():
            data = await self._store.get_student(class_ref.id, email)
            if data is not None:
                logger.debug("Activation candidate %s found in class %s", email, class_ref.id)
                return StudentRecord.from_document(class_ref.id, email, data, class_ref.class_code)
        return None

    def _require_pending(self, record: StudentRecord) -> None:
        if not record.is_pending or not record.first_login:
            raise AccountNotPending()
        if not record.temp_credential_hash:
            logger.error("Pending record %s in class %s has no temporary credential", record.email, record.class_id)
            raise NoCredentialIssued()

    def verify_activation(self, record: StudentRecord, supplied_credential: str) -> bool:
        self._require_pending(record)
        return verify_password(supplied_credential or "", record.temp_credential_hash)

    async def authenticate_first_login(self, email: str, supplied_credential: str) -> StudentRecord:
        record = await self.locate_activation_candidate(email)
        if record is None:
            raise NotFoundError("No account found with that email.")
        if not self.verify_activation(record, supplied_credential):
            logger.warning("Incorrect temporary password for %s", record.email)
            raise CredentialMismatch()
        return record

    async def get_pending_record(self, class_id: str, email: str, class_code: str = "") -> StudentRecord:
        """Reload a verified record at the start of the password-change step."""
        data = await self._store.get_student(class_id, email)
        if data is None:
            raise StaleRecord()
        record = StudentRecord.from_document(class_id, email, data, class_code)
        self._require_pending(record)
        return record

    def check_new_password(self, new_password: str) -> None:
        if not new_password:
            raise ValidationError("Please fill in all fields.")
        if len(new_password) < self._min_password_length:
            raise WeakCredential(f"Password must be at least {self._min_password_length} characters long.")

    async def activate(self, record: StudentRecord, new_password: str) -> StudentRecord:
        """Create the durable identity for a verified pending record and promote it."""
        self._require_pending(record)
        self.check_new_password(new_password)
        try:
            uid = await self._identity.create_identity(record.email, new_password)
            logger.info("Identity %s created for %s", uid, record.email)
        except EmailAlreadyInUse:
            # Either another session won the race or an earlier attempt created the
            # identity and failed before promotion. Only the latter can sign in here.
            try:
                uid = await self._identity.sign_in(record.email, new_password)
            except (CredentialError, NotFoundError) as e:
                raise StaleRecord(EmailAlreadyInUse.default_message) from e
            logger.info("Resuming activation of %s with existing identity %s", record.email, uid)
        return await self.promote_to_active(record, uid)

    def _plan_move(
        self, record: StudentRecord, uid: str, old: Optional[Document], current: Optional[Document]
    ) -> tuple[Document, bool, bool]:
        """Return (active document, write it?, delete the pending one?)."""
        if old is None:
            if current is not None and _same_student(current, record.email, uid):
                return current, False, False
            raise StaleRecord()
        if current is not None:
            if not _same_student(current, record.email, uid):
                raise ConflictError("Another student record already uses this identity.")
            logger.warning("Completing interrupted activation of %s (uid %s)", record.email, uid)
            return current, False, True
        if old.get("status") != StudentStatus.PENDING.value or not old.get("firstLogin", False):
            raise AccountNotPending()
        return _activated_document(old, record, uid, utcnow()), True, True

    async def promote_to_active(self, record: StudentRecord, uid: str) -> StudentRecord:
        if not uid:
            raise ValidationError("A durable identity is required for activation.")
        class_id, old_key = record.class_id, record.document_key

        if self._atomic_promotion:
            document, created = await self._promote_atomic(record, uid)
        else:
            document, created = await self._promote_sequential(record, uid)

        active = StudentRecord.from_document(class_id, uid, document, record.class_code)
        if created:
            logger.info("Activated %s in class %s: %s -> %s", active.email, class_id, old_key, uid)
            await self._activity.record(
                ActivityAction.ACCOUNT_ACTIVATED,
                active.class_code,
                active.email,
                "First login completed successfully. Identity account created.",
                uid,
            )
        return active

    async def _promote_atomic(self, record: StudentRecord, uid: str) -> tuple[Document, bool]:
        class_id, old_key = record.class_id, record.document_key

        async def _move(tx: StoreTransaction) -> tuple[Document, bool]:
            old = await tx.get_student(class_id, old_key)
            current = await tx.get_student(class_id, uid)
            document, write, delete = self._plan_move(record, uid, old, current)
            if write:
                await tx.create_student(class_id, uid, document)
            if delete:
                await tx.delete_student(class_id, old_key)
            return document, write

        try:
            return await self._store.run_transaction(_move)
        except TransientStoreError as e:
            logger.error("Activation transaction for %s failed: %s", record.email, e)
            raise WriteFailed() from e

    async def _promote_sequential(self, record: StudentRecord, uid: str) -> tuple[Document, bool]:
        class_id, old_key = record.class_id, record.document_key
        try:
            old = await self._store.get_student(class_id, old_key)
            current = await self._store.get_student(class_id, uid)
        except TransientStoreError as e:
            raise WriteFailed() from e

        document, write, delete = self._plan_move(record, uid, old, current)
        if write:
            try:
                await self._store.set_student(class_id, uid, document)
            except TransientStoreError as e:
                raise WriteFailed() from e
        if delete:
            try:
                await self._store.delete_student(class_id, old_key)
            except TransientStoreError as e:
                logger.critical(
                    "PARTIAL ACTIVATION: class %s student %s written as %s but pending record was not deleted",
                    class_id,
                    record.email,
                    uid,
                )
                raise PartialActivation(class_id=class_id, email=record.email, uid=uid) from e
        return document, write

    async def reconcile_partial_activations(self) -> int:
        """Delete pending records whose active twin already exists. Returns the repair count."""
        repaired = 0
        for class_ref in await self._store.list_classes():
            for key, data in await self._store.query_students(class_ref.id, "status", StudentStatus.ACTIVE.value):
                email = (data.get("email") or "").lower()
                if not email or key == email or data.get("uid") != key:
                    continue
                pending = await self._store.get_student(class_ref.id, email)
                if pending is None or pending.get("status") != StudentStatus.PENDING.value:
                    continue
                logger.warning(
                    "Reconciling class %s: removing pending record %s superseded by %s", class_ref.id, email, key
                )
                await self._store.delete_student(class_ref.id, email)
                repaired += 1
        if repaired:
            logger.warning("Reconciliation repaired %d partial activation(s)", repaired)
        return repaired
