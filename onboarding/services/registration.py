"""Student self-registration: pending record + onboarding credential."""
import logging
from typing import Optional

from pydantic import BaseModel

from onboarding.errors import ConflictError, DocumentExists, NotFoundError, NotificationError
from onboarding.identity.base import IdentityProvider
from onboarding.models.activity_log import ActivityAction
from onboarding.models.student import StudentRecord, StudentRegister, StudentStatus
from onboarding.security import get_password_hash
from onboarding.services.activation import generate_onboarding_credential, normalize_email
from onboarding.services.activity_log import ActivityLogger
from onboarding.services.notifier import OnboardingNotifier
from onboarding.store.base import DocumentStore, StoreTransaction

logger = logging.getLogger(__name__)


class RegistrationResult(BaseModel):
    record: StudentRecord
    delivered: bool
    # Only set when the email could not be sent; shown to the caller instead.
    temp_credential: Optional[str] = None


class RegistrationService:
    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        notifier: Optional[OnboardingNotifier],
        activity: Optional[ActivityLogger] = None,
        *,
        credential_length: int = 8,
        default_role: str = "Player",
    ):
        self._store = store
        self._identity = identity
        self._notifier = notifier
        self._activity = activity or ActivityLogger(store)
        self._credential_length = credential_length
        self._default_role = default_role

    async def _student_number_in_other_class(self, student_number: str, class_id: str) -> bool:
        for class_ref in await self._store.list_classes():
            if class_ref.id == class_id:
                continue
            if await self._store.query_students(class_ref.id, "studentNumber", student_number):
                return True
        return False

    async def register(self, data: StudentRegister) -> RegistrationResult:
        email = normalize_email(data.email)

        class_ref = await self._store.find_class_by_code(data.class_code)
        if class_ref is None:
            raise NotFoundError("Class code not found")

        if await self._identity.email_exists(email):
            raise ConflictError("Email already registered in authentication system.")

        if await self._student_number_in_other_class(data.student_number, class_ref.id):
            raise ConflictError("Student number already registered in another class")

        credential = generate_onboarding_credential(self._credential_length)
        record = StudentRecord(
            class_id=class_ref.id,
            document_key=email,
            class_code=class_ref.class_code,
            student_number=data.student_number,
            name=data.full_name,
            email=email,
            temp_credential_hash=get_password_hash(credential),
            status=StudentStatus.PENDING,
            is_active=False,
            first_login=True,
            role=self._default_role,
        )
        document = record.to_document()

        async def _create(tx: StoreTransaction) -> None:
            class_doc = await tx.get_class(class_ref.id) or {}
            if await tx.get_student(class_ref.id, email) or await tx.query_students(class_ref.id, "email", email):
                raise ConflictError("Email already registered in this class")
            if await tx.query_students(class_ref.id, "studentNumber", data.student_number):
                raise ConflictError("Student number already registered in this class")
            await tx.create_student(class_ref.id, email, document)
            await tx.update_class(class_ref.id, {"studentCount": int(class_doc.get("studentCount") or 0) + 1})

        try:
            await self._store.run_transaction(_create)
        except DocumentExists as e:
            raise ConflictError("Email already registered in this class") from e
        logger.info("Registered %s in class %s (pending activation)", email, class_ref.class_code)

        delivered = False
        if self._notifier is not None:
            try:
                await self._notifier.send_onboarding_credential(email, data.full_name, credential)
                delivered = True
            except NotificationError as e:
                logger.error("Onboarding email to %s failed: %s", email, e)
        if not delivered:
            logger.warning("Temporary password for %s returned to the caller instead of emailed", email)

        await self._activity.record(
            ActivityAction.REGISTER,
            class_ref.class_code,
            email,
            f"{data.full_name} registered to class {class_ref.class_code}",
        )
        return RegistrationResult(
            record=record,
            delivered=delivered,
            temp_credential=None if delivered else credential,
        )
