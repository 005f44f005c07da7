"""Login dispatch: activated accounts sign in with the identity provider,
everyone else falls through to first-login verification."""
import logging
from typing import Optional

from pydantic import BaseModel

from onboarding.errors import CredentialError, IdentityNotFound, InvalidLoginCredentials, NotFoundError, ValidationError
from onboarding.identity.base import IdentityProvider
from onboarding.models.activity_log import ActivityAction
from onboarding.models.student import StudentRecord
from onboarding.services.activation import ActivationEngine, normalize_email
from onboarding.services.activity_log import ActivityLogger
from onboarding.store.base import DocumentStore

logger = logging.getLogger(__name__)


class LoginOutcome(BaseModel):
    record: StudentRecord
    activation_required: bool = False


class LoginService:
    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        engine: ActivationEngine,
        activity: Optional[ActivityLogger] = None,
        *,
        player_role: str = "Player",
    ):
        self._store = store
        self._identity = identity
        self._engine = engine
        self._activity = activity or ActivityLogger(store)
        self._player_role = player_role

    async def find_by_uid(self, uid: str) -> Optional[StudentRecord]:
        for class_ref in await self._store.list_classes():
            data = await self._store.get_student(class_ref.id, uid)
            if data is not None:
                return StudentRecord.from_document(class_ref.id, uid, data, class_ref.class_code)
        return None

    def _is_player(self, record: StudentRecord) -> bool:
        return (record.role or "").lower() == self._player_role.lower()

    async def login(self, email: str, password: str) -> LoginOutcome:
        if not email or not password:
            raise ValidationError("Please fill in all fields.")
        email = normalize_email(email)

        try:
            uid = await self._identity.sign_in(email, password)
        except (IdentityNotFound, InvalidLoginCredentials) as e:
            logger.info("No identity accepted %s; checking for first login", email)
            try:
                record = await self._engine.authenticate_first_login(email, password)
            except NotFoundError:
                raise InvalidLoginCredentials() from e
            return LoginOutcome(record=record, activation_required=True)

        record = await self.find_by_uid(uid)
        if record is None or not self._is_player(record):
            logger.warning("Login refused for %s: only %s accounts may sign in", email, self._player_role)
            raise CredentialError("Invalid Credentials.")

        await self._store.update_student(record.class_id, uid, {"isActive": True})
        record.is_active = True
        await self._activity.record(ActivityAction.LOGIN, record.class_code, email, "Student logged in.", uid)
        logger.info("Regular login successful for %s", uid)
        return LoginOutcome(record=record)
