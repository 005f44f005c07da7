"""Collaborator construction: document store, identity provider, services."""
from dataclasses import dataclass
from typing import Optional

from onboarding.config import Settings
from onboarding.identity.base import IdentityProvider
from onboarding.services.activation import ActivationEngine
from onboarding.services.activity_log import ActivityLogger
from onboarding.services.login import LoginService
from onboarding.services.notifier import OnboardingNotifier, build_notifier
from onboarding.services.registration import RegistrationService
from onboarding.store.base import DocumentStore


@dataclass
class Services:
    store: DocumentStore
    identity: IdentityProvider
    notifier: Optional[OnboardingNotifier]
    engine: ActivationEngine
    registration: RegistrationService
    login: LoginService
    retry_attempts: int = 3
    retry_backoff: float = 0.2


def build_services(
    settings: Settings,
    store: DocumentStore,
    identity: IdentityProvider,
    notifier: Optional[OnboardingNotifier],
) -> Services:
    activity = ActivityLogger(store)
    engine = ActivationEngine(
        store,
        identity,
        activity,
        atomic_promotion=settings.atomic_promotion,
        min_password_length=settings.min_password_length,
    )
    return Services(
        store=store,
        identity=identity,
        notifier=notifier,
        engine=engine,
        registration=RegistrationService(
            store,
            identity,
            notifier,
            activity,
            credential_length=settings.temp_credential_length,
            default_role=settings.player_role,
        ),
        login=LoginService(store, identity, engine, activity, player_role=settings.player_role),
        retry_attempts=settings.store_retry_attempts,
        retry_backoff=settings.store_retry_backoff_seconds,
    )


def init_services(settings: Settings) -> Services:
    """Connect to Firebase (and MongoDB when selected) from settings."""
    from onboarding.identity.firebase import FirebaseIdentityProvider, init_firebase_app

    firebase_app = init_firebase_app(settings.firebase_credentials_path, settings.firebase_project_id)
    identity = FirebaseIdentityProvider(firebase_app, settings.firebase_web_api_key)

    if settings.store_backend == "mongo":
        from onboarding.store.mongo import MongoDocumentStore

        store: DocumentStore = MongoDocumentStore(settings.mongodb_url, settings.mongodb_db_name)
    else:
        from onboarding.store.firestore import FirestoreDocumentStore

        store = FirestoreDocumentStore(firebase_app)

    return build_services(settings, store, identity, build_notifier(settings))
