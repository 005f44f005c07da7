"""Application configuration using Pydantic Settings."""
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "CodeQuest Onboarding"
    debug: bool = False

    # Document store
    store_backend: Literal["firestore", "mongo"] = "firestore"
    mongodb_url: str = "mongodb://localhost:27017/?replicaSet=rs0"
    mongodb_db_name: str = "codequest"
    store_retry_attempts: int = 3
    store_retry_backoff_seconds: float = 0.2

    # Firebase (Auth + Firestore)
    firebase_credentials_path: str = ""
    firebase_web_api_key: str = ""  # Identity Toolkit REST sign-in
    firebase_project_id: str = ""

    # JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 30
    activation_token_expire_minutes: int = 15

    # SendGrid (onboarding credential delivery)
    sendgrid_api_key: str = ""
    sendgrid_from_email: str = ""
    sendgrid_from_name: str = "JavArise: To the top"
    sendgrid_template_id: str = ""
    onboarding_app_name: str = "JavArise"

    # Activation
    temp_credential_length: int = 8
    min_password_length: int = 6
    player_role: str = "Player"
    atomic_promotion: bool = True  # false = sequential write-then-delete fallback
    reconcile_on_startup: bool = True

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        return self


settings = Settings()
