"""
firebase-account configuration using Pydantic Settings.
Every section can be overridden through environment variables or a .env file.
"""

from __future__ import annotations

from enum import Flag, auto
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from firebase_account.application.reconciliation_service import (
    ACTIVE_PROVIDER_KEY,
    EMAIL_PASSWORD_CREDENTIALS,
)

# Load .env before any BaseSettings subclass reads env vars
load_dotenv()


class AuthenticationMethods(Flag):
    """Sign in methods offered to the user."""

    EMAIL_AND_PASSWORD = auto()
    SINGLE_SIGN_ON = auto()
    ANONYMOUS = auto()

    @classmethod
    def parse(cls, value: str) -> AuthenticationMethods:
        """Parse a comma separated list such as ``"email_and_password,single_sign_on"``."""
        methods = cls(0)
        for name in value.split(","):
            name = name.strip().upper()
            if not name:
                continue
            try:
                methods |= cls[name]
            except KeyError:
                raise ValueError(f"Unknown authentication method: {name.lower()}") from None
        return methods


class FirebaseSettings(BaseSettings):
    enabled: bool = False
    api_key: str = ""
    project_id: str = ""
    emulator_host: Optional[str] = None
    emulator_port: int = 9099
    timeout: float = 10.0

    model_config = {"env_prefix": "FIREBASE_"}


class AccountSettings(BaseSettings):
    authentication_methods: str = "email_and_password,single_sign_on"
    sso_provider_id: str = "apple.com"
    credential_namespace: str = EMAIL_PASSWORD_CREDENTIALS
    active_provider_key: str = ACTIVE_PROVIDER_KEY
    notification_timeout: float = 0.0
    minimum_password_length: int = 6

    model_config = {"env_prefix": "ACCOUNT_"}

    @field_validator("authentication_methods")
    @classmethod
    def _check_methods(cls, value: str) -> str:
        AuthenticationMethods.parse(value)
        return value

    @field_validator("minimum_password_length")
    @classmethod
    def _check_password_length(cls, value: int) -> int:
        # Firebase Auth itself never accepts fewer than six characters
        if value < 6:
            raise ValueError("minimum_password_length must be at least 6")
        return value

    @property
    def methods(self) -> AuthenticationMethods:
        return AuthenticationMethods.parse(self.authentication_methods)


class StorageSettings(BaseSettings):
    local_storage_path: Optional[str] = "./.firebase_account/local_storage.json"
    persist_session: bool = True

    model_config = {"env_prefix": "STORAGE_"}


class LoggingSettings(BaseSettings):
    level: str = "INFO"

    model_config = {"env_prefix": "LOG_"}


class Settings(BaseSettings):
    """Root settings aggregating all configuration sections."""

    app_env: str = "development"

    firebase: FirebaseSettings = Field(default_factory=FirebaseSettings)
    account: AccountSettings = Field(default_factory=AccountSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def validate_production(self) -> None:
        """Validate critical settings for production environment."""
        if self.app_env != "production":
            return
        if not self.firebase.enabled:
            raise RuntimeError("FATAL: Firebase must be enabled in production. Set FIREBASE_ENABLED=true.")
        if not self.firebase.api_key:
            raise RuntimeError("FATAL: FIREBASE_API_KEY must be set in production.")


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
