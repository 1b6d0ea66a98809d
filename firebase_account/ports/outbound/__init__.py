from firebase_account.ports.outbound.account_notification_port import AccountNotificationPort
from firebase_account.ports.outbound.account_store_port import AccountStorePort
from firebase_account.ports.outbound.credential_store_port import (
    CredentialNotFoundError,
    CredentialStoreError,
    CredentialStorePort,
)
from firebase_account.ports.outbound.identity_provider_port import IdentityProviderPort, StateChangeListener
from firebase_account.ports.outbound.local_storage_port import LocalStorageError, LocalStoragePort
from firebase_account.ports.outbound.reauthentication_prompt_port import ReauthenticationPromptPort
from firebase_account.ports.outbound.sso_credential_port import SsoCredentialPort

__all__ = [
    "IdentityProviderPort",
    "StateChangeListener",
    "AccountStorePort",
    "CredentialStorePort",
    "CredentialStoreError",
    "CredentialNotFoundError",
    "LocalStoragePort",
    "LocalStorageError",
    "SsoCredentialPort",
    "ReauthenticationPromptPort",
    "AccountNotificationPort",
]
