"""Shared test fixtures for all tests."""
from __future__ import annotations

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from firebase_account.adapters.outbound.firebase.in_memory_identity import InMemoryIdentityProvider
from firebase_account.adapters.outbound.persistence.in_memory_account_store import InMemoryAccountStore
from firebase_account.adapters.outbound.persistence.in_memory_credential_store import InMemoryCredentialStore
from firebase_account.adapters.outbound.persistence.json_local_storage import InMemoryLocalStorage
from firebase_account.application.account_service import AccountService
from firebase_account.application.dispatcher import AccountOperationDispatcher
from firebase_account.application.providers.email_password_provider import EmailPasswordProvider
from firebase_account.application.providers.registry import ProviderRegistry
from firebase_account.application.providers.single_sign_on_provider import SingleSignOnProvider
from firebase_account.application.reconciliation_service import AccountReconciliationService
from firebase_account.core.entities.identity import Identity


# ── Identity Fixtures ──────────────────────────────────────────────────────

@pytest.fixture
def jane_identity() -> Identity:
    return Identity(
        uid="uid-jane",
        email="jane@example.com",
        display_name="Jane Doe",
        is_email_verified=False,
        provider_ids=["password"],
        creation_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        last_sign_in_date=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def apple_identity() -> Identity:
    return Identity(
        uid="uid-apple",
        email="jane@privaterelay.appleid.com",
        is_email_verified=True,
        provider_ids=["apple.com"],
    )


# ── Adapter Fixtures ───────────────────────────────────────────────────────

@pytest.fixture
def identity_provider() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def local_storage() -> InMemoryLocalStorage:
    return InMemoryLocalStorage()


# ── Mock Port Fixtures ─────────────────────────────────────────────────────

@pytest.fixture
def mock_notifier():
    return AsyncMock()


@pytest.fixture
def mock_sso_source():
    mock = AsyncMock()
    mock.request_credential.return_value = None
    return mock


@pytest.fixture
def mock_prompt():
    mock = AsyncMock()
    mock.request_password.return_value = None
    return mock


@pytest.fixture
def mock_account_store():
    mock = MagicMock()
    mock.details = None
    mock.signed_in = False
    mock.supply_user_details = AsyncMock()
    mock.remove_user_details = AsyncMock()
    return mock


# ── Application Fixtures ───────────────────────────────────────────────────

@pytest.fixture
def reconciliation(account_store, credential_store, local_storage) -> AccountReconciliationService:
    return AccountReconciliationService(account_store, credential_store, local_storage)


@pytest.fixture
def registry() -> ProviderRegistry:
    return ProviderRegistry()


@pytest.fixture
def dispatcher(reconciliation, registry) -> AccountOperationDispatcher:
    return AccountOperationDispatcher(reconciliation, registry)


@pytest.fixture
def email_provider(identity_provider, dispatcher, reconciliation, registry, mock_notifier, mock_prompt):
    provider = EmailPasswordProvider(
        identity_provider,
        dispatcher,
        reconciliation,
        notifier=mock_notifier,
        prompt=mock_prompt,
    )
    registry.register(provider)
    return provider


@pytest.fixture
def sso_provider(identity_provider, dispatcher, reconciliation, registry, mock_notifier, mock_sso_source):
    provider = SingleSignOnProvider(
        identity_provider,
        dispatcher,
        reconciliation,
        notifier=mock_notifier,
        credential_source=mock_sso_source,
    )
    registry.register(provider)
    return provider


@pytest.fixture
def account_service(identity_provider, registry, dispatcher, reconciliation, email_provider, sso_provider):
    return AccountService(identity_provider, registry, dispatcher, reconciliation)
