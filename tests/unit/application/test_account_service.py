"""Unit tests for AccountService."""
from __future__ import annotations

import asyncio

import pytest

from firebase_account.application.account_service import AccountService
from firebase_account.application.dispatcher import AccountOperationDispatcher
from firebase_account.application.providers.registry import ProviderRegistry
from firebase_account.application.providers.single_sign_on_provider import SingleSignOnProvider
from firebase_account.application.reconciliation_service import (
    ACTIVE_PROVIDER_KEY,
    EMAIL_PASSWORD_CREDENTIALS,
)
from firebase_account.core.entities.signup import AccountModifications, SignupDetails
from firebase_account.core.exceptions import (
    AuthErrorCode,
    InvalidCredentialsError,
    NotSignedInError,
    SetupError,
)
from firebase_account.core.value_objects.credentials import OAuthCredential
from firebase_account.core.value_objects.person_name import PersonName


@pytest.fixture
def jane_uid(identity_provider) -> str:
    return identity_provider.register_account("jane@example.com", "secret123", display_name="Jane Doe")


@pytest.fixture
def john_uid(identity_provider) -> str:
    return identity_provider.register_account("john@example.com", "hunter22", display_name="John Roe")


@pytest.fixture
async def configured(account_service):
    await account_service.configure()
    await account_service.dispatcher.drain()
    yield account_service
    await account_service.shutdown()


class TestConfigure:

    @pytest.mark.asyncio
    async def test_without_cached_identity(self, account_service, identity_provider, account_store):
        await account_service.configure()
        await account_service.dispatcher.drain()

        assert not account_store.signed_in
        assert "refresh_token" not in identity_provider.calls
        await account_service.shutdown()

    @pytest.mark.asyncio
    async def test_restores_cached_session(self, account_service, identity_provider, account_store,
                                           local_storage, email_provider, jane_uid):
        identity_provider.restore(jane_uid)
        local_storage.store(ACTIVE_PROVIDER_KEY, "email-password")

        await account_service.configure()
        await account_service.dispatcher.drain()

        assert account_store.details.account_id == jane_uid
        assert account_service.active_provider is email_provider
        assert "refresh_token" in identity_provider.calls
        await account_service.shutdown()

    @pytest.mark.asyncio
    async def test_invalid_cached_session_is_removed(self, account_service, identity_provider, account_store,
                                                     credential_store, reconciliation, local_storage, jane_uid):
        identity_provider.restore(jane_uid)
        local_storage.store(ACTIVE_PROVIDER_KEY, "email-password")
        reconciliation.persist_credentials("jane@example.com", "secret123")
        await account_store.supply_user_details(reconciliation.build_details(identity_provider.current_identity))
        identity_provider.fail_next("refresh_token", AuthErrorCode.USER_TOKEN_EXPIRED)

        await account_service.configure()
        await account_service.dispatcher.drain()

        assert identity_provider.current_identity is None
        assert not account_store.signed_in
        assert local_storage.read(ACTIVE_PROVIDER_KEY) is None
        assert credential_store.retrieve("jane@example.com", EMAIL_PASSWORD_CREDENTIALS) is None
        await account_service.shutdown()

    @pytest.mark.asyncio
    async def test_network_error_keeps_session(self, account_service, identity_provider, account_store, jane_uid):
        identity_provider.restore(jane_uid)
        identity_provider.fail_next("refresh_token", AuthErrorCode.NETWORK_ERROR)

        await account_service.configure()
        await account_service.dispatcher.drain()

        assert identity_provider.current_identity is not None
        assert account_store.details.account_id == jane_uid
        await account_service.shutdown()

    @pytest.mark.asyncio
    async def test_configure_is_idempotent(self, account_service, identity_provider, jane_uid):
        identity_provider.restore(jane_uid)

        await account_service.configure()
        await account_service.configure()
        await account_service.dispatcher.drain()

        assert identity_provider.calls.count("refresh_token") == 1
        await account_service.shutdown()


class TestAccountLifecycle:

    @pytest.mark.asyncio
    async def test_sequential_operations_stay_in_sync(self, configured, identity_provider, account_store,
                                                      jane_uid, john_uid):
        await configured.login("jane@example.com", "secret123")
        await configured.logout()
        await configured.login("john@example.com", "hunter22")
        await configured.dispatcher.drain()

        assert [d.account_id if d else None for d in account_store.history] == [None, jane_uid, None, john_uid]
        assert account_store.details.account_id == identity_provider.current_identity.uid

    @pytest.mark.asyncio
    async def test_concurrent_logins_are_serialized(self, configured, account_store, jane_uid, john_uid):
        jane, john = await asyncio.gather(
            configured.login("jane@example.com", "secret123"),
            configured.login("john@example.com", "hunter22"),
        )
        await configured.dispatcher.drain()

        assert jane.account_id == jane_uid
        assert john.account_id == john_uid
        assert account_store.details.account_id == john_uid

    @pytest.mark.asyncio
    async def test_logout_repairs_desync(self, configured, identity_provider, account_store,
                                         reconciliation, jane_identity):
        await account_store.supply_user_details(reconciliation.build_details(jane_identity))

        await configured.logout()

        assert not account_store.signed_in
        assert "sign_out" not in identity_provider.calls

    @pytest.mark.asyncio
    async def test_logout_when_signed_out(self, configured):
        with pytest.raises(NotSignedInError):
            await configured.logout()

    @pytest.mark.asyncio
    async def test_update_and_delete(self, configured, identity_provider, account_store, jane_uid):
        await configured.login("jane@example.com", "secret123")

        details = await configured.update_account_details(AccountModifications(name=PersonName.parse("Janet Doe")))
        assert details.name.given_name == "Janet"

        await configured.delete()
        assert not account_store.signed_in
        assert identity_provider.account(jane_uid) is None

    @pytest.mark.asyncio
    async def test_wrong_password(self, configured, account_store, jane_uid):
        with pytest.raises(InvalidCredentialsError):
            await configured.login("jane@example.com", "wrong-password")
        assert not account_store.signed_in


class TestSignup:

    @pytest.mark.asyncio
    async def test_email_signup(self, configured, account_store):
        details = await configured.signup(SignupDetails(user_id="new@example.com", password="secret123"))
        assert account_store.details == details

    @pytest.mark.asyncio
    async def test_signup_routes_oauth_credential(self, configured, identity_provider, account_store):
        identity_provider.register_federated("apple.com", "apple-token", "jane@privaterelay.appleid.com")

        details = await configured.signup(SignupDetails(oauth_credential=OAuthCredential("apple.com", "apple-token")))

        assert details.user_id == "jane@privaterelay.appleid.com"
        assert configured.active_provider.id == "sso.apple.com"

    @pytest.mark.asyncio
    async def test_anonymous_account_is_upgraded(self, configured, identity_provider, account_store):
        published = []
        account_store.observe(lambda details, new: published.append((details, new)))

        await configured.sign_in_anonymously()
        anonymous_uid = identity_provider.current_identity.uid
        assert not account_store.signed_in

        details = await configured.signup(SignupDetails(user_id="jane@example.com", password="secret123"))

        assert details.account_id == anonymous_uid
        assert published == [(details, True)]


class TestResetPassword:

    @pytest.mark.asyncio
    async def test_unknown_account_succeeds(self, configured, identity_provider):
        await configured.reset_password("nobody@example.com")
        assert identity_provider.sent_password_resets == []

    @pytest.mark.asyncio
    async def test_misconfigured_provider(self, configured, identity_provider):
        identity_provider.fail_next("send_password_reset", AuthErrorCode.OPERATION_NOT_ALLOWED)
        with pytest.raises(SetupError):
            await configured.reset_password("jane@example.com")


class TestRouting:

    @pytest.mark.asyncio
    async def test_reauthenticate_routes_by_identity(self, configured, identity_provider, mock_sso_source):
        identity_provider.register_federated("apple.com", "apple-token", "jane@privaterelay.appleid.com")
        credential = OAuthCredential("apple.com", "apple-token", authorization_code="code")
        await configured.login_with_credential(credential)
        mock_sso_source.request_credential.return_value = credential

        operation = await configured.reauthenticate()

        assert operation.credential is credential
        assert mock_sso_source.request_credential.await_count == 1

    @pytest.mark.asyncio
    async def test_reauthenticate_requires_identity(self, configured):
        with pytest.raises(NotSignedInError):
            await configured.reauthenticate()

    @pytest.mark.asyncio
    async def test_sso_cancelled(self, configured, account_store):
        assert await configured.sign_in_with_sso() is None
        assert not account_store.signed_in

    @pytest.mark.asyncio
    async def test_unknown_sso_provider(self, configured):
        with pytest.raises(SetupError):
            await configured.sign_in_with_sso("github.com")

    @pytest.mark.asyncio
    async def test_email_password_not_enabled(self, identity_provider, reconciliation, mock_sso_source):
        registry = ProviderRegistry()
        dispatcher = AccountOperationDispatcher(reconciliation, registry)
        registry.register(SingleSignOnProvider(
            identity_provider, dispatcher, reconciliation, credential_source=mock_sso_source,
        ))
        service = AccountService(identity_provider, registry, dispatcher, reconciliation)

        with pytest.raises(SetupError):
            await service.login("jane@example.com", "secret123")
        with pytest.raises(SetupError):
            await service.reset_password("jane@example.com")
