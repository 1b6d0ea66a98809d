"""Unit tests for SingleSignOnProvider."""
from __future__ import annotations

import pytest

from firebase_account.core.entities.signup import SignupDetails
from firebase_account.core.events.account_events import AccountEvent
from firebase_account.core.exceptions import (
    InvalidCredentialsError,
    InvalidEmailError,
    RequireRecentLoginError,
    SetupError,
    SingleSignOnFailedError,
)
from firebase_account.core.value_objects.credentials import OAuthCredential
from firebase_account.core.value_objects.person_name import PersonName


@pytest.fixture
def attached(dispatcher, identity_provider, email_provider, sso_provider):
    dispatcher.attach(identity_provider)
    yield
    dispatcher.detach()


@pytest.fixture
def apple_credential(identity_provider) -> OAuthCredential:
    identity_provider.register_federated("apple.com", "apple-token-1", "jane@privaterelay.appleid.com")
    return OAuthCredential(
        provider_id="apple.com",
        id_token="apple-token-1",
        raw_nonce="nonce",
        authorization_code="code-1",
        full_name=PersonName(given_name="Jane", family_name="Doe"),
    )


@pytest.mark.usefixtures("attached")
class TestLogin:

    @pytest.mark.asyncio
    async def test_first_sign_in_sets_name(self, sso_provider, dispatcher, identity_provider,
                                           account_store, apple_credential):
        published = []
        account_store.observe(lambda details, new: published.append(new))

        details = await sso_provider.login(apple_credential)

        assert details.user_id == "jane@privaterelay.appleid.com"
        assert details.name == PersonName(given_name="Jane", family_name="Doe")
        assert details.is_email_verified is True
        assert published == [True]
        assert dispatcher.active_provider is sso_provider

    @pytest.mark.asyncio
    async def test_returning_user_keeps_name(self, sso_provider, identity_provider, apple_credential):
        await sso_provider.login(apple_credential)
        await sso_provider.logout()
        renamed = OAuthCredential("apple.com", "apple-token-1", full_name=PersonName(given_name="Other"))

        details = await sso_provider.login(renamed)

        assert details.name.given_name == "Jane"
        assert identity_provider.calls.count("update_display_name") == 1

    @pytest.mark.asyncio
    async def test_hidden_email_is_rejected(self, sso_provider, account_store):
        with pytest.raises(InvalidEmailError):
            await sso_provider.login(OAuthCredential("apple.com", "no-email-token"))

        assert not account_store.signed_in


@pytest.mark.usefixtures("attached")
class TestInteractiveSignIn:

    @pytest.mark.asyncio
    async def test_cancelled(self, sso_provider, identity_provider, mock_sso_source):
        assert await sso_provider.sign_in_interactively() is None
        mock_sso_source.request_credential.assert_awaited_once_with("apple.com")
        assert "sign_in_with_credential" not in identity_provider.calls

    @pytest.mark.asyncio
    async def test_completed(self, sso_provider, mock_sso_source, account_store, apple_credential):
        mock_sso_source.request_credential.return_value = apple_credential

        details = await sso_provider.sign_in_interactively()

        assert details.user_id == "jane@privaterelay.appleid.com"
        assert account_store.signed_in

    @pytest.mark.asyncio
    async def test_challenge_failure(self, sso_provider, mock_sso_source):
        mock_sso_source.request_credential.side_effect = RuntimeError("authorization failed")

        with pytest.raises(SingleSignOnFailedError):
            await sso_provider.sign_in_interactively()

    @pytest.mark.asyncio
    async def test_without_credential_source(self, identity_provider, dispatcher, reconciliation):
        from firebase_account.application.providers.single_sign_on_provider import SingleSignOnProvider

        provider = SingleSignOnProvider(identity_provider, dispatcher, reconciliation)

        with pytest.raises(SetupError):
            await provider.sign_in_interactively()


@pytest.mark.usefixtures("attached")
class TestSignup:

    @pytest.mark.asyncio
    async def test_requires_credential(self, sso_provider):
        with pytest.raises(InvalidCredentialsError):
            await sso_provider.signup(SignupDetails(user_id="jane@example.com"))

    @pytest.mark.asyncio
    async def test_signs_in(self, sso_provider, account_store, apple_credential):
        details = await sso_provider.signup(SignupDetails(oauth_credential=apple_credential))
        assert details.account_id == account_store.details.account_id

    @pytest.mark.asyncio
    async def test_links_anonymous_account(self, sso_provider, email_provider, dispatcher,
                                           identity_provider, account_store, apple_credential):
        published = []
        account_store.observe(lambda details, new: published.append(new))
        await dispatcher.perform_guarded(email_provider, identity_provider.sign_in_anonymously)
        anonymous_uid = identity_provider.current_identity.uid

        details = await sso_provider.signup(SignupDetails(oauth_credential=apple_credential))

        assert details.account_id == anonymous_uid
        assert details.name.given_name == "Jane"
        assert published == [True]
        assert dispatcher.active_provider is sso_provider


@pytest.mark.usefixtures("attached")
class TestDelete:

    @pytest.mark.asyncio
    async def test_revokes_and_deletes(self, sso_provider, identity_provider, account_store,
                                       mock_sso_source, mock_notifier, apple_credential):
        await sso_provider.login(apple_credential)
        uid = identity_provider.current_identity.uid
        mock_sso_source.request_credential.return_value = apple_credential

        await sso_provider.delete()

        assert identity_provider.revoked_tokens == [("apple.com", "code-1")]
        assert identity_provider.account(uid) is None
        assert not account_store.signed_in
        mock_notifier.report_event.assert_awaited_once_with(AccountEvent.DELETING_ACCOUNT, uid)

    @pytest.mark.asyncio
    async def test_cancelled_reauthentication(self, sso_provider, identity_provider, apple_credential):
        await sso_provider.login(apple_credential)

        with pytest.raises(RequireRecentLoginError):
            await sso_provider.delete()

        assert "delete" not in identity_provider.calls

    @pytest.mark.asyncio
    async def test_missing_authorization_code(self, sso_provider, identity_provider, mock_sso_source,
                                              mock_notifier, apple_credential):
        await sso_provider.login(apple_credential)
        mock_sso_source.request_credential.return_value = OAuthCredential("apple.com", "apple-token-1")

        with pytest.raises(SetupError):
            await sso_provider.delete()

        assert identity_provider.current_identity is not None
        mock_notifier.report_event.assert_not_awaited()


@pytest.mark.usefixtures("attached")
class TestReauthenticate:

    @pytest.mark.asyncio
    async def test_returns_credential(self, sso_provider, identity_provider, mock_sso_source, apple_credential):
        await sso_provider.login(apple_credential)
        mock_sso_source.request_credential.return_value = apple_credential

        operation = await sso_provider.reauthenticate(identity_provider.current_identity)

        assert operation.succeeded
        assert operation.credential is apple_credential

    @pytest.mark.asyncio
    async def test_foreign_credential(self, sso_provider, identity_provider, mock_sso_source, apple_credential):
        await sso_provider.login(apple_credential)
        mock_sso_source.request_credential.return_value = OAuthCredential("apple.com", "someone-else")

        with pytest.raises(InvalidCredentialsError):
            await sso_provider.reauthenticate(identity_provider.current_identity)
