"""Unit tests for InMemoryIdentityProvider."""
from __future__ import annotations

import pytest

from firebase_account.adapters.outbound.firebase.in_memory_identity import InMemoryIdentityProvider
from firebase_account.core.exceptions import AuthErrorCode, IdentityProviderError
from firebase_account.core.value_objects.credentials import EmailPasswordCredential, OAuthCredential


@pytest.fixture
def provider() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider(notify_on_register=False)


class TestInMemoryIdentityProvider:

    @pytest.mark.asyncio
    async def test_sign_in_notifies(self, provider):
        uid = provider.register_account("jane@example.com", "secret123")
        seen = []
        provider.add_state_change_listener(seen.append)

        result = await provider.sign_in_with_password("jane@example.com", "secret123")

        assert result.identity.uid == uid
        assert [identity.uid for identity in seen] == [uid]

    @pytest.mark.asyncio
    async def test_emails_are_normalized(self, provider):
        uid = provider.register_account("Jane@Example.com", "secret123")

        result = await provider.sign_in_with_password("JANE@example.com", "secret123")

        assert result.identity.uid == uid
        assert result.identity.email == "jane@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email, password, code", [
        ("nobody@example.com", "secret123", AuthErrorCode.USER_NOT_FOUND),
        ("jane@example.com", "wrong-password", AuthErrorCode.WRONG_PASSWORD),
        ("jane", "secret123", AuthErrorCode.INVALID_EMAIL),
    ])
    async def test_sign_in_errors(self, provider, email, password, code):
        provider.register_account("jane@example.com", "secret123")

        with pytest.raises(IdentityProviderError) as exc_info:
            await provider.sign_in_with_password(email, password)

        assert exc_info.value.code == code

    @pytest.mark.asyncio
    async def test_fail_next_is_consumed(self, provider):
        provider.fail_next("create_user", AuthErrorCode.TOO_MANY_REQUESTS)

        with pytest.raises(IdentityProviderError):
            await provider.create_user("jane@example.com", "secret123")
        result = await provider.create_user("jane@example.com", "secret123")

        assert result.is_new_user is True

    @pytest.mark.asyncio
    async def test_sensitive_operations_require_recent_login(self, provider):
        uid = provider.register_account("jane@example.com", "secret123")
        provider.restore(uid)

        with pytest.raises(IdentityProviderError) as exc_info:
            await provider.update_password("n3w-secret")
        assert exc_info.value.code == AuthErrorCode.REQUIRES_RECENT_LOGIN

        await provider.reauthenticate(EmailPasswordCredential("jane@example.com", "secret123"))
        await provider.update_password("n3w-secret")
        assert provider.password_of(uid) == "n3w-secret"

    @pytest.mark.asyncio
    async def test_link_does_not_notify(self, provider):
        seen = []
        provider.add_state_change_listener(seen.append)
        await provider.sign_in_anonymously()
        anonymous_uid = provider.current_identity.uid

        result = await provider.link(EmailPasswordCredential("jane@example.com", "secret123"))

        assert result.identity.uid == anonymous_uid
        assert not result.identity.is_anonymous
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_link_twice(self, provider):
        await provider.sign_in_anonymously()
        await provider.link(EmailPasswordCredential("jane@example.com", "secret123"))

        with pytest.raises(IdentityProviderError) as exc_info:
            await provider.link(EmailPasswordCredential("jane2@example.com", "secret123"))

        assert exc_info.value.code == AuthErrorCode.PROVIDER_ALREADY_LINKED

    @pytest.mark.asyncio
    async def test_federated_account_is_reused(self, provider):
        provider.register_federated("apple.com", "token-1", "jane@privaterelay.appleid.com")
        credential = OAuthCredential("apple.com", "token-1")

        first = await provider.sign_in_with_credential(credential)
        provider.sign_out()
        second = await provider.sign_in_with_credential(credential)

        assert first.is_new_user is True
        assert second.is_new_user is False
        assert second.identity.uid == first.identity.uid
        assert second.identity.email == "jane@privaterelay.appleid.com"

    @pytest.mark.asyncio
    async def test_delete_signs_out(self, provider):
        await provider.create_user("jane@example.com", "secret123")
        uid = provider.current_identity.uid
        seen = []
        provider.add_state_change_listener(seen.append)

        await provider.delete()

        assert provider.account(uid) is None
        assert seen == [None]

    def test_removed_listener_is_not_called(self, provider):
        seen = []
        handle = provider.add_state_change_listener(seen.append)
        provider.remove_state_change_listener(handle)

        provider.sign_out()

        assert seen == []
