"""Unit tests for ProviderRegistry."""
from __future__ import annotations

import pytest

from firebase_account.application.providers.registry import ProviderRegistry
from firebase_account.core.entities.identity import Identity
from firebase_account.core.exceptions import UnsupportedProviderError


class TestProviderRegistry:

    def test_register_and_get(self, registry, email_provider, sso_provider):
        assert registry.get("email-password") is email_provider
        assert registry.get("sso.apple.com") is sso_provider
        assert registry.get("unknown") is None
        assert registry.get(None) is None
        assert "sso.apple.com" in registry
        assert len(registry) == 2

    def test_default_is_first_non_federated(self, registry, sso_provider, email_provider):
        assert registry.default() is email_provider

    def test_default_without_email_provider(self, sso_provider):
        registry = ProviderRegistry()
        registry.register(sso_provider)
        assert registry.default() is None

    def test_find_for_prefers_federated(self, registry, email_provider, sso_provider):
        linked = Identity(uid="u1", email="jane@example.com", provider_ids=["password", "apple.com"])
        assert registry.find_for(linked) is sso_provider

    def test_find_for_password(self, registry, email_provider, sso_provider, jane_identity):
        assert registry.find_for(jane_identity) is email_provider

    def test_find_for_unknown_marker_falls_back(self, registry, email_provider, sso_provider):
        identity = Identity(uid="u1", email="jane@example.com", provider_ids=["github.com"])
        assert registry.find_for(identity) is email_provider

    def test_select_for_raises(self, sso_provider):
        registry = ProviderRegistry()
        registry.register(sso_provider)
        identity = Identity(uid="u1", email="jane@example.com", provider_ids=["github.com"])

        with pytest.raises(UnsupportedProviderError):
            registry.select_for(identity)

    def test_iterates_in_registration_order(self, registry, email_provider, sso_provider):
        assert len(registry) == 2
        assert list(registry) == [email_provider, sso_provider]
