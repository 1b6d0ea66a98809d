"""
Provider registry routing identities to their provider adapter.
"""
from __future__ import annotations

import logging
from typing import Iterator, Optional

from firebase_account.application.providers.base_provider import AccountProvider
from firebase_account.core.entities.identity import Identity
from firebase_account.core.exceptions import UnsupportedProviderError

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry that maps adapter ids and identity provider markers to adapters."""

    def __init__(self):
        self._providers: dict[str, AccountProvider] = {}

    def register(self, provider: AccountProvider) -> None:
        """Register a provider adapter."""
        self._providers[provider.id] = provider
        logger.info("Registered account provider: %s (%s)", provider.id, ", ".join(provider.provider_ids))

    def get(self, provider_id: Optional[str]) -> Optional[AccountProvider]:
        """Get adapter by id. Returns None if not registered."""
        if provider_id is None:
            return None
        return self._providers.get(provider_id)

    def default(self) -> Optional[AccountProvider]:
        """First registered non-federated adapter (email and password)."""
        for provider in self._providers.values():
            if not provider.federated:
                return provider
        return None

    def find_for(self, identity: Identity) -> Optional[AccountProvider]:
        """Find the adapter owning *identity*, preferring federated sign in methods."""
        ordered = sorted(self._providers.values(), key=lambda p: not p.federated)
        for provider in ordered:
            if any(identity.has_provider(marker) for marker in provider.provider_ids):
                return provider
        return self.default()

    def select_for(self, identity: Identity) -> AccountProvider:
        """Like :meth:`find_for`, raising if no adapter is able to handle *identity*."""
        provider = self.find_for(identity)
        if provider is None:
            logger.error("No account provider registered for %s (%s)", identity.uid, identity.provider_ids)
            raise UnsupportedProviderError()
        return provider

    def __iter__(self) -> Iterator[AccountProvider]:
        return iter(list(self._providers.values()))

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def __len__(self) -> int:
        return len(self._providers)
