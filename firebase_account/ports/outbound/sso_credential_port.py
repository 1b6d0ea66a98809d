"""Port for the interactive single sign-on challenge (UI side)."""
from __future__ import annotations
from typing import Optional, Protocol, runtime_checkable

from firebase_account.core.value_objects.credentials import OAuthCredential


@runtime_checkable
class SsoCredentialPort(Protocol):
    async def request_credential(self, provider_id: str) -> Optional[OAuthCredential]:
        """Return ``None`` when the user cancelled the challenge."""
        ...
