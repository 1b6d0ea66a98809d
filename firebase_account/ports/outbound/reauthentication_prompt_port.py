"""Port for asking the user to re-enter their password."""
from __future__ import annotations
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ReauthenticationPromptPort(Protocol):
    async def request_password(self, user_id: str) -> Optional[str]:
        """Return ``None`` when the user cancelled the prompt."""
        ...
