"""Port for the identity provider client (Firebase Auth)."""
from __future__ import annotations
from typing import Callable, Optional, Protocol, runtime_checkable

from firebase_account.core.entities.identity import AuthResult, Identity
from firebase_account.core.value_objects.credentials import AuthCredential

StateChangeListener = Callable[[Optional[Identity]], None]


@runtime_checkable
class IdentityProviderPort(Protocol):
    """Operations act on the provider's current identity where one is needed.

    State-mutating calls (sign in, sign up, sign out, delete) invoke every
    registered listener with the new identity, or ``None`` on removal.
    Failures raise ``IdentityProviderError``.
    """

    @property
    def current_identity(self) -> Optional[Identity]: ...
    async def sign_in_with_password(self, email: str, password: str) -> AuthResult: ...
    async def create_user(self, email: str, password: str) -> AuthResult: ...
    async def sign_in_anonymously(self) -> AuthResult: ...
    async def sign_in_with_credential(self, credential: AuthCredential) -> AuthResult: ...
    def sign_out(self) -> None: ...
    async def send_password_reset(self, email: str) -> None: ...
    async def send_email_verification(self) -> None: ...
    async def update_email(self, email: str) -> None: ...
    async def update_password(self, password: str) -> None: ...
    async def update_display_name(self, display_name: str) -> None: ...
    async def delete(self) -> None: ...
    async def reauthenticate(self, credential: AuthCredential) -> AuthResult: ...
    async def link(self, credential: AuthCredential) -> AuthResult: ...
    async def revoke_token(self, provider_id: str, authorization_code: str) -> None: ...
    async def refresh_token(self, force: bool = False) -> str: ...
    def add_state_change_listener(self, listener: StateChangeListener) -> object: ...
    def remove_state_change_listener(self, handle: object) -> None: ...
