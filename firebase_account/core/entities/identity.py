"""Identity entity issued by the identity provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Identity:
    """Signed-in principal as reported by Firebase Auth.

    ``uid`` is the authoritative identifier from the provider. ``email`` may be
    missing for some federated sign in flows.
    """

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_email_verified: bool = False
    is_anonymous: bool = False
    provider_ids: list[str] = field(default_factory=list)  # e.g. "password", "apple.com"
    creation_date: Optional[datetime] = None
    last_sign_in_date: Optional[datetime] = None

    def has_provider(self, provider_id: str) -> bool:
        return provider_id in self.provider_ids


@dataclass(frozen=True)
class AuthResult:
    """Result of a provider sign in, sign up or link call.

    ``is_new_user`` is ``None`` when the provider did not report it.
    """

    identity: Identity
    is_new_user: Optional[bool] = None
    provider_id: Optional[str] = None
