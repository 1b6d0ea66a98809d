from firebase_account.core.value_objects.credentials import (
    AuthCredential,
    Credentials,
    EmailPasswordCredential,
    OAuthCredential,
    ReauthenticationOperation,
    ReauthenticationResult,
)
from firebase_account.core.value_objects.person_name import PersonName

__all__ = [
    "AuthCredential", "Credentials", "EmailPasswordCredential", "OAuthCredential",
    "PersonName", "ReauthenticationOperation", "ReauthenticationResult",
]
