from firebase_account.application.providers.base_provider import AccountProvider
from firebase_account.application.providers.email_password_provider import EmailPasswordProvider
from firebase_account.application.providers.registry import ProviderRegistry
from firebase_account.application.providers.single_sign_on_provider import SingleSignOnProvider

__all__ = [
    "AccountProvider",
    "EmailPasswordProvider",
    "ProviderRegistry",
    "SingleSignOnProvider",
]
