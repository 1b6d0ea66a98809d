from firebase_account.core.entities.account_details import AccountDetails, AccountKey
from firebase_account.core.entities.identity import AuthResult, Identity
from firebase_account.core.entities.signup import AccountModifications, SignupDetails

__all__ = [
    "AccountDetails", "AccountKey", "AccountModifications",
    "AuthResult", "Identity", "SignupDetails",
]
