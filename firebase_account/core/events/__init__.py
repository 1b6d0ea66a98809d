from firebase_account.core.events.account_events import AccountEvent, IdentityStateChanged

__all__ = [
    "AccountEvent",
    "IdentityStateChanged",
]
