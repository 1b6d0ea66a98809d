from firebase_account.application.account_service import AccountService
from firebase_account.application.dispatcher import AccountOperationDispatcher
from firebase_account.application.reconciliation_service import AccountReconciliationService

__all__ = [
    "AccountService",
    "AccountOperationDispatcher",
    "AccountReconciliationService",
]
