"""
Account reconciliation use case.

Converts provider identities into account detail documents, publishes or
retracts them on the account store and keeps the side storage (cached
credentials, active provider identifier) in sync.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from firebase_account.core.entities.account_details import AccountDetails, AccountKey
from firebase_account.core.entities.identity import Identity
from firebase_account.core.exceptions import InvalidEmailError
from firebase_account.core.value_objects.credentials import Credentials
from firebase_account.core.value_objects.person_name import PersonName
from firebase_account.ports.outbound.credential_store_port import CredentialNotFoundError

if TYPE_CHECKING:
    from firebase_account.application.providers.base_provider import AccountProvider

logger = logging.getLogger(__name__)

ACTIVE_PROVIDER_KEY = "active-service.firebase"
EMAIL_PASSWORD_CREDENTIALS = "account.email-pw.firebase"


class AccountReconciliationService:
    """Publishes the current account to the account store."""

    def __init__(
        self,
        account_store,
        credential_store,
        local_storage,
        active_provider_key: str = ACTIVE_PROVIDER_KEY,
    ):
        self._account_store = account_store
        self._credential_store = credential_store
        self._local_storage = local_storage
        self._active_provider_key = active_provider_key

    @property
    def account_store(self):
        return self._account_store

    # ── Publishing ────────────────────────────────────────────────

    def build_details(self, identity: Identity) -> AccountDetails:
        """Build the account detail document for *identity*.

        Raises :class:`InvalidEmailError` if the identity has no email.
        """
        if not identity.email:
            logger.error("Failed to associate account %s due to missing email address.", identity.uid)
            raise InvalidEmailError()

        values = {
            AccountKey.ACCOUNT_ID: identity.uid,
            AccountKey.USER_ID: identity.email,
            AccountKey.IS_EMAIL_VERIFIED: identity.is_email_verified,
            AccountKey.CREATION_DATE: identity.creation_date,
            AccountKey.LAST_SIGN_IN_DATE: identity.last_sign_in_date,
        }
        if identity.display_name:
            try:
                values[AccountKey.NAME] = PersonName.parse(identity.display_name)
            except ValueError:
                logger.debug("Display name of %s is not a parseable person name", identity.uid)
        return AccountDetails.build(values)

    async def apply_signed_in(
        self,
        identity: Identity,
        provider: Optional[AccountProvider] = None,
        is_new_user: bool = False,
    ) -> AccountDetails:
        details = self.build_details(identity)
        logger.debug(
            "Supplying account details for %s (provider=%s, new=%s)",
            identity.uid,
            provider.id if provider else None,
            is_new_user,
        )
        await self._account_store.supply_user_details(details, is_new_user=is_new_user)
        return details

    async def apply_removed(self, provider: Optional[AccountProvider] = None) -> None:
        logger.debug("Removing account details from the account store.")
        current = self._account_store.details
        user_id = current.user_id if current is not None else None

        await self._account_store.remove_user_details()
        self.reset_active_provider()

        if provider is not None:
            await provider.handle_account_removal(user_id)

    # ── Active provider bookkeeping ───────────────────────────────

    def record_active_provider(self, provider_id: str) -> None:
        try:
            self._local_storage.store(self._active_provider_key, provider_id)
        except Exception as e:
            logger.error("Failed to store active account provider: %s", e)

    def load_active_provider(self) -> Optional[str]:
        try:
            return self._local_storage.read(self._active_provider_key)
        except Exception as e:
            logger.error("Failed to read last active account provider: %s", e)
            return None

    def reset_active_provider(self) -> None:
        try:
            self._local_storage.delete(self._active_provider_key)
        except Exception as e:
            logger.error("Failed to remove active account provider: %s", e)

    # ── Credential cache ──────────────────────────────────────────
    # Cached credentials only streamline re-authentication, so failures are
    # logged and never raised.

    def persist_credentials(self, user_id: str, password: str, namespace: str = EMAIL_PASSWORD_CREDENTIALS) -> None:
        try:
            self._credential_store.store(Credentials(username=user_id, password=password), namespace)
        except Exception as e:
            logger.error("Failed to persist login credentials: %s", e)

    def remove_credentials(self, user_id: str, namespace: str = EMAIL_PASSWORD_CREDENTIALS) -> None:
        try:
            self._credential_store.delete(user_id, namespace)
        except CredentialNotFoundError:
            pass
        except Exception as e:
            logger.error("Failed to remove credentials: %s", e)

    def retrieve_password(self, user_id: str, namespace: str = EMAIL_PASSWORD_CREDENTIALS) -> Optional[str]:
        try:
            credentials = self._credential_store.retrieve(user_id, namespace)
        except Exception as e:
            logger.error("Failed to retrieve credentials: %s", e)
            return None
        return credentials.password if credentials is not None else None
