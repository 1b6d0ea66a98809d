"""
Dependency container.
Wires together ports and adapters based on configuration.
"""
from __future__ import annotations

import logging
from typing import Optional

from firebase_account.infrastructure.config import AuthenticationMethods, Settings

logger = logging.getLogger(__name__)


class ApplicationContainer:
    """Simplified container that builds concrete instances from settings.

    UI-side collaborators (SSO challenge, password prompt) and a platform
    credential store are handed in by the host; everything else is built
    lazily from settings.

    Usage::

        container = ApplicationContainer(settings, sso_credential_source=apple_ui)
        service = container.account_service()
        await service.configure()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        account_store=None,
        credential_store=None,
        sso_credential_source=None,
        reauthentication_prompt=None,
    ):
        self.settings = settings or Settings()
        self._cache: dict[str, object] = {}
        if account_store is not None:
            self._cache["account_store"] = account_store
        if credential_store is not None:
            self._cache["credential_store"] = credential_store
        self._sso_credential_source = sso_credential_source
        self._reauthentication_prompt = reauthentication_prompt

    def _get_or_create(self, key: str, factory):
        if key not in self._cache:
            self._cache[key] = factory(self.settings)
        return self._cache[key]

    # ── Lazy factory helpers ──────────────────────────────────────

    @staticmethod
    def _build_local_storage(settings: Settings):
        if settings.storage.local_storage_path:
            from firebase_account.adapters.outbound.persistence.json_local_storage import JsonFileLocalStorage
            return JsonFileLocalStorage(settings.storage.local_storage_path)
        from firebase_account.adapters.outbound.persistence.json_local_storage import InMemoryLocalStorage
        return InMemoryLocalStorage()

    @staticmethod
    def _build_account_store(settings: Settings):
        from firebase_account.adapters.outbound.persistence.in_memory_account_store import InMemoryAccountStore
        return InMemoryAccountStore()

    @staticmethod
    def _build_credential_store(settings: Settings):
        from firebase_account.adapters.outbound.persistence.in_memory_credential_store import InMemoryCredentialStore
        return InMemoryCredentialStore()

    @staticmethod
    def _build_notifier(settings: Settings):
        from firebase_account.adapters.outbound.notifications.logging_notifier import LoggingAccountNotifier
        return LoggingAccountNotifier()

    def _build_identity_provider(self, settings: Settings):
        if settings.firebase.enabled:
            from firebase_account.adapters.outbound.firebase.firebase_rest_identity import FirebaseRestIdentityProvider
            return FirebaseRestIdentityProvider(
                api_key=settings.firebase.api_key,
                project_id=settings.firebase.project_id,
                emulator_host=settings.firebase.emulator_host,
                emulator_port=settings.firebase.emulator_port,
                timeout=settings.firebase.timeout,
                session_storage=self.local_storage() if settings.storage.persist_session else None,
            )
        from firebase_account.adapters.outbound.firebase.in_memory_identity import InMemoryIdentityProvider
        logger.warning("Firebase is disabled, using the in-memory identity provider")
        return InMemoryIdentityProvider()

    def _build_account_service(self, settings: Settings):
        from firebase_account.application.account_service import AccountService
        from firebase_account.application.dispatcher import AccountOperationDispatcher
        from firebase_account.application.providers.email_password_provider import EmailPasswordProvider
        from firebase_account.application.providers.registry import ProviderRegistry
        from firebase_account.application.providers.single_sign_on_provider import SingleSignOnProvider
        from firebase_account.application.reconciliation_service import AccountReconciliationService

        identity_provider = self.identity_provider()
        reconciliation = AccountReconciliationService(
            account_store=self.account_store(),
            credential_store=self.credential_store(),
            local_storage=self.local_storage(),
            active_provider_key=settings.account.active_provider_key,
        )
        registry = ProviderRegistry()
        dispatcher = AccountOperationDispatcher(
            reconciliation,
            registry,
            notification_timeout=settings.account.notification_timeout,
        )

        methods = settings.account.methods
        if methods & (AuthenticationMethods.EMAIL_AND_PASSWORD | AuthenticationMethods.ANONYMOUS):
            registry.register(EmailPasswordProvider(
                identity_provider,
                dispatcher,
                reconciliation,
                notifier=self.notifier(),
                prompt=self._reauthentication_prompt,
                credential_namespace=settings.account.credential_namespace,
                minimum_password_length=settings.account.minimum_password_length,
            ))
        if methods & AuthenticationMethods.SINGLE_SIGN_ON:
            registry.register(SingleSignOnProvider(
                identity_provider,
                dispatcher,
                reconciliation,
                notifier=self.notifier(),
                credential_source=self._sso_credential_source,
                provider_id=settings.account.sso_provider_id,
            ))
        if not len(registry):
            logger.warning("No authentication methods enabled")

        return AccountService(
            identity_provider,
            registry,
            dispatcher,
            reconciliation,
            allow_anonymous=bool(methods & AuthenticationMethods.ANONYMOUS),
        )

    # ── Port accessors ─────────────────────────────────────────────

    def local_storage(self):
        return self._get_or_create("local_storage", self._build_local_storage)

    def account_store(self):
        return self._get_or_create("account_store", self._build_account_store)

    def credential_store(self):
        return self._get_or_create("credential_store", self._build_credential_store)

    def notifier(self):
        return self._get_or_create("notifier", self._build_notifier)

    def identity_provider(self):
        return self._get_or_create("identity_provider", self._build_identity_provider)

    # ── Services ──────────────────────────────────────────────────

    def account_service(self):
        return self._get_or_create("account_service", self._build_account_service)

    async def aclose(self) -> None:
        """Shut down the account service and release network clients."""
        service = self._cache.get("account_service")
        if service is not None:
            await service.shutdown()
        identity_provider = self._cache.get("identity_provider")
        if identity_provider is not None and hasattr(identity_provider, "aclose"):
            await identity_provider.aclose()
