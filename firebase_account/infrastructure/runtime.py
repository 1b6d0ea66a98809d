"""
Host runtime lifecycle.
Sets up logging, validates settings and configures the account service.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from firebase_account.infrastructure.config import Settings, get_settings
from firebase_account.infrastructure.container import ApplicationContainer
from firebase_account.infrastructure.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(settings: Optional[Settings] = None, **collaborators) -> AsyncIterator[ApplicationContainer]:
    """Application startup/shutdown lifecycle.

    ``collaborators`` are passed on to :class:`ApplicationContainer`
    (``sso_credential_source``, ``reauthentication_prompt``, ...)::

        async with lifespan(sso_credential_source=apple_ui) as container:
            await container.account_service().login(email, password)
    """
    settings = settings or get_settings()
    setup_logging(settings.logging.level)
    settings.validate_production()
    logger.info("firebase-account starting up (env=%s)...", settings.app_env)

    container = ApplicationContainer(settings, **collaborators)
    await container.account_service().configure()
    try:
        yield container
    finally:
        logger.info("firebase-account shutting down...")
        await container.aclose()
