"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .errors import install_error_handlers
from .routes import router
from .security import HmacHeaderAuthenticator
from ..app import LedgerApp
from ..config import LedgerConfig

logger = logging.getLogger(__name__)


def create_app(ledger: LedgerApp | None = None, config: LedgerConfig | None = None) -> FastAPI:
    """Build the HTTP app around ``ledger``, creating one from ``config`` when omitted.

    A ledger created here is also closed here when the app shuts down.
    """
    owns_ledger = ledger is None
    if ledger is None:
        ledger = LedgerApp(config or LedgerConfig.from_env())
    api_config = ledger.config.api

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await ledger.init_backend()
        logger.info("Reward ledger ready: %s", ledger.snapshot())
        try:
            yield
        finally:
            if owns_ledger:
                await ledger.aclose()

    app = FastAPI(title="Reward Ledger", lifespan=lifespan)
    app.state.ledger = ledger
    app.state.authenticator = HmacHeaderAuthenticator(api_config.auth_keys)
    app.state.require_auth = api_config.require_auth
    if api_config.require_auth and not api_config.auth_keys:
        logger.warning("Authentication is required but no API keys are configured")
    install_error_handlers(app)
    app.include_router(router)
    return app
