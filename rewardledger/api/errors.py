"""Translate ledger exceptions into HTTP responses.

Only the classified reason reaches the caller; internals stay in the logs.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..domain.exceptions import (
    AlreadyGranted,
    CooldownActive,
    DuplicateTransaction,
    InsufficientInventory,
    LedgerError,
    PersistenceFailure,
    PlayerNotFound,
    ValidationError,
    VerificationFailed,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


async def _validation(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()})
    return _error(status.HTTP_400_BAD_REQUEST, "Missing or invalid fields", fields=fields)


async def _cooldown(request: Request, exc: CooldownActive) -> JSONResponse:
    return _error(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Reward cooldown active",
        granted=False,
        timeUntilNext=exc.remaining_ms,
        lastGrantTime=exc.last_grant_time,
    )


async def _already_granted(request: Request, exc: AlreadyGranted) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "granted": False, "alreadyGranted": True},
    )


async def _not_found(request: Request, exc: PlayerNotFound) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, "User not found. Please play the game first.")


async def _duplicate(request: Request, exc: DuplicateTransaction) -> JSONResponse:
    prior = None
    if exc.prior is not None:
        prior = {
            "fid": exc.prior.fid,
            "boosterType": exc.prior.kind,
            "quantity": exc.prior.quantity,
            "timestamp": exc.prior.timestamp,
        }
    return _error(status.HTTP_409_CONFLICT, "Transaction hash already used", priorUsage=prior)


async def _verification(request: Request, exc: VerificationFailed) -> JSONResponse:
    if exc.retryable:
        return _error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Transaction could not be verified right now",
            reason=exc.reason.value,
            retryable=True,
        )
    return _error(
        status.HTTP_402_PAYMENT_REQUIRED,
        "Transaction verification failed",
        reason=exc.reason.value,
        retryable=False,
    )


async def _insufficient(request: Request, exc: InsufficientInventory) -> JSONResponse:
    return _error(
        status.HTTP_409_CONFLICT,
        str(exc),
        available=exc.available,
        requested=exc.requested,
    )


async def _persistence(request: Request, exc: PersistenceFailure) -> JSONResponse:
    logger.error("Persistence failure on %s: %s", request.url.path, exc)
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable", retryable=True)


async def _ledger(request: Request, exc: LedgerError) -> JSONResponse:
    logger.error("Unclassified ledger error on %s: %s", request.url.path, exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s", request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation)
    app.add_exception_handler(RequestValidationError, _bad_request)
    app.add_exception_handler(CooldownActive, _cooldown)
    app.add_exception_handler(AlreadyGranted, _already_granted)
    app.add_exception_handler(PlayerNotFound, _not_found)
    app.add_exception_handler(DuplicateTransaction, _duplicate)
    app.add_exception_handler(VerificationFailed, _verification)
    app.add_exception_handler(InsufficientInventory, _insufficient)
    app.add_exception_handler(PersistenceFailure, _persistence)
    app.add_exception_handler(LedgerError, _ledger)
    app.add_exception_handler(Exception, _unexpected)
