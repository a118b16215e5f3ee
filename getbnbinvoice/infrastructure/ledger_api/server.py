"""FastAPI application serving the credit ledger."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...application.ports.ledger_repository import LedgerRepositoryPort
from ...application.use_cases.ledger_accounts import (
    FREE_CREDITS,
    MAX_REGISTRATIONS_PER_IP,
    check_credit,
    register_license,
    use_credit,
)
from ...domain.errors import (
    AlreadyRegisteredError,
    InvalidEmailError,
    InvalidKeyError,
    MissingKeyError,
    NoCreditsError,
    TooManyRegistrationsError,
)

logger = logging.getLogger(__name__)

# Error code returned when a body fails validation, per endpoint
_INVALID_BODY_ERRORS = {
    "/register": "invalid_email",
    "/checkCredit": "missing_key",
    "/useCredit": "missing_key",
}


# Request Models
class RegisterRequest(BaseModel):
    email: str | None = None


class KeyRequest(BaseModel):
    key: str | None = None


class UseCreditRequest(BaseModel):
    key: str | None = None
    reservation_code: str | None = None


def _error(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


def client_ip(request: Request) -> str:
    """Client address, falling back to the first X-Forwarded-For hop."""
    if request.client is not None and request.client.host:
        return request.client.host
    forwarded = request.headers.get("x-forwarded-for", "")
    return forwarded.split(",")[0].strip() or "unknown"


def create_app(
    repository: LedgerRepositoryPort,
    free_credits: int = FREE_CREDITS,
    max_registrations_per_ip: int = MAX_REGISTRATIONS_PER_IP,
) -> FastAPI:
    """
    Build the ledger API around a repository.

    Args:
        repository: Account storage (SqliteLedgerRepository in production)
        free_credits: Credits granted on registration
        max_registrations_per_ip: Registrations allowed per address per 24h

    Returns:
        FastAPI application exposing /register, /checkCredit and /useCredit
    """
    app = FastAPI(
        title="getbnbinvoice credit ledger",
        description="License keys and prepaid credits for reservation downloads",
        version="1.0.0",
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 405:
            return _error(405, "method_not_allowed")
        if exc.status_code == 404:
            return _error(404, "not_found")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = _INVALID_BODY_ERRORS.get(request.url.path, "invalid_request")
        return _error(400, error)

    @app.exception_handler(MissingKeyError)
    async def missing_key(request: Request, exc: MissingKeyError) -> JSONResponse:
        return _error(400, "missing_key")

    @app.exception_handler(InvalidKeyError)
    async def invalid_key(request: Request, exc: InvalidKeyError) -> JSONResponse:
        return _error(404, "invalid_key")

    # Endpoints
    @app.post("/register")
    def register(request: Request, body: RegisterRequest | None = None) -> JSONResponse:
        """Issue a license key with free credits."""
        email = body.email if body is not None else None
        try:
            account = register_license(
                repository,
                email,
                client_ip(request),
                free_credits=free_credits,
                max_registrations_per_ip=max_registrations_per_ip,
            )
        except InvalidEmailError:
            return _error(400, "invalid_email")
        except AlreadyRegisteredError as e:
            # No email delivery yet, so the existing key is returned directly
            return _error(
                409,
                "already_registered",
                message="A key was already sent to this email",
                key=e.key,
            )
        except TooManyRegistrationsError as e:
            logger.warning("Registration rate limit hit", extra={"ip": e.ip})
            return _error(429, "too_many_registrations")

        return JSONResponse(
            content={"success": True, "key": account.key, "credits": account.credits_total}
        )

    @app.post("/checkCredit")
    def check_credit_endpoint(body: KeyRequest | None = None) -> JSONResponse:
        """Report the balance for a key."""
        account = check_credit(repository, body.key if body is not None else None)
        return JSONResponse(
            content={"remaining": account.credits_remaining, "total": account.credits_total}
        )

    @app.post("/useCredit")
    def use_credit_endpoint(body: UseCreditRequest | None = None) -> JSONResponse:
        """Spend one credit."""
        key = body.key if body is not None else None
        code = body.reservation_code if body is not None else None
        try:
            remaining = use_credit(repository, key, code)
        except NoCreditsError:
            return _error(402, "no_credits", remaining=0)
        return JSONResponse(content={"remaining": remaining})

    return app
