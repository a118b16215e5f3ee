"""Use cases served by the credit ledger service."""

from __future__ import annotations

import logging

from ...domain.errors import InvalidEmailError, MissingKeyError
from ...domain.models.credit_account import CreditAccount
from ..ports.ledger_repository import LedgerRepositoryPort

logger = logging.getLogger(__name__)

FREE_CREDITS = 15
MAX_REGISTRATIONS_PER_IP = 3


def register_license(
    repository: LedgerRepositoryPort,
    email: str | None,
    ip: str | None,
    free_credits: int = FREE_CREDITS,
    max_registrations_per_ip: int = MAX_REGISTRATIONS_PER_IP,
) -> CreditAccount:
    """
    Issue a license key with free credits for a new email.

    Args:
        repository: LedgerRepositoryPort holding accounts
        email: Email from the request body (normalized: trimmed, lower-cased)
        ip: Client address (``unknown`` if not available)
        free_credits: Credits granted on registration
        max_registrations_per_ip: Allowed registrations per address per 24h

    Returns:
        The created CreditAccount

    Raises:
        InvalidEmailError: If email is empty or lacks ``@``
        AlreadyRegisteredError: If email already owns a key
        TooManyRegistrationsError: If ip exhausted its daily allowance
    """
    normalized = (email or "").strip().lower()
    if not normalized or "@" not in normalized:
        raise InvalidEmailError(normalized)

    account = repository.register(
        email=normalized,
        ip=ip or "unknown",
        credits=free_credits,
        max_per_ip_per_day=max_registrations_per_ip,
    )
    logger.info(
        "License registered",
        extra={"key": account.key, "credits": account.credits_total},
    )
    return account


def check_credit(repository: LedgerRepositoryPort, key: str | None) -> CreditAccount:
    """
    Look up an account's balance.

    Raises:
        MissingKeyError: If key is empty
        InvalidKeyError: If key is unknown
    """
    return repository.get_account(_require_key(key))


def use_credit(
    repository: LedgerRepositoryPort,
    key: str | None,
    reservation_code: str | None = None,
) -> int:
    """
    Spend one credit, recording which reservation it paid for.

    Returns:
        Remaining credits

    Raises:
        MissingKeyError: If key is empty
        InvalidKeyError: If key is unknown
        NoCreditsError: If the balance is zero
    """
    normalized_key = _require_key(key)
    code = (reservation_code or "").strip() or None
    remaining = repository.consume(normalized_key, code)
    logger.info(
        f"Credit used, {remaining} remaining",
        extra={"key": normalized_key, "reservation_code": code, "remaining": remaining},
    )
    return remaining


def _require_key(key: str | None) -> str:
    normalized = (key or "").strip()
    if not normalized:
        raise MissingKeyError()
    return normalized
