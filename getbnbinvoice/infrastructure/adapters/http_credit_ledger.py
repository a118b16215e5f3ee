"""HTTP client for the remote credit ledger."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...application.dto.ledger import CreditBalance, RegistrationResult
from ...application.ports.credit_ledger import CreditLedgerPort
from ...application.ports.license_store import LicenseStorePort
from ...domain.errors import (
    InvalidKeyError,
    LedgerError,
    LedgerOtherError,
    LedgerServerError,
    LedgerTransportError,
    NoCreditsError,
    NoLicenseError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpCreditLedgerClient(CreditLedgerPort):
    """
    Credit ledger client speaking the ledger's JSON-over-POST protocol.

    The license key is read from the license store on every call, so a key
    activated mid-session is picked up without rebuilding the client.
    """

    def __init__(
        self,
        base_url: str,
        license_store: LicenseStorePort,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """
        Args:
            base_url: Ledger base URL (endpoints are appended as paths)
            license_store: Source of the license key
            client: Preconfigured httpx.Client (tests pass one with a MockTransport)
            timeout: Request timeout in seconds for the default client
        """
        self.base_url = base_url.rstrip("/")
        self.license_store = license_store
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client (lazy init)."""
        if self._client is None:
            self._client = httpx.Client(base_url=self.base_url, timeout=self.timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "HttpCreditLedgerClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def consume(self, reservation_code: str | None = None) -> int:
        key = self.license_store.get_key()
        if not key:
            raise NoLicenseError("No license key stored")

        payload: dict[str, Any] = {"key": key}
        if reservation_code:
            payload["reservation_code"] = reservation_code

        # Single attempt: the decrement is not idempotent
        status, data = self._post("/useCredit", payload)
        if status == 200:
            remaining = _int_field(data, "remaining")
            logger.debug(
                f"Credit consumed, {remaining} remaining",
                extra={"reservation_code": reservation_code, "remaining": remaining},
            )
            return remaining
        raise _error_for(status, data)

    def check_credit(self, key: str | None = None) -> CreditBalance:
        key = key or self.license_store.get_key()
        if not key:
            raise NoLicenseError("No license key stored")

        status, data = self._post("/checkCredit", {"key": key})
        if status == 200:
            total = data.get("total")
            return CreditBalance(
                remaining=_int_field(data, "remaining"),
                total=total if isinstance(total, int) else None,
            )
        raise _error_for(status, data)

    def register(self, email: str) -> RegistrationResult:
        status, data = self._post("/register", {"email": email})
        if status == 200 and data.get("key"):
            credits = data.get("credits")
            return RegistrationResult(
                key=data["key"],
                credits=credits if isinstance(credits, int) else None,
            )
        if status == 409 and data.get("error") == "already_registered" and data.get("key"):
            logger.info("Email already registered, reusing existing key")
            return RegistrationResult(key=data["key"], already_registered=True)
        raise _error_for(status, data)

    def _post(self, path: str, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        """
        POST a JSON payload and decode the JSON answer.

        Returns:
            (status code, decoded body); the body is {} for an empty 5xx answer

        Raises:
            LedgerTransportError: If the ledger cannot be reached
            LedgerServerError: On a 5xx answer
            LedgerOtherError: If a non-5xx body is not a JSON object
        """
        try:
            response = self._get_client().post(path, json=payload)
        except httpx.TransportError as e:
            logger.warning(f"Ledger unreachable: {e}", extra={"path": path})
            raise LedgerTransportError(str(e)) from e

        if response.status_code >= 500:
            raise LedgerServerError(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise LedgerOtherError("invalid_response") from e
        if not isinstance(data, dict):
            raise LedgerOtherError("invalid_response")
        return response.status_code, data


def _int_field(data: dict[str, Any], name: str) -> int:
    value = data.get(name)
    if not isinstance(value, int) or isinstance(value, bool):
        raise LedgerOtherError("invalid_response")
    return value


def _error_for(status: int, data: dict[str, Any]) -> LedgerError:
    """Map a non-success ledger answer to the matching LedgerError."""
    error = data.get("error")
    if error == "no_credits" or status == 402:
        return NoCreditsError("No credits remaining")
    if error == "invalid_key":
        return InvalidKeyError("License key not recognized")
    if isinstance(error, str) and error:
        return LedgerOtherError(error)
    return LedgerOtherError(f"http_{status}")
