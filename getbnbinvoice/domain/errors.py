"""Domain errors for reservation capture and credit ledger operations."""


class RendererError(Exception):
    """Base class for failures raised by the page renderer."""


class PageLoadTimeoutError(RendererError):
    """
    Raised when a page does not finish loading within the allowed bound.

    Attributes:
        url: URL that was loading (may be None if unknown)
        timeout_ms: Bound that was exceeded, in milliseconds
    """

    def __init__(self, timeout_ms: int, url: str | None = None) -> None:
        self.timeout_ms = timeout_ms
        self.url = url
        super().__init__(f"Page load timeout after {timeout_ms}ms")


class NavigationError(RendererError):
    """
    Raised when a page cannot be opened or navigated to a URL.

    Attributes:
        url: Target URL
        reason: Underlying failure description
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")


class CaptureError(RendererError):
    """
    Raised when a loaded page cannot be captured as a PDF.

    Attributes:
        reason: Underlying failure description
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"PDF capture failed: {reason}")


class LedgerError(Exception):
    """
    Base class for credit ledger failures.

    Attributes:
        reason: Short machine-readable reason (matches the ledger wire error code)
    """

    reason = "ledger_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.reason)


class NoLicenseError(LedgerError):
    """Raised when no license key is stored locally; no network call is made."""

    reason = "no_license"


class NoCreditsError(LedgerError):
    """Raised when the ledger balance is exhausted; the ledger was not mutated."""

    reason = "no_credits"


class InvalidKeyError(LedgerError):
    """Raised when the ledger does not recognize the license key."""

    reason = "invalid_key"


class LedgerServerError(LedgerError):
    """
    Raised when the ledger answers with a 5xx status.

    Attributes:
        status_code: HTTP status code returned by the ledger
    """

    reason = "server_error"

    def __init__(self, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(self.reason)


class LedgerTransportError(LedgerError):
    """Raised when the ledger cannot be reached (connection failure, timeout)."""

    reason = "transport_error"


class LedgerOtherError(LedgerError):
    """
    Pass-through for any other structured ledger error.

    The message is the server's own error code (e.g. ``too_many_registrations``).
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class MissingKeyError(Exception):
    """Raised by the ledger service when a request carries no license key."""

    def __init__(self) -> None:
        super().__init__("missing_key")


class InvalidEmailError(Exception):
    """
    Raised by the ledger service when a registration email is malformed.

    Attributes:
        email: Rejected email value
    """

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"invalid_email: {email!r}")


class AlreadyRegisteredError(Exception):
    """
    Raised when an email already owns a license.

    Attributes:
        email: Registered email
        key: Existing license key for that email
    """

    def __init__(self, email: str, key: str) -> None:
        self.email = email
        self.key = key
        super().__init__(f"A key was already sent to {email}")


class TooManyRegistrationsError(Exception):
    """
    Raised when one IP address exceeds the daily registration allowance.

    Attributes:
        ip: Client IP address
        limit: Allowed registrations per 24 hours
    """

    def __init__(self, ip: str, limit: int) -> None:
        self.ip = ip
        self.limit = limit
        super().__init__(f"Too many registrations from {ip} (limit {limit} per day)")
