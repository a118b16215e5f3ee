"""Unit tests for license activation, status and the pre-flight credit check."""

from __future__ import annotations

import pytest

from getbnbinvoice.application.dto.ledger import CreditBalance, RegistrationResult
from getbnbinvoice.application.ports.credit_ledger import CreditLedgerPort
from getbnbinvoice.application.services import preflight_credit_check
from getbnbinvoice.application.use_cases.manage_license import (
    LicenseFormatError,
    activate_license,
    license_status,
)
from getbnbinvoice.domain.errors import InvalidKeyError, LedgerTransportError


class MockLicenseStore:
    def __init__(self, key: str | None = None) -> None:
        self.key = key

    def get_key(self) -> str | None:
        return self.key

    def set_key(self, key: str) -> None:
        self.key = key

    def clear(self) -> None:
        self.key = None


class MockLedger(CreditLedgerPort):
    def __init__(self, remaining: int = 10, known_keys: set[str] | None = None, error: Exception | None = None):
        self.remaining = remaining
        self.known_keys = known_keys
        self.error = error
        self.checked: list[str | None] = []

    def consume(self, reservation_code: str | None = None) -> int:
        raise NotImplementedError

    def check_credit(self, key: str | None = None) -> CreditBalance:
        self.checked.append(key)
        if self.error is not None:
            raise self.error
        if self.known_keys is not None and key not in self.known_keys:
            raise InvalidKeyError()
        return CreditBalance(remaining=self.remaining, total=15)

    def register(self, email: str) -> RegistrationResult:
        raise NotImplementedError


class TestPreflight:
    def test_no_key_proceeds_without_asking(self):
        ledger = MockLedger()
        assert preflight_credit_check(ledger, MockLicenseStore(), selected=5) is None
        assert ledger.checked == []

    def test_enough_credits(self):
        assert preflight_credit_check(MockLedger(remaining=5), MockLicenseStore("GBNB-X"), selected=5) is None

    def test_no_credits_left(self):
        message = preflight_credit_check(MockLedger(remaining=0), MockLicenseStore("GBNB-X"), selected=1)
        assert message == "You have no credits left. Please purchase more to continue."

    def test_not_enough_credits(self):
        message = preflight_credit_check(MockLedger(remaining=3), MockLicenseStore("GBNB-X"), selected=5)
        assert message == (
            "You have 3 credits but selected 5 reservations. Please deselect 2 reservations to continue."
        )

    def test_ledger_failure_proceeds(self):
        ledger = MockLedger(error=LedgerTransportError("offline"))
        assert preflight_credit_check(ledger, MockLicenseStore("GBNB-X"), selected=5) is None


class TestActivateLicense:
    def test_normalizes_verifies_and_stores(self):
        store = MockLicenseStore()
        ledger = MockLedger(remaining=15, known_keys={"GBNB-AAAA-BBBB-CCCC"})

        balance = activate_license(ledger, store, "  gbnb-aaaa-bbbb-cccc ")

        assert balance.remaining == 15
        assert store.key == "GBNB-AAAA-BBBB-CCCC"
        assert ledger.checked == ["GBNB-AAAA-BBBB-CCCC"]

    def test_bad_format_never_reaches_ledger(self):
        ledger = MockLedger()
        with pytest.raises(LicenseFormatError):
            activate_license(ledger, MockLicenseStore(), "ABCD-1234")
        assert ledger.checked == []

    def test_unknown_key_is_not_stored(self):
        store = MockLicenseStore()
        with pytest.raises(InvalidKeyError):
            activate_license(MockLedger(known_keys=set()), store, "GBNB-AAAA-BBBB-CCCC")
        assert store.key is None


class TestLicenseStatus:
    def test_no_key(self):
        assert license_status(MockLedger(), MockLicenseStore()) is None

    def test_rejected_key_is_cleared(self):
        store = MockLicenseStore("GBNB-GONE-GONE-GONE")
        with pytest.raises(InvalidKeyError):
            license_status(MockLedger(known_keys=set()), store)
        assert store.key is None

    def test_transport_failure_keeps_key(self):
        store = MockLicenseStore("GBNB-AAAA-BBBB-CCCC")
        with pytest.raises(LedgerTransportError):
            license_status(MockLedger(error=LedgerTransportError("offline")), store)
        assert store.key == "GBNB-AAAA-BBBB-CCCC"
