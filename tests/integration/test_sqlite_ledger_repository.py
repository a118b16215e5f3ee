"""Integration tests for SqliteLedgerRepository on a real database file."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from getbnbinvoice.domain.errors import (
    AlreadyRegisteredError,
    InvalidKeyError,
    NoCreditsError,
    TooManyRegistrationsError,
)
from getbnbinvoice.domain.services.license_key import is_well_formed_license_key
from getbnbinvoice.infrastructure.adapters.sqlite_ledger_repository import SqliteLedgerRepository


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository(tmp_path: Path, clock: FakeClock) -> SqliteLedgerRepository:
    return SqliteLedgerRepository(tmp_path / "ledger.sqlite3", clock=clock)


def test_register_creates_account_with_well_formed_key(repository):
    account = repository.register("host@example.com", "10.0.0.1", credits=15, max_per_ip_per_day=3)

    assert is_well_formed_license_key(account.key)
    stored = repository.get_account(account.key)
    assert stored.email == "host@example.com"
    assert (stored.credits_remaining, stored.credits_total) == (15, 15)
    assert stored.last_used_at is None


def test_duplicate_email_returns_existing_key(repository):
    account = repository.register("host@example.com", "10.0.0.1", credits=15, max_per_ip_per_day=3)

    with pytest.raises(AlreadyRegisteredError) as exc_info:
        repository.register("host@example.com", "10.0.0.2", credits=15, max_per_ip_per_day=3)

    assert exc_info.value.key == account.key


def test_ip_allowance_resets_after_a_day(repository, clock):
    for i in range(3):
        repository.register(f"host{i}@example.com", "10.0.0.1", credits=15, max_per_ip_per_day=3)

    with pytest.raises(TooManyRegistrationsError):
        repository.register("host3@example.com", "10.0.0.1", credits=15, max_per_ip_per_day=3)

    # Other addresses are unaffected
    repository.register("other@example.com", "10.0.0.2", credits=15, max_per_ip_per_day=3)

    clock.now += timedelta(hours=24, seconds=1)
    repository.register("host3@example.com", "10.0.0.1", credits=15, max_per_ip_per_day=3)


def test_consume_decrements_and_audits(repository, clock):
    key = repository.register("host@example.com", "10.0.0.1", credits=2, max_per_ip_per_day=3).key

    assert repository.consume(key, "HM123ABCDE") == 1
    clock.now += timedelta(minutes=1)
    assert repository.consume(key) == 0

    with pytest.raises(NoCreditsError):
        repository.consume(key, "HM999ZZZZZ")

    account = repository.get_account(key)
    assert account.credits_remaining == 0
    assert account.last_used_at == clock.now

    usage = repository.usage_log(key)
    assert [(u.reservation_code, u.credits_after) for u in usage] == [("HM123ABCDE", 1), (None, 0)]


def test_unknown_key(repository):
    with pytest.raises(InvalidKeyError):
        repository.get_account("GBNB-NOPE-NOPE-NOPE")
    with pytest.raises(InvalidKeyError):
        repository.consume("GBNB-NOPE-NOPE-NOPE")
    with pytest.raises(InvalidKeyError):
        repository.usage_log("GBNB-NOPE-NOPE-NOPE")


def test_concurrent_consume_never_goes_negative(tmp_path: Path):
    db_path = tmp_path / "ledger.sqlite3"
    key = SqliteLedgerRepository(db_path).register("host@example.com", "10.0.0.1", credits=1, max_per_ip_per_day=3).key

    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    lock = threading.Lock()

    def worker() -> None:
        # Separate repository instances, separate connections
        repo = SqliteLedgerRepository(db_path)
        barrier.wait()
        try:
            result: object = repo.consume(key, "HM123ABCDE")
        except NoCreditsError as e:
            result = e
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(type(o).__name__ for o in outcomes) == ["NoCreditsError", "int"]
    assert 0 in outcomes
    repo = SqliteLedgerRepository(db_path)
    assert repo.get_account(key).credits_remaining == 0
    assert len(repo.usage_log(key)) == 1
