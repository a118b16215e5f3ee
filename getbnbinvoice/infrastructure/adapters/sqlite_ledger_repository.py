"""SQLite storage for the credit ledger service."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ...application.ports.ledger_repository import LedgerRepositoryPort
from ...domain.errors import (
    AlreadyRegisteredError,
    InvalidKeyError,
    NoCreditsError,
    TooManyRegistrationsError,
)
from ...domain.models.credit_account import CreditAccount, UsageRecord
from ...domain.services.license_key import generate_license_key

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 30.0
MAX_KEY_ATTEMPTS = 5

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    key TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    credits_remaining INTEGER NOT NULL CHECK (credits_remaining >= 0),
    credits_total INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    last_used_at TEXT,
    ip TEXT
);
CREATE INDEX IF NOT EXISTS idx_accounts_ip_created ON accounts (ip, created_at);
CREATE TABLE IF NOT EXISTS usage (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL REFERENCES accounts (key),
    reservation_code TEXT,
    credits_after INTEGER NOT NULL,
    used_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_usage_key ON usage (key);
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqliteLedgerRepository(LedgerRepositoryPort):
    """
    Ledger repository backed by a SQLite file.

    Every operation opens its own connection, so the repository can be shared
    between server worker threads. Writes run inside ``BEGIN IMMEDIATE``
    transactions: the write lock is taken before the balance is read, which
    serializes concurrent consumers across connections and processes.
    """

    def __init__(self, db_path: Path | str, clock: Callable[[], datetime] = _utcnow) -> None:
        """
        Args:
            db_path: SQLite database file (created with its schema if missing)
            clock: Source of timestamps (tests inject a fixed clock)
        """
        self.db_path = Path(db_path)
        self.clock = clock
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(SCHEMA)
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=BUSY_TIMEOUT_SECONDS,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def register(self, email: str, ip: str, credits: int, max_per_ip_per_day: int) -> CreditAccount:
        now = self.clock()
        since = (now - timedelta(hours=24)).isoformat()

        with self._transaction() as conn:
            existing = conn.execute(
                "SELECT key FROM accounts WHERE email = ?", (email,)
            ).fetchone()
            if existing is not None:
                raise AlreadyRegisteredError(email, existing["key"])

            recent = conn.execute(
                "SELECT COUNT(*) FROM accounts WHERE ip = ? AND created_at >= ?",
                (ip, since),
            ).fetchone()[0]
            if recent >= max_per_ip_per_day:
                raise TooManyRegistrationsError(ip, max_per_ip_per_day)

            for _ in range(MAX_KEY_ATTEMPTS):
                key = generate_license_key()
                try:
                    conn.execute(
                        "INSERT INTO accounts (key, email, credits_remaining, credits_total, created_at, ip) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        (key, email, credits, credits, now.isoformat(), ip),
                    )
                    break
                except sqlite3.IntegrityError:
                    logger.debug("License key collision, generating another")
            else:
                raise RuntimeError("Could not generate a unique license key")

        logger.debug("Account created", extra={"key": key, "ip": ip})
        return CreditAccount(
            key=key,
            email=email,
            credits_remaining=credits,
            credits_total=credits,
            created_at=now,
            ip=ip,
        )

    def get_account(self, key: str) -> CreditAccount:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM accounts WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise InvalidKeyError("License key not recognized")
        return _account_from_row(row)

    def consume(self, key: str, reservation_code: str | None = None) -> int:
        now = self.clock().isoformat()

        with self._transaction() as conn:
            row = conn.execute(
                "SELECT credits_remaining FROM accounts WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                raise InvalidKeyError("License key not recognized")

            remaining = row["credits_remaining"]
            if remaining <= 0:
                raise NoCreditsError("No credits remaining")

            remaining -= 1
            conn.execute(
                "UPDATE accounts SET credits_remaining = ?, last_used_at = ? WHERE key = ?",
                (remaining, now, key),
            )
            conn.execute(
                "INSERT INTO usage (key, reservation_code, credits_after, used_at) VALUES (?, ?, ?, ?)",
                (key, reservation_code, remaining, now),
            )

        return remaining

    def usage_log(self, key: str) -> list[UsageRecord]:
        conn = self._connect()
        try:
            if conn.execute("SELECT 1 FROM accounts WHERE key = ?", (key,)).fetchone() is None:
                raise InvalidKeyError("License key not recognized")
            rows = conn.execute(
                "SELECT reservation_code, credits_after, used_at FROM usage WHERE key = ? ORDER BY id",
                (key,),
            ).fetchall()
        finally:
            conn.close()

        return [
            UsageRecord(
                reservation_code=row["reservation_code"],
                credits_after=row["credits_after"],
                used_at=datetime.fromisoformat(row["used_at"]),
            )
            for row in rows
        ]


def _account_from_row(row: sqlite3.Row) -> CreditAccount:
    last_used = row["last_used_at"]
    return CreditAccount(
        key=row["key"],
        email=row["email"],
        credits_remaining=row["credits_remaining"],
        credits_total=row["credits_total"],
        created_at=datetime.fromisoformat(row["created_at"]),
        last_used_at=datetime.fromisoformat(last_used) if last_used else None,
        ip=row["ip"],
    )
