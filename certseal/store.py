"""
CertSeal Record Stores

The record store is the only shared state in the protocol. It must make
each put atomic and support many concurrent lookups.

Two implementations:
- InMemoryRecordStore: process-local, for tests and the demo
- SqliteRecordStore: SQLite-backed with thread-local connections
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional, Union

from .errors import DuplicateRecordError, StoreError, StoreUnavailableError, UnknownCertificateError
from .issuance import CertificateRecord, CertificateStatus

# sqlite3 message for a certificate_id primary key violation
PRIMARY_KEY_CONFLICT = "certificate_records.certificate_id"


class RecordStore(ABC):
    """Persistence boundary for certificate records."""

    @abstractmethod
    def put(self, record: CertificateRecord) -> None:
        """Persist a new record atomically; duplicate IDs are rejected."""

    @abstractmethod
    def get_by_id(self, certificate_id: str) -> Optional[CertificateRecord]:
        """Return the record for an ID, or None."""

    @abstractmethod
    def set_status(self, certificate_id: str, status: CertificateStatus) -> CertificateRecord:
        """Change the status of an existing record; the only allowed update."""

    @abstractmethod
    def count(self) -> int:
        pass


class InMemoryRecordStore(RecordStore):
    """Thread-safe dict-backed store."""

    def __init__(self):
        self._records: Dict[str, CertificateRecord] = {}
        self._lock = threading.RLock()

    def put(self, record: CertificateRecord) -> None:
        with self._lock:
            if record.certificate_id in self._records:
                raise DuplicateRecordError(record.certificate_id)
            self._records[record.certificate_id] = record

    def get_by_id(self, certificate_id: str) -> Optional[CertificateRecord]:
        with self._lock:
            return self._records.get(certificate_id)

    def set_status(self, certificate_id: str, status: CertificateStatus) -> CertificateRecord:
        with self._lock:
            record = self._records.get(certificate_id)
            if record is None:
                raise UnknownCertificateError(certificate_id)
            updated = record.with_status(status)
            self._records[certificate_id] = updated
            return updated

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def reset(self) -> None:
        with self._lock:
            self._records.clear()


class SqliteRecordStore(RecordStore):
    """
    SQLite-backed record store.

    Connections are thread-local and reused within a thread. Every put runs
    in its own transaction, so a record is either fully written or absent.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._local = threading.local()
        self.init_db()

    def _get_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, 'conn', None)
        if conn is None:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(str(self.path), check_same_thread=False)
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA synchronous=NORMAL;")
            except (sqlite3.Error, OSError) as e:
                raise StoreUnavailableError(f"Cannot open record store: {e}")
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
        return conn

    @contextmanager
    def _transaction(self):
        """Commit on success, roll back on failure."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def init_db(self) -> None:
        """Create the schema. Safe to call multiple times."""
        try:
            with self._transaction() as conn:
                conn.execute("""
                CREATE TABLE IF NOT EXISTS certificate_records (
                    certificate_id TEXT PRIMARY KEY,
                    digest TEXT NOT NULL UNIQUE,
                    claim_json TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'ACTIVE',
                    serial_number TEXT,
                    signature TEXT,
                    key_id TEXT,
                    created_at INTEGER DEFAULT (strftime('%s', 'now')),
                    CHECK (length(digest) = 128),
                    CHECK (certificate_id LIKE 'CERT-%'),
                    CHECK (status IN ('ACTIVE', 'REVOKED'))
                );""")
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot initialize record store: {e}")

    def put(self, record: CertificateRecord) -> None:
        try:
            with self._transaction() as conn:
                if self._exists(conn, record.certificate_id):
                    raise DuplicateRecordError(record.certificate_id)
                conn.execute(
                    "INSERT INTO certificate_records(certificate_id, digest, claim_json, status, "
                    "serial_number, signature, key_id) VALUES(?,?,?,?,?,?,?)",
                    (
                        record.certificate_id,
                        record.digest,
                        json.dumps(record.claim.to_fields(), sort_keys=True),
                        record.status.value,
                        record.serial_number,
                        record.signature,
                        record.key_id,
                    ),
                )
        except sqlite3.IntegrityError as e:
            # Concurrent insert of the same ID
            if PRIMARY_KEY_CONFLICT in str(e):
                raise DuplicateRecordError(record.certificate_id)
            raise StoreError(f"Record rejected by store constraints: {e}", {"certificate_id": record.certificate_id})
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot write record: {e}")

    @staticmethod
    def _exists(conn: sqlite3.Connection, certificate_id: str) -> bool:
        cur = conn.execute("SELECT 1 FROM certificate_records WHERE certificate_id=?", (certificate_id,))
        return cur.fetchone() is not None

    def get_by_id(self, certificate_id: str) -> Optional[CertificateRecord]:
        try:
            cur = self._get_connection().execute(
                "SELECT certificate_id, digest, claim_json, status, serial_number, signature, key_id "
                "FROM certificate_records WHERE certificate_id=?",
                (certificate_id,),
            )
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot read record: {e}")

        if row is None:
            return None
        return CertificateRecord.from_dict({
            "certificate_id": row["certificate_id"],
            "digest": row["digest"],
            "claim": json.loads(row["claim_json"]),
            "status": row["status"],
            "serial_number": row["serial_number"],
            "signature": row["signature"],
            "key_id": row["key_id"],
        })

    def set_status(self, certificate_id: str, status: CertificateStatus) -> CertificateRecord:
        status = CertificateStatus(status)
        try:
            with self._transaction() as conn:
                cur = conn.execute(
                    "UPDATE certificate_records SET status=? WHERE certificate_id=?",
                    (status.value, certificate_id),
                )
                updated = cur.rowcount == 1
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot update record: {e}")

        if not updated:
            raise UnknownCertificateError(certificate_id)
        return self.get_by_id(certificate_id)

    def count(self) -> int:
        try:
            cur = self._get_connection().execute("SELECT COUNT(*) AS cnt FROM certificate_records")
            return cur.fetchone()["cnt"]
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot count records: {e}")

    def reset(self) -> None:
        """Clear all records (test isolation); schema is preserved."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM certificate_records")

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._local, 'conn', None)
        if conn is not None:
            conn.close()
            self._local.conn = None
