"""
Anonymous service statistics.

Counters only; nothing here identifies a certificate holder or a client.
"""

import threading
import time
from typing import Any, Dict


class ServiceStats:
    """Thread-safe counters for issuance and verification activity."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._lock = threading.RLock()
        self._started_at = clock()
        self._counts = self._zero()

    @staticmethod
    def _zero() -> Dict[str, int]:
        return {
            "certificates_generated": 0,
            "verifications_performed": 0,
            "successful_verifications": 0,
            "tamper_detected": 0,
        }

    def record_issued(self) -> None:
        with self._lock:
            self._counts["certificates_generated"] += 1

    def record_verification(self, valid: bool, tamper_detected: bool) -> None:
        with self._lock:
            self._counts["verifications_performed"] += 1
            if valid:
                self._counts["successful_verifications"] += 1
            if tamper_detected:
                self._counts["tamper_detected"] += 1

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            counts = dict(self._counts)
            uptime = self._clock() - self._started_at
        performed = counts["verifications_performed"]
        counts["success_rate"] = (
            round(counts["successful_verifications"] / performed, 4) if performed else None
        )
        counts["uptime_seconds"] = int(uptime)
        return counts

    def reset(self) -> None:
        with self._lock:
            self._counts = self._zero()
            self._started_at = self._clock()
