"""Pooled API credentials with per-key quota accounting.

The pool is the only piece of shared mutable state in the engine.  It is an
ordinary object built by the composition root and handed to
:class:`~linkguard.youtube.client.QuotaManagedAPIClient`; every read and
write of a counter happens under ``self._lock``.

Quota is reserved by ``acquire`` before a request is sent and handed back
with ``release`` when the request never reached the API or was refused for
quota.  Usage therefore never exceeds a credential's limit, even with
several scans sharing the pool.

Credential lifecycle::

    Active --(quota signal / budget spent)--> Exhausted --(reset)--> Active

Resets are driven by the caller (``reset_expired`` / ``reset_all``); the pool
never schedules anything on its own.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

from linkguard.errors import QuotaExhausted

logger = logging.getLogger(__name__)


@dataclass
class Credential:
    id: int
    key: str
    quota_limit: int
    quota_used: int = 0
    exhausted: bool = False
    exhausted_at: Optional[float] = None
    error_count: int = 0

    @property
    def remaining(self) -> int:
        return max(0, self.quota_limit - self.quota_used)

    def can_afford(self, cost: int) -> bool:
        return not self.exhausted and self.quota_used + cost <= self.quota_limit

    def masked(self) -> str:
        """Key with all but the last four characters hidden."""
        if len(self.key) <= 4:
            return "*" * len(self.key)
        return "*" * (len(self.key) - 4) + self.key[-4:]


class CredentialPool:
    """Round-robin pool of API keys that skips exhausted ones.

    Args:
        keys: Raw API keys, in rotation order.
        quota_limit: Units each key may spend per quota window.
        window_started_at: Start of the current quota window (epoch seconds);
            defaults to now.
    """

    def __init__(
        self,
        keys: list[str],
        quota_limit: int = 10_000,
        window_started_at: Optional[float] = None,
    ) -> None:
        self._credentials = [
            Credential(id=i + 1, key=key, quota_limit=quota_limit)
            for i, key in enumerate(keys)
        ]
        self._current = 0
        self._window_started_at = time.time() if window_started_at is None else window_started_at
        self._lock = threading.Lock()
        logger.info("Credential pool initialised with %d key(s)", len(self._credentials))

    def __len__(self) -> int:
        return len(self._credentials)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def acquire(self, cost: int) -> Credential:
        """Reserve *cost* units on the next credential that can pay them.

        The units count as spent as soon as this returns; hand them back with
        :meth:`release` if the request is not billed.  Credentials whose
        remaining budget is too small are marked exhausted on the way so
        later calls skip them.

        Raises:
            QuotaExhausted: If no credential can afford the request.
        """
        with self._lock:
            if not self._credentials:
                raise QuotaExhausted("No API credentials configured")
            for _ in range(len(self._credentials)):
                cred = self._credentials[self._current]
                if cred.can_afford(cost):
                    cred.quota_used += cost
                    return cred
                if not cred.exhausted:
                    self._mark(cred, reason="local budget spent")
                self._current = (self._current + 1) % len(self._credentials)
        raise QuotaExhausted()

    # ------------------------------------------------------------------
    # Accounting
    # ------------------------------------------------------------------

    def release(self, credential: Credential, cost: int) -> None:
        """Return *cost* units reserved by :meth:`acquire` that were not billed."""
        with self._lock:
            credential.quota_used = max(0, credential.quota_used - cost)

    def mark_exhausted(self, credential: Credential) -> None:
        """Flag *credential* after an upstream quota signal and rotate away."""
        with self._lock:
            credential.error_count += 1
            self._mark(credential, reason="quota exceeded upstream")
            if self._credentials[self._current] is credential:
                self._current = (self._current + 1) % len(self._credentials)

    def _mark(self, credential: Credential, reason: str) -> None:
        credential.exhausted = True
        credential.exhausted_at = time.time()
        logger.warning("API key #%d exhausted (%s)", credential.id, reason)

    # ------------------------------------------------------------------
    # Rollover
    # ------------------------------------------------------------------

    def reset_expired(self, max_age_seconds: float, now: Optional[float] = None) -> int:
        """Apply the time-based quota rollover.

        Once the current window is *max_age_seconds* old, usage is cleared on
        every credential and a new window starts.  Independently, credentials
        exhausted at least *max_age_seconds* ago are re-activated.

        Returns the number of credentials that were reset.
        """
        now = time.time() if now is None else now
        reset = 0
        with self._lock:
            if now - self._window_started_at >= max_age_seconds:
                logger.info("Quota window elapsed; clearing usage on all keys")
                for cred in self._credentials:
                    self._reset(cred)
                self._window_started_at = now
                return len(self._credentials)
            for cred in self._credentials:
                if cred.exhausted and cred.exhausted_at is not None:
                    if now - cred.exhausted_at >= max_age_seconds:
                        self._reset(cred)
                        reset += 1
        return reset

    def seconds_until_reset(self, max_age_seconds: float, now: Optional[float] = None) -> float:
        """Seconds until a credential becomes usable again through rollover.

        ``0`` when a credential is already available or resettable.
        """
        now = time.time() if now is None else now
        with self._lock:
            waits = [self._window_started_at + max_age_seconds - now]
            for cred in self._credentials:
                if not cred.exhausted or cred.exhausted_at is None:
                    return 0.0
                waits.append(cred.exhausted_at + max_age_seconds - now)
        return max(0.0, min(waits))

    def reset_all(self) -> None:
        with self._lock:
            for cred in self._credentials:
                self._reset(cred)
            self._window_started_at = time.time()

    def _reset(self, credential: Credential) -> None:
        credential.exhausted = False
        credential.exhausted_at = None
        credential.quota_used = 0
        logger.info("API key #%d reset", credential.id)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        with self._lock:
            exhausted = sum(1 for c in self._credentials if c.exhausted)
            return {
                "total": len(self._credentials),
                "available": len(self._credentials) - exhausted,
                "exhausted": exhausted,
                "current_index": self._current + 1 if self._credentials else 0,
                "credentials": [
                    {
                        "id": c.id,
                        "key": c.masked(),
                        "quota_used": c.quota_used,
                        "quota_limit": c.quota_limit,
                        "exhausted": c.exhausted,
                    }
                    for c in self._credentials
                ],
            }
