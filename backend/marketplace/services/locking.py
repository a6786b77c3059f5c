"""
Per-provider serialisation of check-then-write sequences.

Slot creation and booking creation both read the provider's existing
intervals and then insert a new one. Two requests for the same provider
must not interleave between those steps, so each sequence runs while
holding a lock keyed by ``(scope, provider_id)``.

Within one process a ``threading.Lock`` per key is enough. On PostgreSQL
the guarded session additionally takes a transaction-scoped advisory
lock so that several worker processes agree as well. That lock ends with
the transaction, so a sequence that commits part-way calls ``renew()`` on
the yielded handle before its next check.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from marketplace.core import config
from marketplace.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

# Advisory lock namespaces (first key of pg_advisory_xact_lock)
SCOPE_KEYS = {"slot": 1, "booking": 2}


class HeldLock:
    """Handle yielded by ``ProviderLockRegistry.hold``."""

    def __init__(self, scope: str, provider_id: int, session=None) -> None:
        self.scope = scope
        self.provider_id = provider_id
        self.session = session

    def renew(self) -> None:
        """Take the advisory lock again in the session's current transaction."""
        if self.session is not None:
            _advisory_lock(self.session, self.scope, self.provider_id)


class ProviderLockRegistry:
    """Hands out one lock per ``(scope, provider_id)``."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        self._locks: Dict[Tuple[str, int], threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, scope: str, provider_id: int) -> threading.Lock:
        key = (scope, provider_id)
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, scope: str, provider_id: int, session=None):
        """Run the enclosed block exclusively for this provider and scope.

        Yields a ``HeldLock``. Raises a retryable ``ConflictError`` when the
        lock cannot be taken in time or the database reports a lock/deadlock
        failure. Any failure rolls ``session`` back before propagating.
        """
        if scope not in SCOPE_KEYS:
            raise ValueError(f"Unknown lock scope '{scope}'")

        timeout = (
            self.timeout
            if self.timeout is not None
            else config.PROVIDER_LOCK_TIMEOUT_SECONDS
        )
        lock = self._lock_for(scope, provider_id)
        if not lock.acquire(timeout=timeout):
            logger.warning(
                "Provider lock timeout",
                extra={
                    "context": {
                        "scope": scope,
                        "provider_id": provider_id,
                        "timeout": timeout,
                    }
                },
            )
            raise ConflictError(
                "Provider is busy, please retry",
                details={"provider_id": provider_id},
                retryable=True,
            )

        try:
            held = HeldLock(scope, provider_id, session)
            held.renew()
            yield held
        except OperationalError as exc:
            _rollback(session)
            logger.warning(
                "Storage failure inside provider lock",
                extra={
                    "context": {
                        "scope": scope,
                        "provider_id": provider_id,
                        "error": str(exc),
                    }
                },
            )
            raise ConflictError(
                "Concurrent update detected, please retry",
                details={"provider_id": provider_id},
                retryable=True,
            ) from exc
        except Exception:
            _rollback(session)
            raise
        finally:
            lock.release()


def _advisory_lock(session, scope: str, provider_id: int) -> None:
    bind = session.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return
    session.execute(
        text("SELECT pg_advisory_xact_lock(:scope, :provider_id)"),
        {"scope": SCOPE_KEYS[scope], "provider_id": provider_id},
    )


def _rollback(session) -> None:
    if session is not None:
        session.rollback()


provider_locks = ProviderLockRegistry()
