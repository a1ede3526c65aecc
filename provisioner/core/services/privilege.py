"""
Privilege session — one password prompt, kept alive for the whole run.

The session prompts once (``acquire``), then a daemon thread refreshes
the cached credential every ``RENEW_INTERVAL_S`` seconds (``maintain``)
so long installs never hit a second prompt. ``release`` stops the
thread and drops the credential; it is safe to call from every exit
path, as often as you like.

The renewal thread is bound to this session by an explicit stop event
and to this process by pid: a forked child that inherits the object
never renews on the parent's behalf.
"""

from __future__ import annotations

import logging
import os
import threading

from provisioner.adapters.base import PrivilegeBroker
from provisioner.core.errors import PrivilegeDeniedError

logger = logging.getLogger(__name__)

RENEW_INTERVAL_S = 60.0
"""Seconds between renewals. Shorter than the default sudo cache timeout (5 min)."""

JOIN_TIMEOUT_S = 5.0


class PrivilegeSession:
    """Owns the elevated-privilege state for one run."""

    def __init__(self, broker: PrivilegeBroker, interval: float = RENEW_INTERVAL_S):
        self._broker = broker
        self._interval = interval
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._owner_pid: int | None = None
        self._acquired = False
        self._released = False
        self.renewals = 0
        self.renewal_failures = 0

    @property
    def held(self) -> bool:
        return self._acquired and not self._released

    @property
    def renewing(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ── Lifecycle ───────────────────────────────────────────────

    def acquire(self) -> None:
        """Prompt for privilege. A second call is a no-op.

        Raises:
            PrivilegeDeniedError: The user declined or authentication failed.
        """
        with self._lock:
            if self._acquired:
                return
            logger.info("Requesting elevated privilege")
            if not self._broker.authenticate():
                raise PrivilegeDeniedError("Could not obtain administrator privilege")
            self._acquired = True
            self._owner_pid = os.getpid()

    def maintain(self) -> threading.Thread | None:
        """Start the background renewal loop. Idempotent."""
        with self._lock:
            if not self.held:
                return None
            if self._thread is not None:
                return self._thread
            self._thread = threading.Thread(
                target=self._renew_loop,
                daemon=True,
                name="privilege-renewal",
            )
            self._thread.start()
        logger.debug("Privilege renewal started (every %.0fs)", self._interval)
        return self._thread

    def release(self) -> None:
        """Stop renewing and drop the credential. Only the first call acts."""
        with self._lock:
            if not self._acquired or self._released:
                return
            self._released = True
            self._stop.set()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=JOIN_TIMEOUT_S)
            if thread.is_alive():
                logger.warning("Privilege renewal thread did not stop within %.0fs", JOIN_TIMEOUT_S)
        if os.getpid() == self._owner_pid:
            self._broker.drop()
        logger.debug("Privilege released (%d renewals)", self.renewals)

    # ── Renewal ─────────────────────────────────────────────────

    def _renew_loop(self) -> None:
        while not self._stop.wait(self._interval):
            if os.getpid() != self._owner_pid:
                return
            if self._broker.validate_session():
                self.renewals += 1
            else:
                self.renewal_failures += 1
                logger.warning("Privilege renewal failed; later privileged commands may fail")

    def __enter__(self) -> PrivilegeSession:
        self.acquire()
        self.maintain()
        return self

    def __exit__(self, *exc) -> None:
        self.release()
