"""
Cooperative cancellation for store calls

A CancellationToken is handed to an engine operation by its caller. Store
adapters check it before touching storage and may register a callback that
aborts an in-flight statement when the token is cancelled.
"""

import threading
import logging
from typing import Callable, List

from order_api.exceptions import OperationCancelled

logger = logging.getLogger(__name__)


class _Registration:
    """An abort callback and whether it may still run"""

    def __init__(self, callback: Callable[[], None]):
        self.callback = callback
        self.active = True


class CancellationToken:
    """
    Thread-safe cancellation signal with abort callbacks

    Callbacks run under the token lock and unregistering takes the same lock,
    so once unregister() returns the callback is neither running nor going
    to run. A connection can therefore be handed back to its pool right after
    unregistering without a late abort reaching its next user.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._registrations: List[_Registration] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        """Signal cancellation and run every registered abort callback once"""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            registrations = list(self._registrations)
            self._registrations.clear()

            for registration in registrations:
                # An earlier callback may have unregistered this one
                if not registration.active:
                    continue
                registration.active = False
                try:
                    registration.callback()
                except Exception as e:
                    # The statement may already have finished; nothing left to abort
                    logger.debug(f"Cancel callback failed: {e}")

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register an abort callback.

        If the token is already cancelled the callback runs immediately.

        Returns:
            A function that unregisters the callback
        """
        with self._lock:
            if not self._event.is_set():
                registration = _Registration(callback)
                self._registrations.append(registration)

                def unregister():
                    with self._lock:
                        registration.active = False
                        if registration in self._registrations:
                            self._registrations.remove(registration)

                return unregister

        callback()
        return lambda: None

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OperationCancelled()


def check_cancelled(token) -> None:
    """Raise OperationCancelled when an optional token has been cancelled"""
    if token is not None:
        token.raise_if_cancelled()
